"""
Progress event schemas.

The payload of every event is a tagged union keyed by `event_type`, each
variant with its own typed shape. Validation happens at the ingestion
boundary; the stored `data_json` is the payload minus the discriminator.

POST  /clients/{id}/events        → ProgressEventCreate      → ProgressEventResponse
POST  /clients/{id}/events/batch  → ProgressEventBatchRequest → ProgressEventBatchResponse
PATCH /events/{id}                → ProgressEventCorrection  → ProgressEventResponse
"""
from __future__ import annotations

from datetime import date
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

LB_TO_KG = 0.453592
BATCH_MAX_EVENTS = 50


# ---------------------------------------------------------------------------
# Payload variants
# ---------------------------------------------------------------------------

class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class WeightPayload(_Payload):
    """A weigh-in. Doubles as a body-composition check-in when body fat is set."""
    event_type: Literal["weight"] = "weight"
    value: float = Field(gt=0, le=1000)
    unit: Literal["kg", "lb"] = "kg"
    value_kg: Optional[float] = Field(default=None, description="Derived from value/unit.")
    body_fat_pct: Optional[float] = Field(default=None, ge=0, le=100)

    @model_validator(mode="after")
    def derive_kg(self) -> "WeightPayload":
        self.value_kg = round(self.value * LB_TO_KG, 3) if self.unit == "lb" else self.value
        return self


class NutritionPayload(_Payload):
    event_type: Literal["nutrition"] = "nutrition"
    calories: Optional[float] = Field(default=None, ge=0)
    protein_g: Optional[float] = Field(default=None, ge=0)
    carbs_g: Optional[float] = Field(default=None, ge=0)
    fat_g: Optional[float] = Field(default=None, ge=0)
    food_description: Optional[str] = Field(default=None, max_length=1000)
    estimated: bool = False


class WorkoutPayload(_Payload):
    event_type: Literal["workout"] = "workout"
    workout_type: Optional[str] = Field(default=None, max_length=64)
    duration_min: Optional[float] = Field(default=None, ge=0, le=1440)
    intensity: Optional[Literal["low", "moderate", "high"]] = None
    body_focus: Optional[str] = Field(default=None, max_length=64)


class StepsPayload(_Payload):
    event_type: Literal["steps"] = "steps"
    steps: int = Field(ge=0)


class SleepPayload(_Payload):
    event_type: Literal["sleep"] = "sleep"
    hours: float = Field(ge=0, le=24)
    quality: Optional[Literal["poor", "fair", "good", "excellent"]] = None


class MoodPayload(_Payload):
    event_type: Literal["checkin_mood"] = "checkin_mood"
    rating: int = Field(ge=1, le=10)
    energy: Optional[int] = Field(default=None, ge=1, le=10)
    notes: Optional[str] = Field(default=None, max_length=2000)


class NotePayload(_Payload):
    event_type: Literal["note"] = "note"
    text: str = Field(min_length=1, max_length=5000)


class OtherPayload(_Payload):
    event_type: Literal["other"] = "other"
    data: dict[str, Any] = Field(default_factory=dict)


EventPayload = Annotated[
    Union[
        WeightPayload,
        NutritionPayload,
        WorkoutPayload,
        StepsPayload,
        SleepPayload,
        MoodPayload,
        NotePayload,
        OtherPayload,
    ],
    Field(discriminator="event_type"),
]

event_payload_adapter: TypeAdapter[EventPayload] = TypeAdapter(EventPayload)


def payload_to_data_json(payload: _Payload) -> dict[str, Any]:
    """Storage form: the payload without its discriminator and unset fields."""
    return payload.model_dump(exclude={"event_type"}, exclude_none=True)


# ---------------------------------------------------------------------------
# Request / response
# ---------------------------------------------------------------------------

class ProgressEventCreate(BaseModel):
    """A single observed activity for a client."""
    date_for_metric: date = Field(
        description="Client-local calendar day the measurement belongs to.",
        examples=["2026-10-12"],
    )
    payload: EventPayload
    confidence: float = Field(default=1.0, ge=0, le=1)
    source: Optional[str] = Field(
        default=None,
        max_length=64,
        description='"manual", "smart_log", "device_sync", ...',
        examples=["manual"],
    )


class ProgressEventCorrection(BaseModel):
    """Coach correction of a previously logged event."""
    payload: EventPayload
    date_for_metric: Optional[date] = None


class ProgressEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: int
    event_type: str
    date_for_metric: str
    data: dict[str, Any]
    confidence: float
    needs_review: bool
    source: Optional[str] = None
    corrected_at: Optional[str] = None
    created_at: str


class RawProgressEventIn(BaseModel):
    """
    Untyped batch item. The payload is validated per item by the service so
    one malformed item does not reject the whole batch.
    """
    date_for_metric: date
    event_type: str = Field(min_length=1, max_length=32, examples=["nutrition"])
    data: dict[str, Any] = Field(default_factory=dict)
    confidence: float = Field(default=1.0, ge=0, le=1)
    source: Optional[str] = Field(default=None, max_length=64)


class ProgressEventBatchRequest(BaseModel):
    """Events extracted from one smart log (or one device sync)."""
    items: Annotated[list[RawProgressEventIn], Field(
        min_length=1,
        max_length=BATCH_MAX_EVENTS,
        description=f"Events to record (1–{BATCH_MAX_EVENTS} items).",
    )]


class ProgressEventBatchItem(BaseModel):
    index: int
    ok: bool
    event: Optional[ProgressEventResponse] = None
    error: Optional[str] = None


class ProgressEventBatchResponse(BaseModel):
    total: int
    succeeded: int
    failed: int
    items: list[ProgressEventBatchItem]


class ProgressEventListResponse(BaseModel):
    total: int
    items: list[ProgressEventResponse]
