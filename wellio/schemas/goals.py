"""
Goal schemas.

POST  /clients/{id}/goals → GoalCreate → GoalResponse
GET   /clients/{id}/goals → GoalListResponse
PATCH /goals/{id}         → GoalUpdate → GoalResponse
"""
from datetime import date
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

GoalScopeLiteral = Literal["long_term", "weekly"]
GoalStatusLiteral = Literal["active", "completed", "paused", "abandoned"]


class GoalCreate(BaseModel):
    goal_type: str = Field(
        min_length=1,
        max_length=64,
        description='Category used for reminders, e.g. "lose_weight", "workout", "nutrition".',
        examples=["lose_weight"],
    )
    title: str = Field(min_length=1, max_length=256, examples=["Reach 75 kg"])
    description: Optional[str] = Field(default=None, max_length=2000)
    unit: Optional[str] = Field(default=None, max_length=32, examples=["kg"])
    scope: GoalScopeLiteral = "long_term"
    baseline_value: Optional[float] = Field(default=None, examples=[82.0])
    current_value: Optional[float] = Field(default=0.0, examples=[80.0])
    target_value: Optional[float] = Field(default=None, examples=[75.0])
    deadline: Optional[date] = None
    week_start_date: Optional[date] = Field(
        default=None, description="Monday of the week a weekly-scope goal belongs to."
    )

    @model_validator(mode="after")
    def weekly_needs_week(self) -> "GoalCreate":
        if self.scope == "weekly" and self.week_start_date is None:
            raise ValueError("week_start_date is required for weekly goals")
        return self


class GoalUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=256)
    description: Optional[str] = Field(default=None, max_length=2000)
    status: Optional[GoalStatusLiteral] = None
    current_value: Optional[float] = None
    target_value: Optional[float] = None
    baseline_value: Optional[float] = None
    deadline: Optional[date] = None


class GoalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: int
    goal_type: str
    title: str
    description: Optional[str] = None
    unit: Optional[str] = None
    scope: str
    status: str
    baseline_value: Optional[float] = None
    current_value: Optional[float] = None
    target_value: Optional[float] = None
    deadline: Optional[str] = None
    week_start_date: Optional[str] = None
    progress_percent: float = Field(description="Per-goal progress clamped to 0–100.")
    created_at: str


class GoalListResponse(BaseModel):
    total: int
    items: list[GoalResponse]
