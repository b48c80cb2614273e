"""
Reminder schemas.

GET/PUT /clients/{id}/reminder-settings   → ReminderSettingsResponse / ReminderSettingsUpdate
POST    /clients/{id}/push-subscriptions  → PushSubscriptionCreate → PushSubscriptionResponse
POST    /clients/{id}/reminders/trigger   → ReminderRunResponse
GET     /clients/{id}/reminders/sent      → SentReminderListResponse
POST    /reminders/run                    → SweepResponse
"""
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

from wellio.models.reminder import DEFAULT_REMINDER_SETTINGS as _D

_HHMM = r"^([01]\d|2[0-3]):[0-5]\d$"


class ReminderSettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    client_id: int
    reminders_enabled: bool = _D.reminders_enabled
    goal_reminders_enabled: bool = _D.goal_reminders_enabled
    plan_reminders_enabled: bool = _D.plan_reminders_enabled
    inactivity_reminders_enabled: bool = _D.inactivity_reminders_enabled
    inactivity_threshold_days: int = _D.inactivity_threshold_days
    quiet_hours_start: str = _D.quiet_hours_start
    quiet_hours_end: str = _D.quiet_hours_end
    timezone: str = _D.timezone
    max_reminders_per_day: int = _D.max_reminders_per_day


class ReminderSettingsUpdate(BaseModel):
    """Partial update; omitted fields keep their current value."""
    reminders_enabled: Optional[bool] = None
    goal_reminders_enabled: Optional[bool] = None
    plan_reminders_enabled: Optional[bool] = None
    inactivity_reminders_enabled: Optional[bool] = None
    inactivity_threshold_days: Optional[int] = Field(default=None, ge=1, le=30)
    quiet_hours_start: Optional[str] = Field(default=None, pattern=_HHMM, examples=["21:00"])
    quiet_hours_end: Optional[str] = Field(default=None, pattern=_HHMM, examples=["08:00"])
    timezone: Optional[str] = Field(default=None, max_length=64, examples=["Europe/London"])
    max_reminders_per_day: Optional[int] = Field(default=None, ge=0, le=20)

    @field_validator("timezone")
    @classmethod
    def known_timezone(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown timezone {v!r}")
        return v


class PushSubscriptionKeys(BaseModel):
    p256dh: str = Field(min_length=1, max_length=256)
    auth: str = Field(min_length=1, max_length=128)


class PushSubscriptionCreate(BaseModel):
    """Browser PushSubscription.toJSON() shape."""
    endpoint: str = Field(min_length=1, examples=["https://fcm.googleapis.com/fcm/send/abc"])
    keys: PushSubscriptionKeys


class PushSubscriptionDelete(BaseModel):
    endpoint: str = Field(min_length=1)


class PushSubscriptionResponse(BaseModel):
    id: int
    client_id: int
    endpoint: str
    created_at: str


class ReminderRunResponse(BaseModel):
    client_id: int
    sent_count: int
    sent_types: list[str]
    skipped_reason: Optional[str] = None


class SentReminderResponse(BaseModel):
    id: int
    reminder_type: str
    category: str
    title: str
    message: str
    sent_date: str
    related_goal_id: Optional[int] = None
    related_plan_id: Optional[int] = None
    sent_at: str


class SentReminderListResponse(BaseModel):
    client_id: int
    sent_date: str
    total: int
    items: list[SentReminderResponse]


class SweepResponse(BaseModel):
    processed_clients: int
    sent_reminders: int
    failed_clients: int
