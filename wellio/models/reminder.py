"""
Reminder tables.

ClientReminderSettings — one row per client, created lazily on the first
reminder pass from DEFAULT_REMINDER_SETTINGS.

SentReminder — append-only ledger of dispatched reminders. Written only
after a successful dispatch. The unique constraint on
(client_id, reminder_type, sent_date) enforces "one reminder of a type per
client per calendar day" at the DB level.

PushSubscription — web-push endpoints registered by the client's browsers.
"""
from dataclasses import dataclass
from datetime import datetime, date
from sqlalchemy import (
    Integer, String, Text, Boolean, DateTime, Date, ForeignKey, func, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from wellio.db.base import Base


@dataclass(frozen=True)
class ReminderDefaults:
    reminders_enabled: bool = True
    goal_reminders_enabled: bool = True
    plan_reminders_enabled: bool = True
    inactivity_reminders_enabled: bool = True
    inactivity_threshold_days: int = 2
    quiet_hours_start: str = "21:00"
    quiet_hours_end: str = "08:00"
    timezone: str = "America/New_York"
    max_reminders_per_day: int = 3


DEFAULT_REMINDER_SETTINGS = ReminderDefaults()
_D = DEFAULT_REMINDER_SETTINGS


class ReminderType:
    GOAL_WEIGHT         = "goal_weight"
    GOAL_WORKOUT        = "goal_workout"
    GOAL_NUTRITION      = "goal_nutrition"
    GOAL_GENERAL        = "goal_general"
    PLAN_DAILY          = "plan_daily"
    INACTIVITY_MEALS    = "inactivity_meals"
    INACTIVITY_WORKOUTS = "inactivity_workouts"
    INACTIVITY_CHECKIN  = "inactivity_checkin"


class ReminderCategory:
    GOAL       = "goal"
    PLAN       = "plan"
    INACTIVITY = "inactivity"


class ClientReminderSettings(Base):
    __tablename__ = "client_reminder_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    client_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    reminders_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=_D.reminders_enabled
    )
    goal_reminders_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=_D.goal_reminders_enabled
    )
    plan_reminders_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=_D.plan_reminders_enabled
    )
    inactivity_reminders_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=_D.inactivity_reminders_enabled
    )
    inactivity_threshold_days: Mapped[int] = mapped_column(
        Integer, nullable=False, default=_D.inactivity_threshold_days
    )
    quiet_hours_start: Mapped[str] = mapped_column(
        String(5), nullable=False, default=_D.quiet_hours_start, comment="HH:MM local time"
    )
    quiet_hours_end: Mapped[str] = mapped_column(
        String(5), nullable=False, default=_D.quiet_hours_end, comment="HH:MM local time"
    )
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default=_D.timezone)
    max_reminders_per_day: Mapped[int] = mapped_column(
        Integer, nullable=False, default=_D.max_reminders_per_day
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class SentReminder(Base):
    __tablename__ = "sent_reminders"
    __table_args__ = (
        UniqueConstraint(
            "client_id", "reminder_type", "sent_date", name="uq_sent_reminder_client_type_date"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    client_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reminder_type: Mapped[str] = mapped_column(String(64), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    sent_date: Mapped[date] = mapped_column(
        Date, nullable=False, index=True, comment="Client-local calendar day"
    )
    related_goal_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    related_plan_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class PushSubscription(Base):
    __tablename__ = "push_subscriptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    client_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    endpoint: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    p256dh: Mapped[str] = mapped_column(String(256), nullable=False)
    auth: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
