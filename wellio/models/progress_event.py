"""
ProgressEvent — one observed activity instance (meal, workout, weigh-in...).

Append-only. Rows are created by ingestion (manual logging, processed smart
logs, device sync); `data_json` is only rewritten by a coach correction and
rows are only deleted by an explicit coach action.

data_json holds the typed payload for `event_type` minus the discriminator
(see wellio/schemas/events.py).
"""
from datetime import datetime, date
from sqlalchemy import (
    Integer, String, Float, Boolean, JSON, DateTime, Date, Enum, ForeignKey, func, Index,
)
from sqlalchemy.orm import Mapped, mapped_column
import enum

from wellio.db.base import Base


class EventType(str, enum.Enum):
    weight = "weight"
    nutrition = "nutrition"
    workout = "workout"
    steps = "steps"
    sleep = "sleep"
    checkin_mood = "checkin_mood"
    note = "note"
    other = "other"


class ProgressEvent(Base):
    __tablename__ = "progress_events"
    __table_args__ = (
        Index("ix_progress_events_client_date", "client_id", "date_for_metric"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    client_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_type: Mapped[str] = mapped_column(
        Enum(EventType, name="progress_event_type_enum"), nullable=False, index=True
    )
    date_for_metric: Mapped[date] = mapped_column(Date, nullable=False)
    data_json: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    needs_review: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    source: Mapped[str | None] = mapped_column(String(64), nullable=True)
    corrected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
