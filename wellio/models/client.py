"""
Client — a coached person and the cached progress breakdown.

The four progress columns are a derived cache written by the progress
calculator after every recalculation trigger (last write wins). The event
store, goals and schedule items remain the source of truth.
"""
from datetime import datetime
from sqlalchemy import Integer, String, Text, DateTime, Enum, func
from sqlalchemy.orm import Mapped, mapped_column
import enum

from wellio.db.base import Base


class ClientStatus(str, enum.Enum):
    active = "active"
    paused = "paused"
    inactive = "inactive"


class Client(Base):
    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    coach_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        Enum(ClientStatus, name="client_status_enum"),
        nullable=False,
        default=ClientStatus.active,
    )
    goal_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_active_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
        comment="Any client activity: logs, schedule completions, logins",
    )

    progress_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    goal_progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    weekly_progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    activity_progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    progress_updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
