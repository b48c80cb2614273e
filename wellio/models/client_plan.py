from datetime import datetime
from sqlalchemy import Integer, String, Boolean, JSON, DateTime, Enum, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column
import enum

from wellio.db.base import Base


class PlanStatus(str, enum.Enum):
    draft = "draft"
    assigned = "assigned"
    active = "active"
    archived = "archived"


class ClientPlan(Base):
    """
    Wellness plan assigned by a coach.

    plan_content layout read by the plan reminders:
      {"weekly_programs": {"week_1": {"workouts": [{"day": "monday", "name": "..."}]}}}
    """

    __tablename__ = "client_plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    client_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    plan_name: Mapped[str] = mapped_column(String(256), nullable=False)
    plan_content: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(
        Enum(PlanStatus, name="plan_status_enum"),
        nullable=False,
        default=PlanStatus.draft,
    )
    shared: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
