"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-01 00:00:00.000000

Core tables: clients, goals, progress_events, weekly_schedule_items,
client_plans.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- ENUM types ---
    client_status_enum = sa.Enum("active", "paused", "inactive", name="client_status_enum")
    client_status_enum.create(op.get_bind(), checkfirst=True)

    goal_scope_enum = sa.Enum("long_term", "weekly", name="goal_scope_enum")
    goal_scope_enum.create(op.get_bind(), checkfirst=True)

    goal_status_enum = sa.Enum(
        "active", "completed", "paused", "abandoned", name="goal_status_enum"
    )
    goal_status_enum.create(op.get_bind(), checkfirst=True)

    progress_event_type_enum = sa.Enum(
        "weight", "nutrition", "workout", "steps", "sleep", "checkin_mood", "note", "other",
        name="progress_event_type_enum",
    )
    progress_event_type_enum.create(op.get_bind(), checkfirst=True)

    plan_status_enum = sa.Enum(
        "draft", "assigned", "active", "archived", name="plan_status_enum"
    )
    plan_status_enum.create(op.get_bind(), checkfirst=True)

    # --- clients ---
    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("coach_id", sa.String(64), nullable=True),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("status", sa.Enum(
            "active", "paused", "inactive", name="client_status_enum", create_type=False,
        ), nullable=False),
        sa.Column("goal_description", sa.Text(), nullable=True),
        sa.Column("last_active_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("progress_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("goal_progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("weekly_progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("activity_progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("progress_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_clients_id", "clients", ["id"])
    op.create_index("ix_clients_coach_id", "clients", ["coach_id"])
    op.create_index("ix_clients_email", "clients", ["email"])

    # --- goals ---
    op.create_table(
        "goals",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("goal_type", sa.String(64), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("unit", sa.String(32), nullable=True),
        sa.Column("scope", sa.Enum(
            "long_term", "weekly", name="goal_scope_enum", create_type=False,
        ), nullable=False),
        sa.Column("status", sa.Enum(
            "active", "completed", "paused", "abandoned", name="goal_status_enum", create_type=False,
        ), nullable=False),
        sa.Column("baseline_value", sa.Float(), nullable=True),
        sa.Column("current_value", sa.Float(), nullable=True),
        sa.Column("target_value", sa.Float(), nullable=True),
        sa.Column("deadline", sa.Date(), nullable=True),
        sa.Column("week_start_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_goals_id", "goals", ["id"])
    op.create_index("ix_goals_client_id", "goals", ["client_id"])

    # --- progress_events ---
    op.create_table(
        "progress_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_type", sa.Enum(
            "weight", "nutrition", "workout", "steps", "sleep", "checkin_mood", "note", "other",
            name="progress_event_type_enum", create_type=False,
        ), nullable=False),
        sa.Column("date_for_metric", sa.Date(), nullable=False),
        sa.Column("data_json", sa.JSON(), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False, server_default="1.0"),
        sa.Column("needs_review", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("source", sa.String(64), nullable=True),
        sa.Column("corrected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_progress_events_id", "progress_events", ["id"])
    op.create_index("ix_progress_events_client_id", "progress_events", ["client_id"])
    op.create_index("ix_progress_events_event_type", "progress_events", ["event_type"])
    op.create_index(
        "ix_progress_events_client_date", "progress_events", ["client_id", "date_for_metric"]
    )

    # --- weekly_schedule_items ---
    op.create_table(
        "weekly_schedule_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("scheduled_date", sa.Date(), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("item_type", sa.String(32), nullable=False, server_default="workout"),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_weekly_schedule_items_id", "weekly_schedule_items", ["id"])
    op.create_index("ix_weekly_schedule_items_client_id", "weekly_schedule_items", ["client_id"])
    op.create_index(
        "ix_weekly_schedule_items_scheduled_date", "weekly_schedule_items", ["scheduled_date"]
    )

    # --- client_plans ---
    op.create_table(
        "client_plans",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("plan_name", sa.String(256), nullable=False),
        sa.Column("plan_content", sa.JSON(), nullable=False),
        sa.Column("status", sa.Enum(
            "draft", "assigned", "active", "archived", name="plan_status_enum", create_type=False,
        ), nullable=False),
        sa.Column("shared", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_client_plans_id", "client_plans", ["id"])
    op.create_index("ix_client_plans_client_id", "client_plans", ["client_id"])


def downgrade() -> None:
    op.drop_table("client_plans")
    op.drop_table("weekly_schedule_items")
    op.drop_table("progress_events")
    op.drop_table("goals")
    op.drop_table("clients")

    op.execute("DROP TYPE IF EXISTS plan_status_enum")
    op.execute("DROP TYPE IF EXISTS progress_event_type_enum")
    op.execute("DROP TYPE IF EXISTS goal_status_enum")
    op.execute("DROP TYPE IF EXISTS goal_scope_enum")
    op.execute("DROP TYPE IF EXISTS client_status_enum")
