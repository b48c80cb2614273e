"""add reminder tables

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-08

client_reminder_settings — one row per client, created lazily.
sent_reminders — append-only ledger. Unique (client_id, reminder_type,
sent_date) enforces one reminder of a type per client per local day.
push_subscriptions — web-push endpoints, unique per endpoint.
"""
from alembic import op
import sqlalchemy as sa

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "client_reminder_settings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "client_id",
            sa.Integer(),
            sa.ForeignKey("clients.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("reminders_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("goal_reminders_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("plan_reminders_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "inactivity_reminders_enabled", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column("inactivity_threshold_days", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("quiet_hours_start", sa.String(5), nullable=False, server_default="21:00"),
        sa.Column("quiet_hours_end", sa.String(5), nullable=False, server_default="08:00"),
        sa.Column("timezone", sa.String(64), nullable=False, server_default="America/New_York"),
        sa.Column("max_reminders_per_day", sa.Integer(), nullable=False, server_default="3"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_client_reminder_settings_id", "client_reminder_settings", ["id"])

    op.create_table(
        "sent_reminders",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "client_id",
            sa.Integer(),
            sa.ForeignKey("clients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("reminder_type", sa.String(64), nullable=False),
        sa.Column("category", sa.String(32), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("sent_date", sa.Date(), nullable=False),
        sa.Column("related_goal_id", sa.Integer(), nullable=True),
        sa.Column("related_plan_id", sa.Integer(), nullable=True),
        sa.Column(
            "sent_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_sent_reminders_id", "sent_reminders", ["id"])
    op.create_index("ix_sent_reminders_client_id", "sent_reminders", ["client_id"])
    op.create_index("ix_sent_reminders_sent_date", "sent_reminders", ["sent_date"])
    op.create_unique_constraint(
        "uq_sent_reminder_client_type_date",
        "sent_reminders",
        ["client_id", "reminder_type", "sent_date"],
    )

    op.create_table(
        "push_subscriptions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "client_id",
            sa.Integer(),
            sa.ForeignKey("clients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("endpoint", sa.Text(), nullable=False, unique=True),
        sa.Column("p256dh", sa.String(256), nullable=False),
        sa.Column("auth", sa.String(128), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_push_subscriptions_id", "push_subscriptions", ["id"])
    op.create_index("ix_push_subscriptions_client_id", "push_subscriptions", ["client_id"])


def downgrade() -> None:
    op.drop_index("ix_push_subscriptions_client_id", table_name="push_subscriptions")
    op.drop_index("ix_push_subscriptions_id", table_name="push_subscriptions")
    op.drop_table("push_subscriptions")

    op.drop_constraint("uq_sent_reminder_client_type_date", "sent_reminders", type_="unique")
    op.drop_index("ix_sent_reminders_sent_date", table_name="sent_reminders")
    op.drop_index("ix_sent_reminders_client_id", table_name="sent_reminders")
    op.drop_index("ix_sent_reminders_id", table_name="sent_reminders")
    op.drop_table("sent_reminders")

    op.drop_index("ix_client_reminder_settings_id", table_name="client_reminder_settings")
    op.drop_table("client_reminder_settings")
