"""Initial study plan persistence schema."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20241101_01_initial_study_plans"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "study_plans",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("username", sa.String(length=128), nullable=False),
        sa.Column("exam_date", sa.Date(), nullable=False),
        sa.Column("resources", sa.JSON(), nullable=False),
        sa.Column("hours_per_day", sa.JSON(), nullable=False),
        sa.Column("selected_balance", sa.String(length=16), nullable=False, server_default="50-50"),
    )
    op.create_index("ix_study_plans_username", "study_plans", ["username"], unique=True)

    op.create_table(
        "calendar_activities",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("plan_id", sa.String(length=36), sa.ForeignKey("study_plans.id", ondelete="CASCADE"), nullable=False),
        sa.Column("scheduled_date", sa.Date(), nullable=False),
        sa.Column("activity_title", sa.String(length=128), nullable=False),
        sa.Column("activity_text", sa.Text(), nullable=False, server_default=""),
        sa.Column("hours", sa.Float(), nullable=False),
        sa.Column("activity_type", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="Not Started"),
        sa.Column("link", sa.Text(), nullable=False, server_default=""),
        sa.Column("tasks", sa.JSON(), nullable=False),
        sa.Column("source", sa.String(length=16), nullable=False, server_default="generated"),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )
    op.create_index(
        "ix_calendar_activities_plan_date",
        "calendar_activities",
        ["plan_id", "scheduled_date"],
    )
    op.create_index("ix_calendar_activities_type", "calendar_activities", ["activity_type"])

    op.create_table(
        "checklist_queues",
        sa.Column("activity_name", sa.String(length=128), primary_key=True, nullable=False),
        sa.Column("pending", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )

    op.create_table(
        "persistence_audit_events",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("plan_id", sa.String(length=36), sa.ForeignKey("study_plans.id", ondelete="SET NULL"), nullable=True),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("actor", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )
    op.create_index("ix_persistence_audit_events_plan", "persistence_audit_events", ["plan_id"])


def downgrade() -> None:
    op.drop_index("ix_persistence_audit_events_plan", table_name="persistence_audit_events")
    op.drop_table("persistence_audit_events")
    op.drop_table("checklist_queues")
    op.drop_index("ix_calendar_activities_type", table_name="calendar_activities")
    op.drop_index("ix_calendar_activities_plan_date", table_name="calendar_activities")
    op.drop_table("calendar_activities")
    op.drop_index("ix_study_plans_username", table_name="study_plans")
    op.drop_table("study_plans")
