"""Initial Timelit scheduling schema."""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "202610190900"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )

    op.create_table(
        "tasks",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("duration_min", sa.Integer(), nullable=False, server_default=sa.text("60")),
        sa.Column("priority", sa.String(length=16), nullable=False, server_default=sa.text("'medium'")),
        sa.Column("category", sa.String(length=50), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default=sa.text("'todo'")),
        sa.Column("scheduled_start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("scheduled_end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("scheduled_date", sa.Date(), nullable=True),
        sa.Column("auto_scheduled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_tasks_user_id", "tasks", ["user_id"], unique=False)
    op.create_index("ix_tasks_status", "tasks", ["status"], unique=False)

    op.create_table(
        "calendar_events",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("task_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=True),
        sa.Column("priority", sa.String(length=16), nullable=True),
        sa.Column("ai_suggested", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_calendar_events_user_start", "calendar_events", ["user_id", "start_time"], unique=False)
    op.create_index("ix_calendar_events_task_id", "calendar_events", ["task_id"], unique=False)

    op.create_table(
        "user_preferences",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "auto_schedule_tasks_into_calendar",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("schedule_mode", sa.String(length=16), nullable=True),
        sa.Column("work_start_time", sa.String(length=5), nullable=True),
        sa.Column("work_end_time", sa.String(length=5), nullable=True),
        sa.Column("school_start_time", sa.String(length=5), nullable=True),
        sa.Column("school_end_time", sa.String(length=5), nullable=True),
        sa.Column("lunch_break_enabled", sa.Boolean(), nullable=True),
        sa.Column("lunch_break_start", sa.String(length=5), nullable=True),
        sa.Column("lunch_break_duration", sa.Integer(), nullable=True),
        sa.Column("short_break_duration", sa.Integer(), nullable=True),
        sa.Column("long_break_duration", sa.Integer(), nullable=True),
        sa.Column("break_frequency", sa.String(length=32), nullable=True),
        sa.Column("max_consecutive_work_hours", sa.Float(), nullable=True),
        sa.Column("weekend_work_enabled", sa.Boolean(), nullable=True),
        sa.Column("prefer_morning_tasks", sa.Boolean(), nullable=True),
        sa.Column("prefer_afternoon_tasks", sa.Boolean(), nullable=True),
        sa.Column("avoid_early_meetings", sa.Boolean(), nullable=True),
        sa.Column("avoid_late_meetings", sa.Boolean(), nullable=True),
        sa.Column("meeting_buffer_time", sa.Integer(), nullable=True),
        sa.Column("energy_peak_hours_start", sa.String(length=5), nullable=True),
        sa.Column("energy_peak_hours_end", sa.String(length=5), nullable=True),
        sa.Column("default_event_category", sa.String(length=50), nullable=True),
        sa.Column("timezone", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )

    op.create_table(
        "scheduling_actions_log",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("action_type", sa.Text(), nullable=False),
        sa.Column(
            "action_payload",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("undo_available", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("undone_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_scheduling_actions_log_user_id", "scheduling_actions_log", ["user_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_scheduling_actions_log_user_id", table_name="scheduling_actions_log")
    op.drop_table("scheduling_actions_log")
    op.drop_table("user_preferences")
    op.drop_index("ix_calendar_events_task_id", table_name="calendar_events")
    op.drop_index("ix_calendar_events_user_start", table_name="calendar_events")
    op.drop_table("calendar_events")
    op.drop_index("ix_tasks_status", table_name="tasks")
    op.drop_index("ix_tasks_user_id", table_name="tasks")
    op.drop_table("tasks")
    op.drop_table("users")
