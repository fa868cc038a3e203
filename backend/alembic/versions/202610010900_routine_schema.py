"""Initial routine engine schema."""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "202610010900"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("locale", sa.String(length=8), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )

    op.create_table(
        "communication_plans",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("daily_time_minutes", sa.Integer(), nullable=False, server_default=sa.text("30")),
        sa.Column(
            "active_days",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("monthly_goal", sa.String(length=50), nullable=False, server_default=sa.text("'visibility'")),
        sa.Column(
            "channels",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("instagram_posts_week", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("instagram_stories_week", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("instagram_reels_month", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("linkedin_posts_week", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("newsletter_frequency", sa.String(length=20), nullable=False, server_default=sa.text("'none'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", name="uq_communication_plans_user_id"),
    )

    op.create_table(
        "routine_tasks",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("task_type", sa.String(length=50), nullable=False, server_default=sa.text("'custom'")),
        sa.Column("channel", sa.String(length=50), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default=sa.text("15")),
        sa.Column("recurrence", sa.String(length=16), nullable=False),
        sa.Column("day_of_week", sa.String(length=3), nullable=True),
        sa.Column("week_of_month", sa.Integer(), nullable=True),
        sa.Column("linked_module", sa.Text(), nullable=True),
        sa.Column("is_auto_generated", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_routine_tasks_user_id", "routine_tasks", ["user_id"], unique=False)
    op.create_index("ix_routine_tasks_user_active", "routine_tasks", ["user_id", "is_active"], unique=False)

    op.create_table(
        "routine_completions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("routine_task_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("week", sa.String(length=8), nullable=False),
        sa.Column("month", sa.String(length=7), nullable=False),
        sa.Column("period_key", sa.String(length=10), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["routine_task_id"], ["routine_tasks.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("routine_task_id", "period_key", name="uq_routine_completions_task_period"),
    )
    op.create_index("ix_routine_completions_user_id", "routine_completions", ["user_id"], unique=False)

    op.create_table(
        "activity_log",
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
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_activity_log_user_id", "activity_log", ["user_id"], unique=False)
    op.create_index("ix_activity_log_action_type", "activity_log", ["action_type"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_activity_log_action_type", table_name="activity_log")
    op.drop_index("ix_activity_log_user_id", table_name="activity_log")
    op.drop_table("activity_log")

    op.drop_index("ix_routine_completions_user_id", table_name="routine_completions")
    op.drop_table("routine_completions")

    op.drop_index("ix_routine_tasks_user_active", table_name="routine_tasks")
    op.drop_index("ix_routine_tasks_user_id", table_name="routine_tasks")
    op.drop_table("routine_tasks")

    op.drop_table("communication_plans")

    op.drop_table("users")
