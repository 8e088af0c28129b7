"""Initial Let's Habit schema."""
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
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "habits",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("creator_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("public_level", sa.String(length=16), nullable=False, server_default=sa.text("'private'")),
        sa.Column("check_type", sa.String(length=16), nullable=False, server_default=sa.text("'binary'")),
        sa.Column("check_frequency", sa.String(length=16), nullable=False, server_default=sa.text("'daily'")),
        sa.Column("check_days", sa.Integer(), nullable=False, server_default=sa.text("127")),
        sa.Column("check_deadline_delay", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["creator_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_habits_creator_id", "habits", ["creator_id"], unique=False)

    op.create_table(
        "habit_groups",
        sa.Column("habit_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["habit_id"], ["habits.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("habit_id", "user_id"),
    )
    op.create_index("ix_habit_groups_user_id", "habit_groups", ["user_id"], unique=False)

    op.create_table(
        "user_habit_configs",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("habit_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("longest_streak", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_completed_period", sa.Date(), nullable=True),
        sa.Column("streak_update_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("heatmap_color", sa.String(length=16), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["habit_id"], ["habits.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id", "habit_id"),
    )

    for table in ("habit_log_records", "unconfirmed_habit_log_records"):
        op.create_table(
            table,
            sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
            sa.Column("habit_id", postgresql.UUID(as_uuid=True), nullable=False),
            sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
            sa.Column("period_start", sa.Date(), nullable=False),
            sa.Column("log_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
            sa.Column("duration_min", sa.Integer(), nullable=True),
            sa.ForeignKeyConstraint(["habit_id"], ["habits.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.UniqueConstraint("habit_id", "user_id", "period_start", name=f"uq_{table}_period"),
        )
    op.create_index(
        "ix_habit_log_records_user_period",
        "habit_log_records",
        ["user_id", "period_start"],
        unique=False,
    )
    op.create_index(
        "ix_unconfirmed_habit_log_records_habit_period",
        "unconfirmed_habit_log_records",
        ["habit_id", "period_start"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_unconfirmed_habit_log_records_habit_period", table_name="unconfirmed_habit_log_records")
    op.drop_index("ix_habit_log_records_user_period", table_name="habit_log_records")
    op.drop_table("unconfirmed_habit_log_records")
    op.drop_table("habit_log_records")
    op.drop_table("user_habit_configs")
    op.drop_index("ix_habit_groups_user_id", table_name="habit_groups")
    op.drop_table("habit_groups")
    op.drop_index("ix_habits_creator_id", table_name="habits")
    op.drop_table("habits")
    op.drop_table("users")
