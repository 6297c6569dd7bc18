"""Initial schema: users, schedules, schedule blocks and recurring series

Revision ID: 4e1a7c2d9b30
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4e1a7c2d9b30"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("email", sa.String(), nullable=False, unique=True),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "schedules",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.String(length=10), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "date", name="uq_schedule_user_date"),
    )
    op.create_index(op.f("ix_schedules_user_id"), "schedules", ["user_id"], unique=False)
    op.create_index(op.f("ix_schedules_date"), "schedules", ["date"], unique=False)

    op.create_table(
        "schedule_blocks",
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("date", sa.String(length=10), primary_key=True),
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=False, server_default="personal"),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("goal_id", sa.String(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("recurring", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("series_id", sa.String(), nullable=True),
        sa.Column("original_date", sa.Date(), nullable=True),
        sa.UniqueConstraint("user_id", "date", "series_id", name="uq_block_series_per_date"),
    )
    op.create_index(op.f("ix_schedule_blocks_recurring"), "schedule_blocks", ["recurring"], unique=False)
    op.create_index(op.f("ix_schedule_blocks_series_id"), "schedule_blocks", ["series_id"], unique=False)
    op.create_index(
        "ix_schedule_blocks_user_series_date",
        "schedule_blocks",
        ["user_id", "series_id", "date"],
        unique=False,
    )

    op.create_table(
        "recurring_series",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("template", sa.JSON(), nullable=False),
        sa.Column("rule", sa.JSON(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("lookahead_days", sa.Integer(), nullable=False, server_default="90"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index(op.f("ix_recurring_series_user_id"), "recurring_series", ["user_id"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f("ix_recurring_series_user_id"), table_name="recurring_series")
    op.drop_table("recurring_series")
    op.drop_index("ix_schedule_blocks_user_series_date", table_name="schedule_blocks")
    op.drop_index(op.f("ix_schedule_blocks_series_id"), table_name="schedule_blocks")
    op.drop_index(op.f("ix_schedule_blocks_recurring"), table_name="schedule_blocks")
    op.drop_table("schedule_blocks")
    op.drop_index(op.f("ix_schedules_date"), table_name="schedules")
    op.drop_index(op.f("ix_schedules_user_id"), table_name="schedules")
    op.drop_table("schedules")
    op.drop_table("users")
