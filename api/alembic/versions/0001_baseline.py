"""baseline: users, activities, streaks

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-17
"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_baseline"
down_revision = None
branch_labels = None
depends_on = None

ACTIVITY_NAMES = (
    "sleep",
    "study",
    "book_reading",
    "eating",
    "friends",
    "grooming",
    "workout",
    "reels",
    "family",
    "idle",
    "creative",
    "travelling",
    "errand",
    "rest",
    "entertainment",
)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "activities",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column(
            "name",
            sa.Enum(*ACTIVITY_NAMES, name="activity_name", native_enum=False, length=50),
            nullable=False,
        ),
        sa.Column("duration_hours", sa.Numeric(4, 2), nullable=False),
        sa.Column("activity_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id", "name", "activity_date", name="uq_activity_user_name_date"
        ),
        sa.CheckConstraint(
            "duration_hours >= 0 AND duration_hours <= 24",
            name="ck_activity_duration_range",
        ),
    )
    op.create_index(
        "ix_activities_user_date", "activities", ["user_id", "activity_date"]
    )

    op.create_table(
        "streaks",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("activity_date", sa.Date(), nullable=False),
        sa.Column("current", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("longest", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "activity_date", name="uq_streak_user_date"),
        sa.CheckConstraint("current >= 0", name="ck_streak_current_non_negative"),
        sa.CheckConstraint("longest >= current", name="ck_streak_longest_gte_current"),
    )
    op.create_index(
        "ix_streaks_date_current", "streaks", ["activity_date", "current"]
    )


def downgrade() -> None:
    op.drop_index("ix_streaks_date_current", table_name="streaks")
    op.drop_table("streaks")
    op.drop_index("ix_activities_user_date", table_name="activities")
    op.drop_table("activities")
    op.drop_table("users")
