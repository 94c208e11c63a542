"""SQLAlchemy models for Growth Tracker activity and streak tracking."""

from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum as PyEnum

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, declared_attr, mapped_column, relationship

from core.database import Base


def utcnow() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(UTC)


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamp columns."""

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(DateTime(timezone=True), default=utcnow)

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class User(TimestampMixin, Base):
    """Registered user. Accounts are managed by the auth service."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    activities: Mapped[list["Activity"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )
    streaks: Mapped[list["Streak"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )


class ActivityName(str, PyEnum):
    """Kinds of activity a user can log hours against."""

    SLEEP = "sleep"
    STUDY = "study"
    BOOK_READING = "book_reading"
    EATING = "eating"
    FRIENDS = "friends"
    GROOMING = "grooming"
    WORKOUT = "workout"
    REELS = "reels"
    FAMILY = "family"
    IDLE = "idle"
    CREATIVE = "creative"
    TRAVELLING = "travelling"
    ERRAND = "errand"
    REST = "rest"
    ENTERTAINMENT = "entertainment"


class Activity(TimestampMixin, Base):
    """Hours logged against one activity on one calendar day."""

    __tablename__ = "activities"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "name", "activity_date", name="uq_activity_user_name_date"
        ),
        CheckConstraint(
            "duration_hours >= 0 AND duration_hours <= 24",
            name="ck_activity_duration_range",
        ),
        Index("ix_activities_user_date", "user_id", "activity_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[ActivityName] = mapped_column(
        Enum(
            ActivityName,
            name="activity_name",
            native_enum=False,
            length=50,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    # numeric(4,2): 0.25, 1.50, 12.75 ...
    duration_hours: Mapped[Decimal] = mapped_column(Numeric(4, 2), nullable=False)
    activity_date: Mapped[date] = mapped_column(Date, nullable=False)

    user: Mapped["User"] = relationship(back_populates="activities")


class Streak(Base):
    """Per-user, per-day streak record.

    One row per (user_id, activity_date). ``current`` is 0 for a nightly
    placeholder (or a broken day) and is flipped to a positive value at
    most once, by the first activity logged that day.
    """

    __tablename__ = "streaks"
    __table_args__ = (
        UniqueConstraint("user_id", "activity_date", name="uq_streak_user_date"),
        CheckConstraint("current >= 0", name="ck_streak_current_non_negative"),
        CheckConstraint("longest >= current", name="ck_streak_longest_gte_current"),
        Index("ix_streaks_date_current", "activity_date", "current"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    activity_date: Mapped[date] = mapped_column(Date, nullable=False)
    current: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    user: Mapped["User"] = relationship(back_populates="streaks")
