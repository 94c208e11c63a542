"""Streak engine: per-user, per-day streak records.

A user's streak is stored as one record per calendar day:

- The nightly reconciliation job creates a placeholder for every user
  with ``current = 0``, carrying ``longest`` forward from the most recent
  earlier record.
- The first activity logged for a day sets ``current`` for that day:
  previous day's ``current + 1`` when the previous calendar day has a
  record, otherwise 1. Later logs for the same day are no-ops.
- Dates before today are ignored entirely. Logging a missed day after
  the fact does not repair the chain; that is a known limitation.

Both writers are idempotent per (user, date): creation goes through an
insert-if-absent and the placeholder is claimed with a compare-and-set on
``current = 0``, so concurrent requests and a re-run job converge on the
same row without any application-level locking.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import StrEnum
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import Clock, get_clock
from core.logger import get_logger
from core.wide_event import set_wide_event_fields
from repositories.streak_repository import StreakRepository

logger = get_logger(__name__)

ONE_DAY = timedelta(days=1)


class StreakUpdateError(Exception):
    """The streak store failed; the original error is chained as __cause__."""

    def __init__(self, user_id: int, activity_date: date) -> None:
        self.user_id = user_id
        self.activity_date = activity_date
        super().__init__(f"Failed to update streak for user {user_id} on {activity_date}")


class InvalidStreakInputError(ValueError):
    """User id or date cannot identify a streak record."""


class StreakOutcome(StrEnum):
    """What record_activity did."""

    SKIPPED_PAST = "skipped_past"
    PLACEHOLDER_CREATED = "placeholder_created"
    PLACEHOLDER_EXISTS = "placeholder_exists"
    CREATED = "created"
    CLAIMED = "claimed"
    ALREADY_RECORDED = "already_recorded"


class StreakRecord(Protocol):
    id: int
    user_id: int
    activity_date: date
    current: int
    longest: int


class StreakStore(Protocol):
    """Persistence operations the engine needs (see StreakRepository)."""

    async def find_latest_before(
        self, user_id: int, before: date
    ) -> StreakRecord | None: ...

    async def find_exact(
        self, user_id: int, activity_date: date
    ) -> StreakRecord | None: ...

    async def create_if_absent(
        self, user_id: int, activity_date: date, *, current: int, longest: int
    ) -> tuple[StreakRecord, bool]: ...

    async def claim_placeholder(
        self, streak_id: int, *, current: int, longest: int
    ) -> bool: ...


@dataclass(frozen=True)
class StreakData:
    """A user's streak as of one calendar day."""

    user_id: int
    activity_date: date
    current: int
    longest: int


class StreakEngine:
    """Decides whether to create, claim, or leave a day's streak record."""

    def __init__(self, store: StreakStore, clock: Clock) -> None:
        self.store = store
        self.clock = clock

    def _normalize(self, user_id: int, activity_date: date | datetime) -> date:
        if isinstance(user_id, bool) or not isinstance(user_id, int) or user_id <= 0:
            raise InvalidStreakInputError(f"Invalid user id: {user_id!r}")
        if isinstance(activity_date, datetime):
            return self.clock.to_local_date(activity_date)
        if isinstance(activity_date, date):
            return activity_date
        raise InvalidStreakInputError(f"Invalid activity date: {activity_date!r}")

    async def record_activity(
        self,
        user_id: int,
        activity_date: date | datetime,
        is_cron: bool = False,
    ) -> StreakOutcome:
        """Apply one activity (or the nightly placeholder) to the streak.

        Args:
            user_id: Owner of the record.
            activity_date: Calendar day in the clock's zone. Datetimes are
                truncated to their local date.
            is_cron: True only for the nightly reconciliation job.

        Raises:
            InvalidStreakInputError: user_id or activity_date is unusable.
            StreakUpdateError: any store operation failed.
        """
        day = self._normalize(user_id, activity_date)

        if day < self.clock.today():
            return StreakOutcome.SKIPPED_PAST

        try:
            if is_cron:
                outcome = await self._create_placeholder(user_id, day)
            else:
                outcome = await self._record_online(user_id, day)
        except Exception as e:
            logger.error(
                "streak.update.failed",
                user_id=user_id,
                activity_date=day.isoformat(),
                is_cron=is_cron,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StreakUpdateError(user_id, day) from e

        set_wide_event_fields(streak_outcome=outcome.value)
        return outcome

    async def _create_placeholder(self, user_id: int, day: date) -> StreakOutcome:
        prior = await self.store.find_latest_before(user_id, day)
        carried = prior.longest if prior is not None else 0

        _, created = await self.store.create_if_absent(
            user_id, day, current=0, longest=carried
        )
        if not created:
            logger.info(
                "streak.placeholder.exists",
                user_id=user_id,
                activity_date=day.isoformat(),
            )
            return StreakOutcome.PLACEHOLDER_EXISTS
        return StreakOutcome.PLACEHOLDER_CREATED

    async def _record_online(self, user_id: int, day: date) -> StreakOutcome:
        prior = await self.store.find_latest_before(user_id, day)

        if prior is not None and prior.activity_date == day - ONE_DAY:
            next_current = prior.current + 1
        else:
            next_current = 1

        existing = await self.store.find_exact(user_id, day)

        if existing is None:
            longest = max(prior.longest if prior is not None else 0, next_current)
            record, created = await self.store.create_if_absent(
                user_id, day, current=next_current, longest=longest
            )
            if created:
                logger.info(
                    "streak.created",
                    user_id=user_id,
                    activity_date=day.isoformat(),
                    current=next_current,
                    longest=longest,
                )
                return StreakOutcome.CREATED
            # A concurrent writer (request or nightly job) inserted first
            existing = record

        if existing.current != 0:
            return StreakOutcome.ALREADY_RECORDED

        longest = max(existing.longest, next_current)
        won = await self.store.claim_placeholder(
            existing.id, current=next_current, longest=longest
        )
        if not won:
            return StreakOutcome.ALREADY_RECORDED

        logger.info(
            "streak.claimed",
            user_id=user_id,
            activity_date=day.isoformat(),
            current=next_current,
            longest=longest,
        )
        return StreakOutcome.CLAIMED


async def record_activity(
    db: AsyncSession,
    user_id: int,
    activity_date: date | datetime,
    is_cron: bool = False,
    clock: Clock | None = None,
) -> StreakOutcome:
    """Run the streak engine against the database session."""
    engine = StreakEngine(StreakRepository(db), clock or get_clock())
    return await engine.record_activity(user_id, activity_date, is_cron=is_cron)


async def get_streak(db: AsyncSession, user_id: int, on_date: date) -> StreakData | None:
    """Streak record for a user on a calendar day, if one exists."""
    record = await StreakRepository(db).find_exact(user_id, on_date)
    if record is None:
        return None
    return StreakData(
        user_id=record.user_id,
        activity_date=record.activity_date,
        current=record.current,
        longest=record.longest,
    )
