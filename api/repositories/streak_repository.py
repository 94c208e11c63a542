"""Repository for per-user daily streak records."""

from datetime import date

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from models import Streak
from repositories.utils import log_slow_query


class StreakRepository:
    """Streak store backed by the ``streaks`` table.

    Concurrency relies on two database guarantees:
    - the unique (user_id, activity_date) constraint, used by
      create_if_absent via INSERT ... ON CONFLICT DO NOTHING
    - the conditional UPDATE in claim_placeholder, which only matches
      while ``current = 0`` so at most one concurrent caller wins
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @log_slow_query("streak_find_latest_before")
    async def find_latest_before(self, user_id: int, before: date) -> Streak | None:
        """Most recent record for the user strictly before ``before``."""
        result = await self.db.execute(
            select(Streak)
            .where(Streak.user_id == user_id, Streak.activity_date < before)
            .order_by(Streak.activity_date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    @log_slow_query("streak_find_exact")
    async def find_exact(self, user_id: int, activity_date: date) -> Streak | None:
        # claim_placeholder bypasses the identity map; always reload
        result = await self.db.execute(
            select(Streak)
            .where(
                Streak.user_id == user_id,
                Streak.activity_date == activity_date,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @log_slow_query("streak_create_if_absent")
    async def create_if_absent(
        self,
        user_id: int,
        activity_date: date,
        *,
        current: int,
        longest: int,
    ) -> tuple[Streak, bool]:
        """Insert a record unless one already exists for (user, date).

        Returns:
            (record, created). When another writer got there first the
            existing row is returned with created=False.
        """
        stmt = (
            pg_insert(Streak)
            .values(
                user_id=user_id,
                activity_date=activity_date,
                current=current,
                longest=longest,
            )
            .on_conflict_do_nothing(index_elements=["user_id", "activity_date"])
            .returning(Streak)
        )
        result = await self.db.execute(
            stmt, execution_options={"populate_existing": True}
        )
        inserted = result.scalar_one_or_none()
        if inserted is not None:
            return inserted, True

        existing = await self.db.execute(
            select(Streak)
            .where(
                Streak.user_id == user_id,
                Streak.activity_date == activity_date,
            )
            .execution_options(populate_existing=True)
        )
        return existing.scalar_one(), False

    @log_slow_query("streak_claim_placeholder")
    async def claim_placeholder(
        self, streak_id: int, *, current: int, longest: int
    ) -> bool:
        """Set current/longest only if the record still has current = 0.

        Returns True when this caller performed the transition.
        """
        result = await self.db.execute(
            update(Streak)
            .where(Streak.id == streak_id, Streak.current == 0)
            .values(current=current, longest=longest)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @log_slow_query("streak_find_user_ids_with_current_zero")
    async def find_user_ids_with_current_zero(self, on_date: date) -> list[int]:
        """Users whose record for ``on_date`` shows no activity."""
        result = await self.db.execute(
            select(Streak.user_id)
            .where(Streak.activity_date == on_date, Streak.current == 0)
            .order_by(Streak.user_id)
        )
        return list(result.scalars().all())

