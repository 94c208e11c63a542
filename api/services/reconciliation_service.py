"""Nightly streak reconciliation.

Runs at local midnight (see services.scheduler). For every user it creates
today's placeholder streak record (current = 0, longest carried forward)
so that the first activity of the day claims it and users who never log
are visible to the reminder job.

Each user is processed in its own session and transaction; one failing
user never blocks the rest of the sweep and never holds a lock on others.
"""

from dataclasses import dataclass, field
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.clock import Clock
from core.logger import get_logger
from core.telemetry import track_operation
from repositories.user_repository import UserRepository
from services.streaks_service import StreakOutcome, record_activity

logger = get_logger(__name__)


@dataclass
class ReconciliationResult:
    run_date: date
    processed: int = 0
    created: int = 0
    failed_user_ids: list[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_user_ids


@track_operation("streak_reconciliation")
async def run_daily_reconciliation(
    session_maker: async_sessionmaker[AsyncSession],
    clock: Clock,
) -> ReconciliationResult:
    """Seed today's placeholder record for every user.

    Safe to re-run for the same day: existing records are left untouched.
    Failures are collected in ``failed_user_ids`` and logged; the caller
    decides whether a partial run is an error.
    """
    # One date for the whole sweep, even if it runs past midnight
    today = clock.today()
    result = ReconciliationResult(run_date=today)

    async with session_maker() as db:
        user_ids = await UserRepository(db).list_all_ids()

    logger.info(
        "reconciliation.started", run_date=today.isoformat(), users=len(user_ids)
    )

    for user_id in user_ids:
        try:
            async with session_maker() as db:
                outcome = await record_activity(
                    db, user_id, today, is_cron=True, clock=clock
                )
                await db.commit()
        except Exception:
            logger.exception(
                "reconciliation.user.failed",
                user_id=user_id,
                run_date=today.isoformat(),
            )
            result.failed_user_ids.append(user_id)
            continue

        result.processed += 1
        if outcome is StreakOutcome.PLACEHOLDER_CREATED:
            result.created += 1

    if result.ok:
        logger.info(
            "reconciliation.completed",
            run_date=today.isoformat(),
            processed=result.processed,
            created=result.created,
        )
    else:
        logger.error(
            "reconciliation.completed_with_errors",
            run_date=today.isoformat(),
            processed=result.processed,
            created=result.created,
            failed=len(result.failed_user_ids),
            failed_user_ids=result.failed_user_ids,
        )
    return result
