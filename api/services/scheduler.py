"""Background job scheduling (APScheduler).

Two daily jobs, both in the streak timezone:
- reconciliation at RECONCILIATION_HOUR:RECONCILIATION_MINUTE (midnight)
- reminder emails at REMINDER_HOUR:REMINDER_MINUTE (09:00)

The scheduler is started by the FastAPI lifespan and shares the app's
session maker. Job wrappers log failures instead of raising so that a
bad night never stops tomorrow's run.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.clock import Clock
from core.config import Settings
from core.logger import get_logger
from services.email_service import EmailService
from services.reconciliation_service import run_daily_reconciliation
from services.reminder_service import send_streak_reminders

logger = get_logger(__name__)

RECONCILIATION_JOB_ID = "daily_streak_reconciliation"
REMINDER_JOB_ID = "daily_streak_reminders"


async def reconciliation_job(
    session_maker: async_sessionmaker[AsyncSession], clock: Clock
) -> None:
    try:
        result = await run_daily_reconciliation(session_maker, clock)
    except Exception:
        logger.exception("job.reconciliation.failed")
        return
    if result.ok:
        logger.info("job.reconciliation.succeeded", processed=result.processed)
    else:
        logger.error(
            "job.reconciliation.partial",
            processed=result.processed,
            failed_user_ids=result.failed_user_ids,
        )


async def reminder_job(
    session_maker: async_sessionmaker[AsyncSession],
    clock: Clock,
    email_service: EmailService,
) -> None:
    try:
        result = await send_streak_reminders(session_maker, clock, email_service)
    except Exception:
        logger.exception("job.reminders.failed")
        return
    logger.info("job.reminders.succeeded", sent=result.sent, failed=result.failed)


def create_scheduler(
    settings: Settings,
    session_maker: async_sessionmaker[AsyncSession],
    clock: Clock,
    email_service: EmailService,
) -> AsyncIOScheduler:
    """Build (but do not start) the scheduler with both daily jobs."""
    tz = clock.tz
    scheduler = AsyncIOScheduler(timezone=tz)
    scheduler.add_job(
        reconciliation_job,
        CronTrigger(
            hour=settings.reconciliation_hour,
            minute=settings.reconciliation_minute,
            second=0,
            timezone=tz,
        ),
        args=[session_maker, clock],
        id=RECONCILIATION_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=settings.job_misfire_grace_seconds,
    )
    scheduler.add_job(
        reminder_job,
        CronTrigger(
            hour=settings.reminder_hour,
            minute=settings.reminder_minute,
            second=0,
            timezone=tz,
        ),
        args=[session_maker, clock, email_service],
        id=REMINDER_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=settings.job_misfire_grace_seconds,
    )
    return scheduler
