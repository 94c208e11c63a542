"""Streak reminder emails.

Runs each morning after reconciliation: users whose streak record for
yesterday still has current = 0 get one reminder. Read-only against the
streak table.
"""

from dataclasses import dataclass
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.clock import Clock
from core.config import get_settings
from core.logger import get_logger
from core.telemetry import track_operation
from repositories.streak_repository import StreakRepository
from repositories.user_repository import UserRepository
from services.email_service import EmailService, build_streak_reminder

logger = get_logger(__name__)


@dataclass
class ReminderResult:
    target_date: date
    total: int = 0
    sent: int = 0
    failed: int = 0


@track_operation("streak_reminders")
async def send_streak_reminders(
    session_maker: async_sessionmaker[AsyncSession],
    clock: Clock,
    email_service: EmailService,
) -> ReminderResult:
    """Email every user who missed yesterday.

    A failed delivery is logged and counted; it never stops the batch.
    """
    target_date = clock.yesterday()
    result = ReminderResult(target_date=target_date)

    async with session_maker() as db:
        user_ids = await StreakRepository(db).find_user_ids_with_current_zero(
            target_date
        )
        users = await UserRepository(db).get_many_by_ids(user_ids)

    result.total = len(users)
    if not users:
        logger.info("reminders.none_due", target_date=target_date.isoformat())
        return result

    app_url = get_settings().frontend_url
    for user in users:
        message = build_streak_reminder(user.username, user.email, app_url)
        try:
            await email_service.send_email(message)
        except Exception:
            logger.warning(
                "reminder.send.failed", user_id=user.id, exc_info=True
            )
            result.failed += 1
            continue
        result.sent += 1

    logger.info(
        "reminders.sent",
        target_date=target_date.isoformat(),
        total=result.total,
        sent=result.sent,
        failed=result.failed,
    )
    return result
