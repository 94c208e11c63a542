"""Activity logging and the streak update it triggers.

Routes should use this service for all activity-related business logic.

Logging hours writes the activity row and then runs the streak engine for
that day in the same session, so both commit or roll back together.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import Clock, get_clock
from core.logger import get_logger
from core.telemetry import track_operation
from core.wide_event import set_wide_event_fields
from models import ActivityName
from repositories.activity_repository import ActivityRepository
from services.streaks_service import StreakOutcome, record_activity

logger = get_logger(__name__)

MAX_HOURS_PER_DAY = Decimal(24)


class ActivityValidationError(Exception):
    """Activity name, hours, or date rejected."""


@dataclass(frozen=True)
class ActivityResult:
    id: int
    name: ActivityName
    duration_hours: Decimal
    activity_date: date
    created_at: datetime | None
    updated_at: datetime | None


@dataclass(frozen=True)
class ActivityLogResult:
    activity: ActivityResult
    streak_outcome: StreakOutcome


def _parse_name(name: str | ActivityName) -> ActivityName:
    try:
        return ActivityName(name)
    except ValueError:
        raise ActivityValidationError(f"Invalid activity name: {name}") from None


def _parse_hours(hours: float | Decimal | str) -> Decimal:
    try:
        value = Decimal(str(hours)).quantize(Decimal("0.01"))
        if not value.is_finite():
            raise InvalidOperation
    except InvalidOperation:
        raise ActivityValidationError(f"Invalid duration: {hours}") from None
    if value <= 0 or value > MAX_HOURS_PER_DAY:
        raise ActivityValidationError("duration_hours must be greater than 0 and at most 24")
    return value


def _to_result(activity) -> ActivityResult:
    return ActivityResult(
        id=activity.id,
        name=activity.name,
        duration_hours=activity.duration_hours,
        activity_date=activity.activity_date,
        created_at=activity.created_at,
        updated_at=activity.updated_at,
    )


@track_operation("activity_logging")
async def log_activity(
    db: AsyncSession,
    user_id: int,
    name: str | ActivityName,
    duration_hours: float | Decimal | str,
    activity_date: date | None = None,
    clock: Clock | None = None,
) -> ActivityLogResult:
    """Record hours for an activity and update the user's streak.

    Logging the same activity twice on one day overwrites the hours.

    Raises:
        ActivityValidationError: bad name, hours outside (0, 24], or a
            date in the future.
        StreakUpdateError: the streak store failed. The caller's
            transaction rolls back the activity write with it.
    """
    clock = clock or get_clock()
    activity_name = _parse_name(name)
    hours = _parse_hours(duration_hours)
    today = clock.today()
    day = activity_date or today
    if day > today:
        raise ActivityValidationError("Cannot log activity for a future date")

    activity = await ActivityRepository(db).upsert_activity(
        user_id=user_id,
        name=activity_name,
        duration_hours=hours,
        activity_date=day,
    )

    outcome = await record_activity(db, user_id, day, is_cron=False, clock=clock)

    set_wide_event_fields(activity_name=activity_name.value, activity_date=day.isoformat())
    logger.info(
        "activity.logged",
        user_id=user_id,
        activity=activity_name.value,
        activity_date=day.isoformat(),
        streak_outcome=outcome.value,
    )

    return ActivityLogResult(activity=_to_result(activity), streak_outcome=outcome)


async def get_activities(
    db: AsyncSession, user_id: int, on_date: date
) -> Sequence[ActivityResult]:
    activities = await ActivityRepository(db).get_for_user_on_date(user_id, on_date)
    return [_to_result(a) for a in activities]
