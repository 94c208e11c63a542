"""Activity logging endpoints."""

from datetime import date

from fastapi import APIRouter, HTTPException, Query, Request

from core import get_logger
from core.auth import UserId
from core.clock import get_clock
from core.database import DbSession
from core.ratelimit import ACTIVITY_WRITE_LIMIT, READ_LIMIT, limiter
from schemas import (
    ActivityCreateRequest,
    ActivityListResponse,
    ActivityLogResponse,
    ActivityResponse,
)
from services.activity_service import (
    ActivityValidationError,
    get_activities,
    log_activity,
)
from services.streaks_service import StreakUpdateError
from services.users_service import UserNotFoundError, require_user

logger = get_logger(__name__)

router = APIRouter(prefix="/api/activities", tags=["activities"])


@router.post(
    "",
    response_model=ActivityLogResponse,
    status_code=201,
    responses={
        400: {"description": "Invalid activity name, duration, or date"},
        401: {"description": "Not authenticated"},
        500: {"description": "Failed to update streak"},
    },
)
@limiter.limit(ACTIVITY_WRITE_LIMIT)
async def create_activity(
    request: Request,
    body: ActivityCreateRequest,
    user_id: UserId,
    db: DbSession,
) -> ActivityLogResponse:
    """Log hours for an activity and update the caller's streak."""
    try:
        await require_user(db, user_id)
        result = await log_activity(
            db,
            user_id,
            body.name,
            body.duration_hours,
            activity_date=body.activity_date,
        )
    except UserNotFoundError:
        raise HTTPException(status_code=401, detail="Unauthorized")
    except ActivityValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StreakUpdateError:
        # Real cause is logged by the streak engine
        raise HTTPException(status_code=500, detail="Failed to update streak")

    return ActivityLogResponse(
        activity=ActivityResponse.model_validate(result.activity),
        streak_outcome=result.streak_outcome.value,
    )


@router.get(
    "",
    response_model=ActivityListResponse,
    responses={401: {"description": "Not authenticated"}},
)
@limiter.limit(READ_LIMIT)
async def list_activities(
    request: Request,
    user_id: UserId,
    db: DbSession,
    activity_date: date | None = Query(default=None, alias="date"),
) -> ActivityListResponse:
    """The caller's activities for a day (default: today)."""
    day = activity_date or get_clock().today()
    activities = await get_activities(db, user_id, day)
    return ActivityListResponse(
        activity_date=day,
        activities=[ActivityResponse.model_validate(a) for a in activities],
    )
