"""Streak lookup endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Query, Request

from core.auth import UserId
from core.clock import get_clock
from core.database import DbSession
from core.ratelimit import READ_LIMIT, limiter
from core.wide_event import set_wide_event_fields
from schemas import StreakResponse
from services.streaks_service import get_streak
from services.users_service import UserNotFoundError, get_user_by_username

router = APIRouter(prefix="/api/streaks", tags=["streaks"])

ValidatedUsername = Annotated[
    str,
    Path(min_length=1, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$"),
]


@router.get(
    "/{username}",
    response_model=StreakResponse,
    responses={
        401: {"description": "Not authenticated"},
        404: {"description": "User or streak record not found"},
    },
)
@limiter.limit(READ_LIMIT)
async def get_user_streak(
    request: Request,
    username: ValidatedUsername,
    user_id: UserId,
    db: DbSession,
    on_date: date | None = Query(default=None, alias="date"),
) -> StreakResponse:
    """Streak record for a user on a day (default: today)."""
    day = on_date or get_clock().today()

    try:
        user = await get_user_by_username(db, username)
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")

    streak = await get_streak(db, user.id, day)
    if streak is None:
        raise HTTPException(status_code=404, detail="Streak not found")

    set_wide_event_fields(current_streak=streak.current)

    return StreakResponse(
        username=user.username,
        activity_date=streak.activity_date,
        current=streak.current,
        longest=streak.longest,
    )
