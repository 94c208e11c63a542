"""Pydantic schemas for API request/response validation."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from models import ActivityName


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str


class ActivityCreateRequest(BaseModel):
    """Log hours for one activity. Date defaults to today."""

    name: ActivityName
    duration_hours: Decimal = Field(gt=0, le=24, decimal_places=2)
    activity_date: date | None = None


class ActivityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: ActivityName
    duration_hours: Decimal
    activity_date: date
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ActivityLogResponse(BaseModel):
    """Result of logging an activity, including what happened to the streak."""

    activity: ActivityResponse
    streak_outcome: str


class ActivityListResponse(BaseModel):
    activity_date: date
    activities: list[ActivityResponse]


class StreakResponse(BaseModel):
    """A user's streak record for one calendar day."""

    model_config = ConfigDict(from_attributes=True)

    username: str
    activity_date: date
    current: int
    longest: int
