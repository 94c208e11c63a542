"""Repository for logged activity hours."""

from collections.abc import Sequence
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Activity, ActivityName, utcnow
from repositories.utils import log_slow_query, upsert_on_conflict


class ActivityRepository:
    """Repository for user activity operations."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @log_slow_query("activity_upsert")
    async def upsert_activity(
        self,
        user_id: int,
        name: ActivityName,
        duration_hours: Decimal,
        activity_date: date,
    ) -> Activity:
        """Create the (user, name, date) entry or overwrite its hours."""
        now = utcnow()
        return await upsert_on_conflict(
            self.db,
            Activity,
            values={
                "user_id": user_id,
                "name": name,
                "duration_hours": duration_hours,
                "activity_date": activity_date,
                "created_at": now,
                "updated_at": now,
            },
            index_elements=["user_id", "name", "activity_date"],
            update_fields=["duration_hours", "updated_at"],
        )

    @log_slow_query("activity_get_for_user_on_date")
    async def get_for_user_on_date(
        self, user_id: int, activity_date: date
    ) -> Sequence[Activity]:
        result = await self.db.execute(
            select(Activity)
            .where(
                Activity.user_id == user_id,
                Activity.activity_date == activity_date,
            )
            .order_by(Activity.name)
        )
        return result.scalars().all()
