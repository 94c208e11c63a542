"""User repository for database operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import User


class UserRepository:
    """Repository for User database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, user_id: int) -> User | None:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_username(self, username: str) -> User | None:
        """Exact, case-sensitive match on the stored username."""
        result = await self.db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def list_all_ids(self) -> list[int]:
        """All user ids, ascending."""
        result = await self.db.execute(select(User.id).order_by(User.id))
        return list(result.scalars().all())

    async def get_many_by_ids(self, user_ids: list[int]) -> list[User]:
        """Get multiple users by their IDs in a single query.

        Returns users ordered by id. Missing IDs are silently skipped.
        """
        if not user_ids:
            return []
        result = await self.db.execute(
            select(User).where(User.id.in_(user_ids)).order_by(User.id)
        )
        return list(result.scalars().all())
