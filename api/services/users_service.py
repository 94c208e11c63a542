"""User service for user-related business logic."""

from sqlalchemy.ext.asyncio import AsyncSession

from models import User
from repositories.user_repository import UserRepository


class UserNotFoundError(Exception):
    """No user with the requested id or username."""


def normalize_username(username: str) -> str:
    """Trim surrounding whitespace. Usernames are matched case-sensitively."""
    return username.strip()


async def get_user_by_username(db: AsyncSession, username: str) -> User:
    user = await UserRepository(db).get_by_username(normalize_username(username))
    if user is None:
        raise UserNotFoundError(f"User {username!r} not found")
    return user


async def require_user(db: AsyncSession, user_id: int) -> User:
    """Load the authenticated user, raising if the account no longer exists."""
    user = await UserRepository(db).get_by_id(user_id)
    if user is None:
        raise UserNotFoundError(f"User {user_id} not found")
    return user
