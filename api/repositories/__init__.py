"""Repository layer for database operations.

Repositories encapsulate all database queries, keeping services free of
SQL and routes free of both. Repositories never commit; the caller owns
the transaction.
"""

from repositories.activity_repository import ActivityRepository
from repositories.streak_repository import StreakRepository
from repositories.user_repository import UserRepository
from repositories.utils import log_slow_query

__all__ = [
    "ActivityRepository",
    "StreakRepository",
    "UserRepository",
    "log_slow_query",
]
