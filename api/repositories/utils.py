"""Shared helpers for repositories: query timing and Postgres upserts."""

import time
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import get_logger
from core.wide_event import set_wide_event_fields

logger = get_logger(__name__)

# Streak queries are single-row index lookups; anything slower is worth a look
SLOW_QUERY_THRESHOLD_MS = 250

P = ParamSpec("P")
R = TypeVar("R")


def log_slow_query(
    operation_name: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Time a repository call and report it when slow or failing.

    Slow calls are logged at WARNING and flagged on the wide event. Failures
    are flagged on the wide event and re-raised untouched so callers (the
    streak engine in particular) can wrap them.
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            started = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                set_wide_event_fields(
                    db_query_error=True,
                    db_operation=operation_name,
                    db_error_type=type(e).__name__,
                    db_duration_ms=_elapsed_ms(started),
                )
                raise

            elapsed_ms = _elapsed_ms(started)
            if elapsed_ms > SLOW_QUERY_THRESHOLD_MS:
                logger.warning(
                    "db.query.slow", operation=operation_name, duration_ms=elapsed_ms
                )
                set_wide_event_fields(
                    db_slow_query=True,
                    db_operation=operation_name,
                    db_duration_ms=elapsed_ms,
                )
            return result

        return wrapper

    return decorator


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


async def upsert_on_conflict[T](
    db: AsyncSession,
    model: type[T],
    values: dict[str, Any],
    index_elements: list[str],
    update_fields: list[str],
) -> T:
    """INSERT ... ON CONFLICT (index_elements) DO UPDATE, returning the row.

    Only ``update_fields`` are overwritten on conflict. ``onupdate`` column
    defaults do not fire here, so pass ``updated_at`` explicitly in both
    ``values`` and ``update_fields``. Does not commit.
    """
    missing = [f for f in update_fields if f not in values]
    if missing or not update_fields:
        raise ValueError(f"update_fields {missing or update_fields} not present in values")

    stmt = (
        pg_insert(model)
        .values(**values)
        .on_conflict_do_update(
            index_elements=index_elements,
            set_={f: values[f] for f in update_fields},
        )
        .returning(model)
    )
    result = await db.execute(stmt, execution_options={"populate_existing": True})
    return result.scalar_one()
