"""Wide Event context for canonical log lines.

A request-scoped dict that routes and services enrich as a request runs.
RequestLoggingMiddleware creates it at request start and emits it as a
single ``request.completed`` log line at request end.

Usage:
    from core.wide_event import set_wide_event_fields

    set_wide_event_fields(streak_outcome="claimed", streak_current=4)
"""

from contextvars import ContextVar
from typing import Any

_wide_event: ContextVar[dict[str, Any]] = ContextVar("wide_event")


def init_wide_event(**initial: Any) -> dict[str, Any]:
    """Start a new wide event for the current async context."""
    event: dict[str, Any] = dict(initial)
    _wide_event.set(event)
    return event


def get_wide_event() -> dict[str, Any]:
    """Current wide event dict, or an empty dict outside a request."""
    try:
        return _wide_event.get()
    except LookupError:
        return {}


def set_wide_event_fields(**kwargs: Any) -> None:
    """Set fields on the current wide event.

    No-op outside request context (scheduler jobs, CLI, tests), so
    services can call it unconditionally.
    """
    event = get_wide_event()
    if event:
        event.update(kwargs)


def clear_wide_event() -> None:
    _wide_event.set({})
