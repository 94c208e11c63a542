"""Calendar clock for streak dates.

Every streak date is a calendar day in one fixed timezone. The clock is
the only place that reads the wall clock, so services receive it by
injection and tests can pin it.
"""

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from core.config import get_settings


class Clock:
    """Supplies "now" and "today" in a fixed named timezone."""

    def __init__(self, timezone_name: str) -> None:
        self.timezone_name = timezone_name
        self.tz = ZoneInfo(timezone_name)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        """Current calendar date in the clock's zone (no time-of-day)."""
        return self.now().date()

    def yesterday(self) -> date:
        return self.today() - timedelta(days=1)

    def to_local_date(self, value: datetime) -> date:
        """Truncate a datetime to its calendar day in the clock's zone.

        Naive datetimes are taken to already be local wall-clock time.
        """
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(self.tz).date()

    def __repr__(self) -> str:
        return f"Clock({self.timezone_name!r})"


def get_clock() -> Clock:
    return Clock(get_settings().streak_timezone)
