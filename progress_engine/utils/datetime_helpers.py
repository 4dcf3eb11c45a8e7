"""
Standardized Date/Time Handling Utilities

CRITICAL RULES:
- Always store datetimes as UTC (use ensure_utc())
- Calendar-day decisions (streaks) use the clock's timezone
- Never mix naive and aware datetimes
"""

import logging
from datetime import datetime, date, timedelta
from typing import Optional, Union
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

UTC = ZoneInfo("UTC")

# Default timezone if none is configured
DEFAULT_TIMEZONE = "UTC"


def now_utc() -> datetime:
    """
    Get current datetime in UTC (timezone-aware)

    Returns:
        Current datetime in UTC with timezone info
    """
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure datetime is in UTC (for storage)

    Args:
        dt: Datetime (can be None, naive, or aware)

    Returns:
        Datetime in UTC, or None if input was None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Assume UTC for naive datetimes
        logger.warning(f"Received naive datetime, assuming UTC: {dt}")
        return dt.replace(tzinfo=UTC)

    return dt.astimezone(UTC)


def _resolve_zone(tz: Union[str, ZoneInfo, None]) -> ZoneInfo:
    if tz is None:
        return ZoneInfo(DEFAULT_TIMEZONE)
    if isinstance(tz, ZoneInfo):
        return tz
    return ZoneInfo(tz)


class Clock:
    """
    Source of "now" and "today" for progress calculations.

    ``now()`` is always an aware UTC datetime; ``today()`` and
    ``local_date()`` resolve calendar days in the clock's timezone.
    """

    def __init__(self, tz: Union[str, ZoneInfo, None] = None):
        self.tz = _resolve_zone(tz)

    def now(self) -> datetime:
        raise NotImplementedError

    def today(self) -> date:
        return self.local_date(self.now())

    def local_date(self, dt: datetime) -> date:
        """Calendar date of ``dt`` in the clock's timezone"""
        return ensure_utc(dt).astimezone(self.tz).date()


class SystemClock(Clock):
    """Wall-clock time"""

    def now(self) -> datetime:
        return now_utc()


class FrozenClock(Clock):
    """
    Clock pinned to a fixed instant; advance it explicitly.

    Example:
        clock = FrozenClock(datetime(2024, 1, 15, 12, 0, tzinfo=UTC))
        clock.advance(days=1)
    """

    def __init__(self, frozen_at: datetime, tz: Union[str, ZoneInfo, None] = None):
        super().__init__(tz)
        self._now = ensure_utc(frozen_at)

    def now(self) -> datetime:
        return self._now

    def set(self, dt: datetime) -> None:
        self._now = ensure_utc(dt)

    def advance(self, **kwargs) -> datetime:
        """Move forward by a timedelta built from kwargs (days=, hours=, ...)"""
        self._now = self._now + timedelta(**kwargs)
        return self._now
