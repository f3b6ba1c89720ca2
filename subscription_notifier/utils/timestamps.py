"""Timestamp utilities for UTC handling, storage formatting and local days.

This module provides utilities for working with timestamps:
- Getting current UTC time
- Parsing and formatting ISO 8601 strings as stored in the database
- Translating a UTC instant into a calendar day in a scheduler timezone
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo

STORAGE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"
DATE_FORMAT = "%Y-%m-%d"


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Current UTC time with timezone info

    Example:
        >>> now = utc_now()
        >>> now.tzinfo == timezone.utc
        True
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure a datetime is timezone-aware and in UTC.

    If the datetime is timezone-naive, it's treated as UTC.
    If the datetime has a different timezone, it's converted to UTC.

    Args:
        dt: Datetime to convert (can be None)

    Returns:
        Timezone-aware datetime in UTC, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def format_storage_timestamp(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime for database storage (``YYYY-MM-DDTHH:MM:SS.ffffffZ``).

    Fixed-width UTC strings compare lexicographically in time order, which the
    history window queries rely on.
    """
    dt_utc = ensure_utc(dt)
    if dt_utc is None:
        return None
    return dt_utc.strftime(STORAGE_FORMAT)


def parse_storage_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO 8601 timestamp back to an aware UTC datetime.

    Accepts the storage format as well as second-precision and ``+00:00``
    variants written by other tools.

    Returns:
        Timezone-aware datetime in UTC, or None for empty input
    """
    if value is None or not str(value).strip():
        return None

    cleaned = str(value).strip()
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"

    try:
        return ensure_utc(datetime.fromisoformat(cleaned))
    except ValueError:
        return ensure_utc(datetime.strptime(cleaned[:19], "%Y-%m-%dT%H:%M:%S"))


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as second-precision ISO 8601 UTC (for logs and CLI output).

    Example:
        >>> dt = datetime(2025, 11, 4, 12, 0, 0, tzinfo=timezone.utc)
        >>> format_timestamp(dt)
        '2025-11-04T12:00:00Z'
    """
    dt_utc = ensure_utc(dt)
    if dt_utc is None:
        return ""
    return dt_utc.strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` string (or a longer ISO timestamp) into a date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    cleaned = str(value).strip()
    if not cleaned:
        return None
    return datetime.strptime(cleaned[:10], DATE_FORMAT).date()


def local_today(now: datetime, tz_name: str) -> date:
    """Return the calendar date of ``now`` as seen in ``tz_name``.

    Example:
        >>> local_today(datetime(2024, 1, 15, 20, 0, tzinfo=timezone.utc), "Asia/Shanghai")
        datetime.date(2024, 1, 16)
    """
    return ensure_utc(now).astimezone(ZoneInfo(tz_name)).date()


def local_day_bounds(day: date, tz_name: str) -> Tuple[datetime, datetime]:
    """Return the UTC instants bounding ``day`` in ``tz_name``.

    Returns:
        Tuple of (start inclusive, end exclusive), both aware UTC datetimes
    """
    zone = ZoneInfo(tz_name)
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)
