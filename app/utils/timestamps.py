"""Timestamp utilities for UTC handling.

All datetimes handled by the matching engine are timezone-aware UTC. Storage
keeps them as ISO 8601 strings with a 'Z' suffix so lexical comparison in SQL
matches chronological order.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

STORAGE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure a datetime is timezone-aware and in UTC.

    Naive datetimes are treated as UTC; aware datetimes are converted.

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


def format_timestamp(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime for database storage (microsecond precision, 'Z' suffix)."""
    dt_utc = ensure_utc(dt)
    if dt_utc is None:
        return None
    return dt_utc.strftime(STORAGE_FORMAT)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO 8601 string back into a UTC datetime.

    Accepts values with or without microseconds and with or without the
    trailing 'Z'. Empty strings are treated as missing.

    Args:
        value: Stored timestamp string

    Returns:
        Timezone-aware datetime in UTC or None
    """
    if not value:
        return None

    cleaned = value.strip().rstrip("Z")
    try:
        dt = datetime.strptime(cleaned, "%Y-%m-%dT%H:%M:%S.%f")
    except ValueError:
        dt = datetime.strptime(cleaned, "%Y-%m-%dT%H:%M:%S")

    return dt.replace(tzinfo=timezone.utc)


def utc_today(now: Optional[datetime] = None) -> date:
    """Return the current UTC calendar date (or the date of ``now``)."""
    return ensure_utc(now or utc_now()).date()


def add_seconds(dt: datetime, seconds: int) -> datetime:
    """Return ``dt`` shifted forward by ``seconds``, normalized to UTC."""
    return ensure_utc(dt) + timedelta(seconds=seconds)


def isoformat_or_none(value) -> Optional[str]:
    """Render a date/datetime as ISO 8601 for API responses."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
    return value.isoformat()
