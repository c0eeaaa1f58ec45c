"""Datetime utility functions for consistent timezone handling."""

from datetime import datetime, timezone
from typing import Callable, Optional

# Injectable source of "now"; services accept one so tests can pin time.
Clock = Callable[[], datetime]


def get_current_utc_datetime() -> datetime:
    """
    Get current datetime in UTC timezone.

    Returns:
        datetime: Current UTC datetime with timezone info

    Example:
        >>> now = get_current_utc_datetime()
        >>> now.tzinfo
        datetime.timezone.utc
    """
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def dt_to_iso(value: Optional[datetime]) -> Optional[str]:
    if not value:
        return None
    return ensure_utc(value).isoformat()
