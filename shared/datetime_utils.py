"""
Date/time parsing helpers, framework-agnostic.

parse_datetime normalises query-string dates for the analytics endpoints;
most_recent_weekday backs the GeoLite2 staleness check.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse a date/time value into a timezone-aware UTC datetime.

    Accepts:
    - ``None`` → ``None``
    - ``int`` / ``float`` → treated as Unix epoch seconds
    - ``str`` ending in ``"Z"`` → converted to ``+00:00`` before parsing
    - Any ISO 8601 string (``datetime.fromisoformat``)

    Naive datetimes (no ``tzinfo``) are assumed to be UTC.

    Returns:
        A timezone-aware ``datetime`` in UTC, or ``None`` if *value* is ``None``
        or cannot be parsed.
    """
    if value is None:
        return None
    try:
        if isinstance(value, datetime):
            dt = value
        elif isinstance(value, (int, float)):
            return datetime.fromtimestamp(int(value), tz=timezone.utc)
        else:
            raw = str(value).strip()
            if raw.isdigit():
                return datetime.fromtimestamp(int(raw), tz=timezone.utc)
            if raw.endswith("Z"):
                raw = raw[:-1] + "+00:00"
            dt = datetime.fromisoformat(raw)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    except (ValueError, OSError, OverflowError):
        return None


def most_recent_weekday(now: datetime, weekday: int) -> datetime:
    """Midnight of the latest *weekday* (Monday = 0) strictly before *now*'s date.

    On the weekday itself the previous week's occurrence is returned, since
    a release published today may not have been picked up yet.
    """
    days_back = (now.weekday() - weekday) % 7 or 7
    day = now - timedelta(days=days_back)
    return day.replace(hour=0, minute=0, second=0, microsecond=0)
