"""
Period resolution and time bucketing for analytics aggregation.

A *period* (``hour`` … ``year``, ``custom``, ``all``) selects the date range
of a query; a *bucket strategy* (``hour``, ``day``, ``week``, ``month``)
selects the granularity of a time series inside that range. Bucket labels
are produced identically by MongoDB (``$dateToString``) and by
``generate_complete_time_buckets`` so zero-filled gaps line up with
aggregated rows.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

# Fixed-length windows so a period and its preceding period are comparable
PERIOD_DELTAS: Dict[str, timedelta] = {
    "hour": timedelta(hours=1),
    "day": timedelta(days=1),
    "week": timedelta(weeks=1),
    "month": timedelta(days=30),
    "year": timedelta(days=365),
}

DEFAULT_PERIOD_DELTA = PERIOD_DELTAS["week"]


class TimeBucketStrategy(Enum):
    """Enumeration of available time bucketing strategies"""

    HOURLY = "hour"
    DAILY = "day"
    WEEKLY = "week"
    MONTHLY = "month"


class TimeBucketConfig:
    """Configuration for time bucket aggregation"""

    def __init__(
        self,
        strategy: TimeBucketStrategy,
        mongo_format: str,
        step: timedelta,
    ):
        self.strategy = strategy
        self.mongo_format = mongo_format
        # Walk step used to enumerate every label in a range
        self.step = step


BUCKET_CONFIGS = {
    TimeBucketStrategy.HOURLY: TimeBucketConfig(
        strategy=TimeBucketStrategy.HOURLY,
        mongo_format="%Y-%m-%d %H:00",
        step=timedelta(hours=1),
    ),
    TimeBucketStrategy.DAILY: TimeBucketConfig(
        strategy=TimeBucketStrategy.DAILY,
        mongo_format="%Y-%m-%d",
        step=timedelta(days=1),
    ),
    TimeBucketStrategy.WEEKLY: TimeBucketConfig(
        strategy=TimeBucketStrategy.WEEKLY,
        mongo_format="%Y-W%U",  # Year-Week, weeks start on Sunday
        step=timedelta(days=1),
    ),
    TimeBucketStrategy.MONTHLY: TimeBucketConfig(
        strategy=TimeBucketStrategy.MONTHLY,
        mongo_format="%Y-%m",
        step=timedelta(days=1),
    ),
}


def get_bucket_config(group_by: str) -> TimeBucketConfig:
    """Get the bucket configuration for a ``group_by`` value (default: daily)."""
    try:
        strategy = TimeBucketStrategy(group_by)
    except ValueError:
        strategy = TimeBucketStrategy.DAILY
    return BUCKET_CONFIGS[strategy]


def period_delta(period: str) -> timedelta:
    """Length of a named period; unknown names fall back to one week."""
    return PERIOD_DELTAS.get(period, DEFAULT_PERIOD_DELTA)


def resolve_date_range(
    period: str,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Tuple[Optional[datetime], datetime]:
    """
    Resolve the ``[start, end]`` window for a query.

    - An explicit *start_date* always wins.
    - ``all`` has no lower bound (``start`` is ``None``).
    - ``custom`` without a start date falls back to the last week.
    - End dates in the future are capped to *now*.

    Returns:
        Tuple of (start or None, end), both timezone-aware UTC.
    """
    now = now or datetime.now(timezone.utc)
    end = end_date or now
    if end > now:
        end = now

    if start_date is not None:
        return start_date, end
    if period == "all":
        return None, end
    return end - period_delta(period), end


def previous_window(
    period: str, now: Optional[datetime] = None
) -> Tuple[datetime, datetime, datetime]:
    """
    Return ``(previous_start, current_start, now)`` for trend comparison.

    The previous window has exactly the same length as the current one and
    ends where the current one begins.
    """
    now = now or datetime.now(timezone.utc)
    delta = period_delta(period)
    current_start = now - delta
    return current_start - delta, current_start, now


def create_mongo_time_bucket_expression(
    bucket_config: TimeBucketConfig,
    date_field: str = "timestamp",
    tz: str = "UTC",
) -> Dict[str, Any]:
    """
    Create the ``$dateToString`` expression that labels a document's bucket.

    Args:
        bucket_config: The bucket configuration to use
        date_field: Name of the datetime field in the collection
        tz: IANA timezone the labels are rendered in
    """
    return {
        "$dateToString": {
            "format": bucket_config.mongo_format,
            "date": f"${date_field}",
            "timezone": tz,
        }
    }


def generate_complete_time_buckets(
    start_date: datetime,
    end_date: datetime,
    bucket_config: TimeBucketConfig,
    tz: str = "UTC",
) -> List[str]:
    """
    Generate every bucket label between *start_date* and *end_date*.

    The range is walked at the strategy's step in the target timezone and
    distinct labels are kept in order, so week and month labels that
    straddle a year boundary are never skipped.
    """
    zone = ZoneInfo(tz)
    current = start_date.astimezone(zone)
    end_local = end_date.astimezone(zone)

    if bucket_config.strategy == TimeBucketStrategy.HOURLY:
        current = current.replace(minute=0, second=0, microsecond=0)
    else:
        current = current.replace(hour=0, minute=0, second=0, microsecond=0)

    buckets: List[str] = []
    seen = set()
    while current <= end_local:
        label = current.strftime(bucket_config.mongo_format)
        if label not in seen:
            seen.add(label)
            buckets.append(label)
        current += bucket_config.step

    # The end instant itself may fall into a bucket the walk stepped over
    last = end_local.strftime(bucket_config.mongo_format)
    if last not in seen:
        buckets.append(last)

    return buckets


def fill_missing_buckets(
    actual_results: List[Dict[str, Any]],
    start_date: datetime,
    end_date: datetime,
    bucket_config: TimeBucketConfig,
    tz: str = "UTC",
) -> List[Dict[str, Any]]:
    """
    Fill in missing time buckets with zero counts.

    Rows are ``{"date": label, "count": n}``; the result covers every label
    in the range in chronological order. Rows whose label falls outside the
    generated range are appended in label order.
    """
    actual_map = {row.get("date", ""): row for row in actual_results or []}
    all_buckets = generate_complete_time_buckets(start_date, end_date, bucket_config, tz)

    complete = [
        actual_map.get(bucket, {"date": bucket, "count": 0}) for bucket in all_buckets
    ]
    known = set(all_buckets)
    extra = sorted(label for label in actual_map if label not in known)
    complete.extend(actual_map[label] for label in extra)
    return complete
