"""
Analytics queries behind the dashboard charts.

All methods return JSON-ready dicts so responses can be cached in Redis as
is. Time windows are fixed-length (see shared/time_bucket_utils.py) so a
period and the one before it are directly comparable for trends.
"""

from __future__ import annotations

import asyncio
import math
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from infrastructure.cache.analytics_cache import AnalyticsCache
from repositories.click_repository import ClickRepository
from repositories.item_repository import ItemRepository
from repositories.pageview_repository import PageviewRepository
from shared.downsampling import downsample_date_series
from shared.logging import get_logger, should_sample
from shared.time_bucket_utils import (
    fill_missing_buckets,
    get_bucket_config,
    period_delta,
    previous_window,
    resolve_date_range,
)

log = get_logger(__name__)

DAYS_PER_WEEK = 7
HOURS_PER_DAY = 24

SERIES_LABELS: dict[str, str] = {
    "bookmarks": "Bookmarks",
    "services": "Services",
    "pageviews": "Pageviews",
}
ITEM_KIND_FOR_TYPE: dict[str, str] = {
    "bookmarks": "bookmark",
    "services": "service",
}


def calculate_trend(current: int, previous: int) -> int:
    """Percentage change from *previous* to *current*, rounded half up.

    A previous count of zero yields 100 when there is current activity and
    0 when there is none.
    """
    if previous > 0:
        return math.floor((current - previous) / previous * 100 + 0.5)
    return 100 if current > 0 else 0


def _series_types(series_type: str) -> list[str]:
    if series_type == "all":
        return list(SERIES_LABELS)
    return [series_type]


class AnalyticsService:
    def __init__(
        self,
        pageviews: PageviewRepository,
        clicks: ClickRepository,
        items: ItemRepository,
        cache: AnalyticsCache,
        tz: str = "UTC",
        downsample_threshold: int = 150,
        geo_limit: int = 100,
        top_items_limit: int = 10,
    ) -> None:
        self._pageviews = pageviews
        self._clicks = clicks
        self._items = items
        self._cache = cache
        self._tz = tz
        self._downsample_threshold = downsample_threshold
        self._geo_limit = geo_limit
        self._top_items_limit = top_items_limit

    async def _cached(
        self, endpoint: str, params: dict, query_fn: Callable[[], Awaitable[dict]]
    ) -> dict:
        started = time.perf_counter()
        data = await self._cache.get_or_set(endpoint, params, query_fn)
        if should_sample("analytics_query"):
            log.info(
                "analytics_query",
                endpoint=endpoint,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
                **params,
            )
        return data

    # ── Time series ──────────────────────────────────────────────────────────

    async def time_series(
        self,
        period: str = "week",
        series_type: str = "all",
        group_by: str = "day",
        downsample: Optional[int] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        threshold = downsample or self._downsample_threshold
        params = {
            "period": period,
            "type": series_type,
            "group_by": group_by,
            "downsample": threshold,
            "start_date": start_date.isoformat() if start_date else None,
            "end_date": end_date.isoformat() if end_date else None,
        }

        async def query() -> dict:
            start, end = resolve_date_range(period, start_date, end_date, now)
            if start is None:
                # A chart needs a lower bound; unbounded periods show the last week
                start = end - period_delta("week")
            bucket_config = get_bucket_config(group_by)
            kinds = _series_types(series_type)

            raw = await asyncio.gather(
                *(self._series_rows(kind, start, end, bucket_config) for kind in kinds)
            )

            filled_maps: list[dict[str, int]] = []
            labels: set[str] = set()
            for rows in raw:
                filled = fill_missing_buckets(rows, start, end, bucket_config, self._tz)
                filled_maps.append({row["date"]: row["count"] for row in filled})
                sampled = downsample_date_series(filled, threshold)
                labels.update(row["date"] for row in sampled)

            ordered = sorted(labels)
            return {
                "labels": ordered,
                "datasets": [
                    {
                        "label": SERIES_LABELS[kind],
                        "data": [values.get(label, 0) for label in ordered],
                    }
                    for kind, values in zip(kinds, filled_maps)
                ],
                "period": period,
                "group_by": group_by,
            }

        return await self._cached("time_series", params, query)

    async def _series_rows(self, kind, start, end, bucket_config) -> list[dict]:
        if kind == "pageviews":
            return await self._pageviews.time_series(start, end, bucket_config, self._tz)
        return await self._clicks.time_series(
            ITEM_KIND_FOR_TYPE[kind], start, end, bucket_config, self._tz
        )

    # ── Geo ──────────────────────────────────────────────────────────────────

    async def geo(
        self,
        period: str = "month",
        level: str = "country",
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        limit = limit or self._geo_limit
        params = {"period": period, "level": level, "limit": limit}

        async def query() -> dict:
            start, end = resolve_date_range(period, now=now)
            locations, total = await self._pageviews.geo_breakdown(level, start, end, limit)
            return {"locations": locations, "total": total, "level": level, "period": period}

        return await self._cached("geo", params, query)

    # ── Heatmap ──────────────────────────────────────────────────────────────

    async def heatmap(
        self,
        period: str = "month",
        series_type: str = "all",
        now: Optional[datetime] = None,
    ) -> dict:
        params = {"period": period, "type": series_type}

        async def query() -> dict:
            start, end = resolve_date_range(period, now=now)
            grid = {
                (day, hour): 0
                for day in range(DAYS_PER_WEEK)
                for hour in range(HOURS_PER_DAY)
            }
            for kind in _series_types(series_type):
                if kind == "pageviews":
                    cells = await self._pageviews.heatmap(start, end, self._tz)
                else:
                    cells = await self._clicks.heatmap(ITEM_KIND_FOR_TYPE[kind], start, end)
                for cell in cells:
                    key = (cell["day_of_week"], cell["hour"])
                    if key in grid:
                        grid[key] += cell["value"]

            data = [
                {"day_of_week": day, "hour": hour, "value": value}
                for (day, hour), value in sorted(grid.items())
            ]
            return {
                "data": data,
                "max_value": max(max(grid.values()), 1),
                "period": period,
                "type": series_type,
            }

        return await self._cached("heatmap", params, query)

    # ── Top items ────────────────────────────────────────────────────────────

    async def top_items(
        self,
        item_type: str = "bookmarks",
        period: str = "week",
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        limit = limit or self._top_items_limit
        params = {"type": item_type, "period": period, "limit": limit}

        async def query() -> dict:
            kind = ITEM_KIND_FOR_TYPE[item_type]
            previous_start, current_start, end = previous_window(
                period, now or datetime.now(timezone.utc)
            )
            names, current, previous = await asyncio.gather(
                self._items.names(kind),
                self._clicks.counts_by_item(kind, current_start, end),
                self._clicks.counts_by_item(
                    kind, previous_start, current_start, end_inclusive=False
                ),
            )

            ranked = sorted(
                names.items(),
                key=lambda entry: (-current.get(entry[0], 0), entry[1].lower()),
            )[:limit]
            items = []
            for item_id, name in ranked:
                clicks = current.get(item_id, 0)
                before = previous.get(item_id, 0)
                items.append(
                    {
                        "id": item_id,
                        "name": name,
                        "clicks": clicks,
                        "previous_clicks": before,
                        "trend": calculate_trend(clicks, before),
                    }
                )
            return {"items": items, "type": item_type, "period": period}

        return await self._cached("top_items", params, query)

    # ── Summary ──────────────────────────────────────────────────────────────

    async def summary(self, period: str = "week", now: Optional[datetime] = None) -> dict:
        params = {"period": period}

        async def query() -> dict:
            previous_start, current_start, end = previous_window(
                period, now or datetime.now(timezone.utc)
            )
            (
                pageviews,
                previous_pageviews,
                visitors,
                previous_visitors,
                clicks,
                previous_clicks,
                top_country,
            ) = await asyncio.gather(
                self._pageviews.count(current_start, end),
                self._pageviews.count(previous_start, current_start, end_inclusive=False),
                self._pageviews.count_unique_visitors(current_start, end),
                self._pageviews.count_unique_visitors(
                    previous_start, current_start, end_inclusive=False
                ),
                self._clicks.count(None, current_start, end),
                self._clicks.count(None, previous_start, current_start, end_inclusive=False),
                self._pageviews.top_country(current_start, end),
            )

            def metric(value: int, before: int) -> dict:
                return {
                    "value": value,
                    "previous": before,
                    "trend": calculate_trend(value, before),
                }

            return {
                "pageviews": metric(pageviews, previous_pageviews),
                "unique_visitors": metric(visitors, previous_visitors),
                "clicks": metric(clicks, previous_clicks),
                "top_country": top_country["country"] if top_country else "Unknown",
                "top_country_count": top_country["count"] if top_country else 0,
                "period": period,
            }

        return await self._cached("summary", params, query)
