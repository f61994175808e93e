"""
Pageview persistence and aggregations over the `pageviews` collection.

mark_enriched() filters on ``enriched: False`` so a second enrichment of
the same event matches nothing: enrichment is applied at most once even if
two tasks race on one event.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from repositories.aggregation_strategies import (
    GeoStrategy,
    HeatmapStrategy,
    TimeSeriesStrategy,
)
from repositories.base import BaseRepository, to_object_id
from schemas.models.geo import GeoLocation, empty_geo_fields
from schemas.models.pageview import PageviewDoc
from shared.time_bucket_utils import TimeBucketConfig

TIME_FIELD = "timestamp"


class PageviewRepository(BaseRepository):
    async def insert(self, doc: PageviewDoc) -> str:
        result = await self._col.insert_one(doc.to_mongo())
        return str(result.inserted_id)

    async def get(self, event_id: str) -> Optional[PageviewDoc]:
        oid = to_object_id(event_id)
        if oid is None:
            return None
        return PageviewDoc.from_mongo(await self._col.find_one({"_id": oid}))

    async def mark_enriched(
        self, event_id: str, location: Optional[GeoLocation], now: datetime
    ) -> bool:
        """Set the enriched flag, copying *location* or leaving geo fields None.

        Returns False when the event is missing or was already enriched.
        """
        oid = to_object_id(event_id)
        if oid is None:
            return False
        fields = location.as_fields() if location is not None else empty_geo_fields()
        result = await self._col.update_one(
            {"_id": oid, "enriched": False},
            {"$set": {**fields, "enriched": True, "enriched_at": now}},
        )
        return result.modified_count == 1

    async def count(
        self,
        start: Optional[datetime],
        end: Optional[datetime],
        *,
        end_inclusive: bool = True,
    ) -> int:
        query = self._with_range({}, TIME_FIELD, start, end, end_inclusive=end_inclusive)
        return await self._col.count_documents(query)

    async def count_unique_visitors(
        self,
        start: Optional[datetime],
        end: Optional[datetime],
        *,
        end_inclusive: bool = True,
    ) -> int:
        query = self._with_range(
            {"ip_hash": {"$ne": None}},
            TIME_FIELD,
            start,
            end,
            end_inclusive=end_inclusive,
        )
        rows = await self._aggregate(
            [
                {"$match": query},
                {"$group": {"_id": "$ip_hash"}},
                {"$count": "visitors"},
            ]
        )
        return int(rows[0]["visitors"]) if rows else 0

    async def top_country(
        self, start: Optional[datetime], end: Optional[datetime]
    ) -> Optional[dict]:
        """The most frequent country name in range as ``{"country", "count"}``."""
        query = self._with_range({"country_name": {"$ne": None}}, TIME_FIELD, start, end)
        rows = await self._aggregate(
            [
                {"$match": query},
                {"$group": {"_id": "$country_name", "count": {"$sum": 1}}},
                {"$sort": {"count": -1, "_id": 1}},
                {"$limit": 1},
            ]
        )
        if not rows:
            return None
        return {"country": rows[0]["_id"], "count": int(rows[0]["count"])}

    def _geo_query(
        self, level: str, start: Optional[datetime], end: Optional[datetime]
    ) -> dict:
        query: dict = {"enriched": True, "country_code": {"$ne": None}}
        if level == "city":
            query["city"] = {"$ne": None}
        return self._with_range(query, TIME_FIELD, start, end)

    async def geo_breakdown(
        self,
        level: str,
        start: Optional[datetime],
        end: Optional[datetime],
        limit: int,
    ) -> tuple[list[dict], int]:
        """Grouped locations plus the total count over the same filter."""
        query = self._geo_query(level, start, end)
        strategy = GeoStrategy(level=level, limit=limit)
        rows = await self._aggregate(strategy.build_pipeline(query))
        total = await self._col.count_documents(query)
        return strategy.format_results(rows), total

    async def heatmap(
        self, start: Optional[datetime], end: Optional[datetime], tz: str
    ) -> list[dict]:
        strategy = HeatmapStrategy(stored_fields=False, date_field=TIME_FIELD, timezone=tz)
        query = self._with_range({}, TIME_FIELD, start, end)
        return strategy.format_results(await self._aggregate(strategy.build_pipeline(query)))

    async def time_series(
        self,
        start: Optional[datetime],
        end: Optional[datetime],
        bucket_config: TimeBucketConfig,
        tz: str,
    ) -> list[dict]:
        strategy = TimeSeriesStrategy(bucket_config, date_field=TIME_FIELD, timezone=tz)
        query = self._with_range({}, TIME_FIELD, start, end)
        return strategy.format_results(await self._aggregate(strategy.build_pipeline(query)))
