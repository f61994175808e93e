"""
Aggregation pipeline strategies for the analytics queries.

Each strategy builds the pipeline for one breakdown from a base ``$match``
filter and formats the raw aggregation rows into plain dicts. Repositories
pick a strategy; zero-filling of empty buckets happens in the service.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from schemas.models.geo import UNKNOWN_COUNTRY
from shared.time_bucket_utils import (
    TimeBucketConfig,
    create_mongo_time_bucket_expression,
)


class AggregationStrategy(ABC):
    """Abstract base class for aggregation strategies"""

    @abstractmethod
    def build_pipeline(self, base_query: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Build aggregation pipeline for this strategy"""

    @abstractmethod
    def format_results(self, results: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Format the aggregation results"""


class TimeSeriesStrategy(AggregationStrategy):
    """Event counts per time bucket, labelled in the configured timezone."""

    def __init__(
        self,
        bucket_config: TimeBucketConfig,
        date_field: str = "timestamp",
        timezone: str = "UTC",
    ):
        self.bucket_config = bucket_config
        self.date_field = date_field
        self.timezone = timezone

    def build_pipeline(self, base_query: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [
            {"$match": base_query},
            {
                "$group": {
                    "_id": create_mongo_time_bucket_expression(
                        self.bucket_config, self.date_field, self.timezone
                    ),
                    "count": {"$sum": 1},
                }
            },
            {"$sort": {"_id": 1}},
        ]

    def format_results(self, results: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [
            {"date": row["_id"], "count": int(row.get("count", 0))}
            for row in results
            if row.get("_id") is not None
        ]


class HeatmapStrategy(AggregationStrategy):
    """Event counts per (day_of_week, hour) cell; 0 = Sunday.

    Clicks carry stored ``day_of_week``/``hour_of_day`` fields. Pageviews do
    not, so their cells are derived from *date_field* in *timezone*; Mongo's
    ``$dayOfWeek`` is 1 = Sunday and is shifted to match the stored fields.
    """

    def __init__(
        self,
        stored_fields: bool,
        date_field: str = "timestamp",
        timezone: str = "UTC",
    ):
        self.stored_fields = stored_fields
        self.date_field = date_field
        self.timezone = timezone

    def _group_key(self) -> Dict[str, Any]:
        if self.stored_fields:
            return {"day": "$day_of_week", "hour": "$hour_of_day"}
        date = {"date": f"${self.date_field}", "timezone": self.timezone}
        return {
            "day": {"$subtract": [{"$dayOfWeek": date}, 1]},
            "hour": {"$hour": date},
        }

    def build_pipeline(self, base_query: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [
            {"$match": base_query},
            {"$group": {"_id": self._group_key(), "count": {"$sum": 1}}},
        ]

    def format_results(self, results: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [
            {
                "day_of_week": int(row["_id"]["day"]),
                "hour": int(row["_id"]["hour"]),
                "value": int(row.get("count", 0)),
            }
            for row in results
        ]


class GeoStrategy(AggregationStrategy):
    """Enriched pageviews per country (or city) with averaged coordinates."""

    def __init__(self, level: str = "country", limit: int = 100):
        self.level = level
        self.limit = limit

    def _group_key(self) -> Dict[str, Any]:
        key = {"country_code": "$country_code", "country_name": "$country_name"}
        if self.level == "city":
            key["city"] = "$city"
        return key

    def build_pipeline(self, base_query: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [
            {"$match": base_query},
            {
                "$group": {
                    "_id": self._group_key(),
                    "count": {"$sum": 1},
                    "latitude": {"$avg": "$latitude"},
                    "longitude": {"$avg": "$longitude"},
                }
            },
            # _id tiebreak keeps equal counts in a stable order
            {"$sort": {"count": -1, "_id": 1}},
            {"$limit": self.limit},
        ]

    def format_results(self, results: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        formatted = []
        for row in results:
            key = row["_id"]
            item = {
                "country_code": key.get("country_code") or UNKNOWN_COUNTRY,
                "country_name": key.get("country_name") or "Unknown",
                "count": int(row.get("count", 0)),
                "latitude": row.get("latitude") or 0.0,
                "longitude": row.get("longitude") or 0.0,
            }
            if self.level == "city":
                item["city"] = key.get("city") or "Unknown"
            formatted.append(item)
        return formatted


class ItemClicksStrategy(AggregationStrategy):
    """Click counts per item id."""

    def build_pipeline(self, base_query: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [
            {"$match": base_query},
            {"$group": {"_id": "$item_id", "count": {"$sum": 1}}},
        ]

    def format_results(self, results: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [
            {"item_id": str(row["_id"]), "count": int(row.get("count", 0))}
            for row in results
        ]
