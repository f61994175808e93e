"""
Click persistence and aggregations over the `clicks` collection.

Bookmark and service clicks share one collection, discriminated by
``item_kind``. Clicks are immutable once inserted.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from repositories.aggregation_strategies import (
    HeatmapStrategy,
    ItemClicksStrategy,
    TimeSeriesStrategy,
)
from repositories.base import BaseRepository
from schemas.models.click import ClickDoc, ItemKind
from shared.time_bucket_utils import TimeBucketConfig

TIME_FIELD = "clicked_at"


class ClickRepository(BaseRepository):
    async def insert(self, doc: ClickDoc) -> str:
        result = await self._col.insert_one(doc.to_mongo())
        return str(result.inserted_id)

    def _query(
        self,
        item_kind: Optional[ItemKind],
        start: Optional[datetime],
        end: Optional[datetime],
        *,
        end_inclusive: bool = True,
    ) -> dict:
        query: dict = {} if item_kind is None else {"item_kind": item_kind}
        return self._with_range(query, TIME_FIELD, start, end, end_inclusive=end_inclusive)

    async def count(
        self,
        item_kind: Optional[ItemKind],
        start: Optional[datetime],
        end: Optional[datetime],
        *,
        end_inclusive: bool = True,
    ) -> int:
        """Clicks in range; *item_kind* None counts bookmarks and services together."""
        return await self._col.count_documents(
            self._query(item_kind, start, end, end_inclusive=end_inclusive)
        )

    async def counts_by_item(
        self,
        item_kind: ItemKind,
        start: Optional[datetime],
        end: Optional[datetime],
        *,
        end_inclusive: bool = True,
    ) -> dict[str, int]:
        strategy = ItemClicksStrategy()
        rows = await self._aggregate(
            strategy.build_pipeline(
                self._query(item_kind, start, end, end_inclusive=end_inclusive)
            )
        )
        return {row["item_id"]: row["count"] for row in strategy.format_results(rows)}

    async def heatmap(
        self, item_kind: ItemKind, start: Optional[datetime], end: Optional[datetime]
    ) -> list[dict]:
        strategy = HeatmapStrategy(stored_fields=True)
        rows = await self._aggregate(
            strategy.build_pipeline(self._query(item_kind, start, end))
        )
        return strategy.format_results(rows)

    async def time_series(
        self,
        item_kind: ItemKind,
        start: Optional[datetime],
        end: Optional[datetime],
        bucket_config: TimeBucketConfig,
        tz: str,
    ) -> list[dict]:
        strategy = TimeSeriesStrategy(bucket_config, date_field=TIME_FIELD, timezone=tz)
        rows = await self._aggregate(
            strategy.build_pipeline(self._query(item_kind, start, end))
        )
        return strategy.format_results(rows)
