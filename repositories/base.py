"""
Shared plumbing for the async MongoDB repositories.

Repositories take a pymongo AsyncCollection in their constructor so tests
can hand them an AsyncMock; services never touch collections directly.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.asynchronous.collection import AsyncCollection


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Coerce a string id to ObjectId; None when it is not a valid id."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def date_range_filter(
    start: Optional[datetime],
    end: Optional[datetime],
    *,
    end_inclusive: bool = True,
) -> dict:
    """``{"$gte": start, "$lte"/"$lt": end}`` with unset bounds omitted."""
    condition: dict = {}
    if start is not None:
        condition["$gte"] = start
    if end is not None:
        condition["$lte" if end_inclusive else "$lt"] = end
    return condition


class BaseRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def _aggregate(self, pipeline: list[dict]) -> list[dict]:
        cursor = await self._col.aggregate(pipeline)
        return await cursor.to_list(length=None)

    def _with_range(
        self,
        query: dict,
        field: str,
        start: Optional[datetime],
        end: Optional[datetime],
        *,
        end_inclusive: bool = True,
    ) -> dict:
        condition = date_range_filter(start, end, end_inclusive=end_inclusive)
        if condition:
            query = {**query, field: condition}
        return query
