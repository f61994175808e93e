"""
Read access to the global key/value `settings` collection.

Documents look like ``{"key": "geoipEnabled", "value": "true", "user_id": None}``.
Only global rows (no user id) are read; per-user settings belong to the
dashboard's CRUD layer.
"""

from __future__ import annotations

from typing import Optional

from repositories.base import BaseRepository

ENRICHMENT_KEYS: tuple[str, ...] = (
    "geoipEnabled",
    "geoipProvider",
    "geoipMaxmindPath",
    "geoipIpinfoToken",
)


class SettingsRepository(BaseRepository):
    async def get_global(
        self, keys: tuple[str, ...] = ENRICHMENT_KEYS
    ) -> dict[str, Optional[str]]:
        cursor = self._col.find(
            {"key": {"$in": list(keys)}, "user_id": None},
            projection={"_id": 0, "key": 1, "value": 1},
        )
        values: dict[str, Optional[str]] = {}
        async for doc in cursor:
            value = doc.get("value")
            values[doc["key"]] = None if value is None else str(value)
        return values
