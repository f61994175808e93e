"""
Geo cache persistence over the `geo_cache` collection.

One entry per hashed IP, enforced by a unique index on ``ip_hash``
(repositories/indexes.py). Writes are upserts keyed on the hash, so two
enrichments racing on the same address both succeed and the last write
wins. Expiry is checked on read; expired entries are left in place and
overwritten by the next successful lookup.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pymongo.errors import PyMongoError

from errors import CacheWriteError
from repositories.base import BaseRepository
from schemas.models.geo import GeoLocation
from schemas.models.geo_cache import GeoCacheDoc


class GeoCacheRepository(BaseRepository):
    async def get(self, ip_hash: str, now: datetime) -> Optional[GeoCacheDoc]:
        """Return the fresh entry for *ip_hash*; None when missing or expired."""
        doc = await self._col.find_one({"ip_hash": ip_hash, "expires_at": {"$gt": now}})
        return GeoCacheDoc.from_mongo(doc)

    async def upsert(
        self,
        ip_hash: str,
        location: GeoLocation,
        provider: str,
        expires_at: datetime,
        now: Optional[datetime] = None,
    ) -> None:
        """Insert or overwrite the entry for *ip_hash*.

        Raises:
            CacheWriteError: the write failed at the storage layer.
        """
        now = now or datetime.now(expires_at.tzinfo)
        try:
            await self._col.update_one(
                {"ip_hash": ip_hash},
                {
                    "$set": {
                        **location.as_fields(),
                        "provider": provider,
                        "created_at": now,
                        "expires_at": expires_at,
                    },
                },
                upsert=True,
            )
        except PyMongoError as e:
            raise CacheWriteError(
                "Failed to write geo cache entry", details=type(e).__name__
            ) from e

    async def count(self) -> int:
        return await self._col.count_documents({})
