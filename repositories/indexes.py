"""
Index creation for the analytics collections.

Run once at startup from the app lifespan. create_index is idempotent, so
re-running against an existing deployment is a no-op.
"""

from __future__ import annotations

from pymongo import ASCENDING, DESCENDING
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from shared.logging import get_logger

log = get_logger(__name__)

PAGEVIEWS = "pageviews"
CLICKS = "clicks"
GEO_CACHE = "geo_cache"
SETTINGS = "settings"


async def ensure_indexes(db: AsyncDatabase) -> None:
    try:
        await db[GEO_CACHE].create_index([("ip_hash", ASCENDING)], unique=True)

        await db[PAGEVIEWS].create_index([("timestamp", DESCENDING)])
        await db[PAGEVIEWS].create_index([("enriched", ASCENDING)])
        await db[PAGEVIEWS].create_index([("country_code", ASCENDING)])

        await db[CLICKS].create_index(
            [("item_kind", ASCENDING), ("clicked_at", DESCENDING)]
        )
        await db[CLICKS].create_index([("item_kind", ASCENDING), ("item_id", ASCENDING)])

        await db[SETTINGS].create_index([("key", ASCENDING), ("user_id", ASCENDING)])
        log.info("indexes_ensured")
    except PyMongoError as e:
        # Without the unique ip_hash index concurrent upserts could duplicate entries
        log.error("index_creation_failed", error=str(e), error_type=type(e).__name__)
        raise
