"""
Read-only access to bookmark and service names.

The `bookmarks` and `services` collections are owned by the dashboard's
CRUD layer; analytics only needs id → name to label top items, including
items that received no clicks.
"""

from __future__ import annotations

from pymongo.asynchronous.database import AsyncDatabase

from schemas.models.click import ItemKind

COLLECTIONS: dict[str, str] = {
    "bookmark": "bookmarks",
    "service": "services",
}


class ItemRepository:
    def __init__(self, db: AsyncDatabase) -> None:
        self._db = db

    async def names(self, item_kind: ItemKind) -> dict[str, str]:
        """Map of item id (as string) to display name for every item of *item_kind*."""
        collection = self._db[COLLECTIONS[item_kind]]
        cursor = collection.find({}, projection={"_id": 1, "name": 1})
        names: dict[str, str] = {}
        async for doc in cursor:
            item_id = str(doc["_id"])
            names[item_id] = doc.get("name") or item_id
        return names
