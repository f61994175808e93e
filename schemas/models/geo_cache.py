"""
Geo cache document model.

Maps to the `geo_cache` collection: at most one entry per hashed IP
(unique index on ip_hash). Entries are refreshed by upsert and expire
lazily; an entry past expires_at is treated as a miss but never deleted.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from schemas.models.base import MongoBaseModel
from schemas.models.geo import UNKNOWN_COUNTRY, GeoLocation


class GeoCacheDoc(MongoBaseModel):
    """Document model for the `geo_cache` collection."""

    ip_hash: str

    country_code: str = UNKNOWN_COUNTRY
    country_name: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timezone: Optional[str] = None

    provider: str
    created_at: datetime
    expires_at: datetime

    def location(self) -> GeoLocation:
        return GeoLocation.from_fields(self.model_dump())
