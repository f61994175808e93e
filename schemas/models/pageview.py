"""
Pageview document model.

Maps to the `pageviews` collection. A pageview is inserted with
``enriched=False`` and every geo field None; the enrichment task sets the
flag exactly once, either copying resolved geo fields or leaving them None
(private address, disabled enrichment, failed lookup).
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from schemas.models.base import MongoBaseModel, utcnow


class PageviewDoc(MongoBaseModel):
    """Document model for the `pageviews` collection."""

    path: str
    user_agent: Optional[str] = None
    # Raw address kept for operational debugging; never logged
    ip_address: str
    ip_hash: str

    country_code: Optional[str] = None
    country_name: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timezone: Optional[str] = None

    enriched: bool = False
    enriched_at: Optional[datetime] = None
    timestamp: datetime = Field(default_factory=utcnow)
