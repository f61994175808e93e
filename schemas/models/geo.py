"""
Resolved geographic location, shared by providers, the geo cache and pageviews.

Every field is optional except the ISO country code, which falls back to the
``UNKNOWN_COUNTRY`` sentinel rather than None when a provider resolves an
address but not its country.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

UNKNOWN_COUNTRY = "XX"

GEO_FIELDS: tuple[str, ...] = (
    "country_code",
    "country_name",
    "city",
    "region",
    "latitude",
    "longitude",
    "timezone",
)


class GeoLocation(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    country_code: str = UNKNOWN_COUNTRY  # ISO 3166-1 alpha-2
    country_name: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    timezone: Optional[str] = None

    @field_validator("country_code", mode="before")
    @classmethod
    def _default_unknown_country(cls, v):
        if not v:
            return UNKNOWN_COUNTRY
        return str(v).upper()

    def as_fields(self) -> dict:
        """Flat dict of the geo fields, as stored on pageviews and cache entries."""
        return {name: getattr(self, name) for name in GEO_FIELDS}

    @classmethod
    def from_fields(cls, doc: dict) -> "GeoLocation":
        return cls(**{name: doc.get(name) for name in GEO_FIELDS})


def empty_geo_fields() -> dict:
    """All geo fields set to None, the state of an unresolved event."""
    return {name: None for name in GEO_FIELDS}
