"""
Request DTOs for event ingestion and GeoIP diagnostics.

PageviewRequest  - POST /api/pageview
ClickRequest     - POST /api/clicks
GeoIPTestRequest - POST /api/geoip/test

A blank pageview path is rejected by the ingestion service rather than
here, so the error carries the same ``validation_error`` shape whether the
path is missing, empty or whitespace.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PageviewRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    path: Optional[str] = None


class ClickRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(min_length=1, max_length=128)
    item_kind: Literal["bookmark", "service"]

    @field_validator("item_id", mode="after")
    @classmethod
    def _strip_item_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("item_id must not be blank")
        return v


class GeoIPTestRequest(BaseModel):
    """Body for the provider self-test.

    ``provider`` overrides the configured provider for this lookup only;
    ``maxmind``/``ipinfo`` are accepted as aliases of ``local-db``/``remote-api``.
    """

    model_config = ConfigDict(populate_by_name=True)

    provider: Optional[str] = None
    ip: str = "8.8.8.8"
