"""
Enrichment configuration snapshot.

Built by SettingsSnapshotProvider from the global key/value documents in
the `settings` collection, with GeoIPSettings as the fallback for missing
keys. Frozen, so a snapshot handed to an enrichment task cannot change
underneath it.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

LOCAL_DB = "local-db"
REMOTE_API = "remote-api"

# Provider keys stored by earlier dashboard versions
PROVIDER_ALIASES = {
    "maxmind": LOCAL_DB,
    "ipinfo": REMOTE_API,
}

KNOWN_PROVIDERS = frozenset({LOCAL_DB, REMOTE_API})


def normalize_provider(value: Optional[str]) -> str:
    """Map a stored provider key to its canonical name (unknown keys pass through)."""
    key = (value or "").strip().lower()
    return PROVIDER_ALIASES.get(key, key)


class EnrichmentConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    provider: str = LOCAL_DB
    local_db_path: str = "/data/GeoLite2-City.mmdb"
    remote_api_token: str = ""
    remote_api_url: str = "https://ipinfo.io"
    remote_timeout_seconds: float = 5.0
    cache_ttl_days: int = 30

    @field_validator("provider", mode="before")
    @classmethod
    def _canonical_provider(cls, v):
        return normalize_provider(v)

    @property
    def has_token(self) -> bool:
        return bool(self.remote_api_token)
