"""
Time-boxed snapshot of the enrichment settings.

The admin panel writes GeoIP settings to the `settings` collection at any
time. Enrichment reads them through this provider: the snapshot is reused
for ``settings_snapshot_ttl_seconds`` and then re-read, and invalidate()
forces the next get() to hit the store. Every snapshot is an immutable
EnrichmentConfig, so a running task is unaffected by a concurrent refresh.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Optional

from config import GeoIPSettings
from repositories.settings_repository import SettingsRepository
from schemas.models.settings import EnrichmentConfig
from shared.logging import get_logger

log = get_logger(__name__)


def build_config(
    values: dict[str, Optional[str]], defaults: GeoIPSettings
) -> EnrichmentConfig:
    """Overlay stored setting values on the environment defaults.

    Missing or empty values fall back to the default; ``geoipEnabled`` is
    only false when stored as the string ``"false"``.
    """
    enabled_raw = values.get("geoipEnabled")
    enabled = (
        defaults.geoip_enabled
        if enabled_raw is None or enabled_raw == ""
        else enabled_raw.strip().lower() != "false"
    )
    return EnrichmentConfig(
        enabled=enabled,
        provider=values.get("geoipProvider") or defaults.geoip_provider,
        local_db_path=values.get("geoipMaxmindPath") or defaults.geoip_local_db_path,
        remote_api_token=values.get("geoipIpinfoToken") or defaults.geoip_remote_api_token,
        remote_api_url=defaults.geoip_remote_api_url,
        remote_timeout_seconds=defaults.geoip_remote_timeout_seconds,
        cache_ttl_days=defaults.geoip_cache_ttl_days,
    )


class SettingsSnapshotProvider:
    def __init__(
        self,
        repository: SettingsRepository,
        defaults: GeoIPSettings,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._repo = repository
        self._defaults = defaults
        self._ttl = (
            ttl_seconds if ttl_seconds is not None else defaults.settings_snapshot_ttl_seconds
        )
        self._clock = clock
        self._snapshot: Optional[EnrichmentConfig] = None
        self._expires_at = 0.0
        self._lock = asyncio.Lock()

    def _fresh(self) -> Optional[EnrichmentConfig]:
        if self._snapshot is not None and self._clock() < self._expires_at:
            return self._snapshot
        return None

    async def get(self) -> EnrichmentConfig:
        snapshot = self._fresh()
        if snapshot is not None:
            return snapshot
        async with self._lock:
            snapshot = self._fresh()
            if snapshot is not None:
                return snapshot
            try:
                values = await self._repo.get_global()
            except Exception as e:
                log.warning(
                    "settings_snapshot_read_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )
                values = {}
            snapshot = build_config(values, self._defaults)
            self._snapshot = snapshot
            self._expires_at = self._clock() + self._ttl
            log.debug(
                "settings_snapshot_refreshed",
                enabled=snapshot.enabled,
                provider=snapshot.provider,
            )
            return snapshot

    def invalidate(self) -> None:
        self._snapshot = None
        self._expires_at = 0.0
