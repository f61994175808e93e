"""
Asynchronous geo enrichment of pageviews.

Runs detached from the request that recorded the pageview. Each event is
enriched at most once and ends with ``enriched=True`` on every path:

    already enriched / missing  →  ALREADY_ENRICHED (no cache or provider access)
    private address             →  PRIVATE_SKIP     (geo fields None)
    enrichment off / misconfig  →  DISABLED         (geo fields None)
    fresh cache entry           →  CACHE_HIT        (cached fields copied)
    provider success            →  PROVIDER_SUCCESS (cache upserted, fields copied)
    provider failure            →  PROVIDER_FAILURE (geo fields None, never retried)

A cache read error counts as a miss and a provider that raises counts as a
provider failure. Anything else that escapes enrich() is closed out by run()
with empty geo fields.

A failed cache write only costs the cache benefit for later visits; the
looked-up location is still applied to the event.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional

from errors import CacheWriteError, ConfigurationError
from infrastructure.geoip.factory import GeoProviderFactory
from repositories.geo_cache_repository import GeoCacheRepository
from repositories.pageview_repository import PageviewRepository
from schemas.models.geo import GeoLocation
from services.settings_snapshot import SettingsSnapshotProvider
from shared.ip_utils import is_private_ip
from shared.logging import get_logger, should_sample

log = get_logger(__name__)


class EnrichmentOutcome(str, Enum):
    ALREADY_ENRICHED = "already_enriched"
    PRIVATE_SKIP = "private_skip"
    DISABLED = "disabled"
    CACHE_HIT = "cache_hit"
    PROVIDER_SUCCESS = "provider_success"
    PROVIDER_FAILURE = "provider_failure"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EnrichmentService:
    def __init__(
        self,
        pageviews: PageviewRepository,
        geo_cache: GeoCacheRepository,
        settings: SettingsSnapshotProvider,
        providers: GeoProviderFactory,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._pageviews = pageviews
        self._geo_cache = geo_cache
        self._settings = settings
        self._providers = providers
        self._clock = clock

    async def enrich(self, event_id: str, ip: str, ip_hash: str) -> EnrichmentOutcome:
        event = await self._pageviews.get(event_id)
        if event is None or event.enriched:
            return EnrichmentOutcome.ALREADY_ENRICHED

        if is_private_ip(ip):
            return await self._finish(event_id, None, EnrichmentOutcome.PRIVATE_SKIP)

        config = await self._settings.get()
        try:
            provider = self._providers.get(config)
        except ConfigurationError as e:
            log.debug("enrichment_disabled", event_id=event_id, reason=e.message)
            return await self._finish(event_id, None, EnrichmentOutcome.DISABLED)

        now = self._clock()
        try:
            cached = await self._geo_cache.get(ip_hash, now)
        except Exception as e:
            # A cache read failure is a miss
            log.warning(
                "geo_cache_read_failed",
                ip_hash=ip_hash,
                error=str(e),
                error_type=type(e).__name__,
            )
            cached = None
        if cached is not None:
            return await self._finish(
                event_id, cached.location(), EnrichmentOutcome.CACHE_HIT
            )

        try:
            result = await provider.lookup(ip)
        except Exception as e:
            log.error(
                "geo_lookup_raised",
                event_id=event_id,
                ip_hash=ip_hash,
                provider=provider.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return await self._finish(event_id, None, EnrichmentOutcome.PROVIDER_FAILURE)

        if not result.success or result.location is None:
            log.warning(
                "geo_lookup_failed",
                event_id=event_id,
                ip_hash=ip_hash,
                provider=result.provider,
                error_code=result.error_code.value if result.error_code else None,
                error=result.message,
            )
            return await self._finish(event_id, None, EnrichmentOutcome.PROVIDER_FAILURE)

        expires_at = now + timedelta(days=config.cache_ttl_days)
        try:
            await self._geo_cache.upsert(
                ip_hash, result.location, result.provider, expires_at, now=now
            )
        except CacheWriteError as e:
            log.warning(
                "geo_cache_write_failed",
                ip_hash=ip_hash,
                error=e.message,
                error_type=e.details,
            )

        return await self._finish(
            event_id, result.location, EnrichmentOutcome.PROVIDER_SUCCESS
        )

    async def _finish(
        self,
        event_id: str,
        location: Optional[GeoLocation],
        outcome: EnrichmentOutcome,
    ) -> EnrichmentOutcome:
        updated = await self._pageviews.mark_enriched(event_id, location, self._clock())
        if not updated:
            # Another task enriched this event between our read and write
            return EnrichmentOutcome.ALREADY_ENRICHED
        if should_sample("enrichment_completed"):
            log.info(
                "enrichment_completed",
                event_id=event_id,
                outcome=outcome.value,
                country_code=location.country_code if location else None,
            )
        return outcome

    async def run(self, event_id: str, ip: str, ip_hash: str) -> Optional[EnrichmentOutcome]:
        """Task-boundary wrapper around enrich(): logs and swallows every error.

        An event that fails midway is still closed out with empty geo fields
        so it never stays pending.
        """
        try:
            return await self.enrich(event_id, ip, ip_hash)
        except Exception as e:
            log.error(
                "enrichment_failed",
                event_id=event_id,
                ip_hash=ip_hash,
                error=str(e),
                error_type=type(e).__name__,
            )
            await self._close_out(event_id)
            return None

    async def _close_out(self, event_id: str) -> None:
        try:
            await self._pageviews.mark_enriched(event_id, None, self._clock())
        except Exception as e:
            log.error(
                "enrichment_close_out_failed",
                event_id=event_id,
                error=str(e),
                error_type=type(e).__name__,
            )
