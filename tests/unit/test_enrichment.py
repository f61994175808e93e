"""Unit tests for services/enrichment_service.py."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from pymongo.errors import AutoReconnect

from fakes import (
    NOW,
    PUBLIC_IP,
    InMemoryGeoCache,
    StubFactory,
    StubProvider,
    StubSnapshot,
    austin_result,
)
from schemas.models.geo import GeoLocation
from schemas.models.geo_cache import GeoCacheDoc
from schemas.models.pageview import PageviewDoc
from schemas.models.settings import EnrichmentConfig
from services.enrichment_service import EnrichmentOutcome, EnrichmentService
from shared.ip_utils import hash_ip

SALT = "test-salt"


def _service(pageviews, geo_cache, provider, config=None) -> EnrichmentService:
    return EnrichmentService(
        pageviews=pageviews,
        geo_cache=geo_cache,
        settings=StubSnapshot(config),
        providers=StubFactory(provider),
        clock=lambda: NOW,
    )


async def _insert(pageviews, ip: str = PUBLIC_IP, **overrides) -> tuple[str, str]:
    ip_hash = hash_ip(ip, SALT)
    doc = PageviewDoc(path="/", ip_address=ip, ip_hash=ip_hash, **overrides)
    return await pageviews.insert(doc), ip_hash


# ---------------------------------------------------------------------------
# Provider path
# ---------------------------------------------------------------------------


class TestProviderSuccess:
    async def test_enriches_event_and_writes_cache(self, pageviews, geo_cache, provider):
        event_id, ip_hash = await _insert(pageviews)
        service = _service(pageviews, geo_cache, provider)

        outcome = await service.enrich(event_id, PUBLIC_IP, ip_hash)

        assert outcome == EnrichmentOutcome.PROVIDER_SUCCESS
        stored = pageviews.docs[event_id]
        assert stored["enriched"] is True
        assert stored["enriched_at"] == NOW
        assert stored["country_code"] == "US"
        assert stored["city"] == "Austin"
        assert stored["region"] == "Texas"
        assert stored["latitude"] == pytest.approx(30.27)
        assert stored["longitude"] == pytest.approx(-97.74)
        assert stored["timezone"] == "America/Chicago"

        entry = geo_cache.entries[ip_hash]
        assert entry.provider == "local-db"
        assert entry.expires_at == NOW + timedelta(days=30)
        assert provider.calls == [PUBLIC_IP]

    async def test_cache_ttl_follows_config(self, pageviews, geo_cache, provider):
        event_id, ip_hash = await _insert(pageviews)
        service = _service(
            pageviews, geo_cache, provider, EnrichmentConfig(cache_ttl_days=7)
        )

        await service.enrich(event_id, PUBLIC_IP, ip_hash)

        assert geo_cache.entries[ip_hash].expires_at == NOW + timedelta(days=7)

    async def test_cache_write_failure_still_enriches(self, pageviews, provider):
        geo_cache = InMemoryGeoCache(fail_writes=True)
        event_id, ip_hash = await _insert(pageviews)
        service = _service(pageviews, geo_cache, provider)

        outcome = await service.enrich(event_id, PUBLIC_IP, ip_hash)

        assert outcome == EnrichmentOutcome.PROVIDER_SUCCESS
        assert pageviews.docs[event_id]["country_code"] == "US"
        assert geo_cache.entries == {}


class TestProviderFailure:
    async def test_failure_marks_enriched_without_geo(
        self, pageviews, geo_cache, failing_provider
    ):
        event_id, ip_hash = await _insert(pageviews)
        service = _service(pageviews, geo_cache, failing_provider)

        outcome = await service.enrich(event_id, PUBLIC_IP, ip_hash)

        assert outcome == EnrichmentOutcome.PROVIDER_FAILURE
        stored = pageviews.docs[event_id]
        assert stored["enriched"] is True
        assert stored["country_code"] is None
        assert stored["city"] is None
        assert geo_cache.entries == {}

    async def test_failed_event_is_not_retried(
        self, pageviews, geo_cache, failing_provider
    ):
        event_id, ip_hash = await _insert(pageviews)
        service = _service(pageviews, geo_cache, failing_provider)

        await service.enrich(event_id, PUBLIC_IP, ip_hash)
        second = await service.enrich(event_id, PUBLIC_IP, ip_hash)

        assert second == EnrichmentOutcome.ALREADY_ENRICHED
        assert len(failing_provider.calls) == 1

    async def test_provider_exception_is_a_failure(self, pageviews, geo_cache, provider):
        event_id, ip_hash = await _insert(pageviews)
        provider.lookup = AsyncMock(side_effect=AttributeError("split"))
        service = _service(pageviews, geo_cache, provider)

        outcome = await service.run(event_id, PUBLIC_IP, ip_hash)

        assert outcome == EnrichmentOutcome.PROVIDER_FAILURE
        stored = pageviews.docs[event_id]
        assert stored["enriched"] is True
        assert stored["country_code"] is None
        assert geo_cache.entries == {}


# ---------------------------------------------------------------------------
# Cache path
# ---------------------------------------------------------------------------


class TestCache:
    async def test_fresh_entry_skips_provider(self, pageviews, geo_cache, provider):
        event_id, ip_hash = await _insert(pageviews)
        geo_cache.entries[ip_hash] = GeoCacheDoc(
            ip_hash=ip_hash,
            provider="remote-api",
            created_at=NOW - timedelta(days=1),
            expires_at=NOW + timedelta(days=29),
            **GeoLocation(country_code="DE", country_name="Germany", city="Berlin").as_fields(),
        )
        service = _service(pageviews, geo_cache, provider)

        outcome = await service.enrich(event_id, PUBLIC_IP, ip_hash)

        assert outcome == EnrichmentOutcome.CACHE_HIT
        assert provider.calls == []
        assert pageviews.docs[event_id]["country_code"] == "DE"
        assert pageviews.docs[event_id]["city"] == "Berlin"

    async def test_expired_entry_triggers_lookup(self, pageviews, geo_cache, provider):
        event_id, ip_hash = await _insert(pageviews)
        geo_cache.entries[ip_hash] = GeoCacheDoc(
            ip_hash=ip_hash,
            provider="local-db",
            created_at=NOW - timedelta(days=31),
            expires_at=NOW - timedelta(days=1),
            **GeoLocation(country_code="DE").as_fields(),
        )
        service = _service(pageviews, geo_cache, provider)

        outcome = await service.enrich(event_id, PUBLIC_IP, ip_hash)

        assert outcome == EnrichmentOutcome.PROVIDER_SUCCESS
        assert provider.calls == [PUBLIC_IP]
        assert pageviews.docs[event_id]["country_code"] == "US"
        assert geo_cache.entries[ip_hash].expires_at == NOW + timedelta(days=30)

    async def test_cache_read_error_is_a_miss(self, pageviews, geo_cache, provider):
        event_id, ip_hash = await _insert(pageviews)
        geo_cache.get = AsyncMock(side_effect=AutoReconnect("blip"))
        service = _service(pageviews, geo_cache, provider)

        outcome = await service.run(event_id, PUBLIC_IP, ip_hash)

        assert outcome == EnrichmentOutcome.PROVIDER_SUCCESS
        assert provider.calls == [PUBLIC_IP]
        assert pageviews.docs[event_id]["enriched"] is True
        assert pageviews.docs[event_id]["city"] == "Austin"

    async def test_second_visit_is_served_from_cache(self, pageviews, geo_cache, provider):
        service = _service(pageviews, geo_cache, provider)
        first_id, ip_hash = await _insert(pageviews)
        second_id, _ = await _insert(pageviews)

        await service.enrich(first_id, PUBLIC_IP, ip_hash)
        outcome = await service.enrich(second_id, PUBLIC_IP, ip_hash)

        assert outcome == EnrichmentOutcome.CACHE_HIT
        assert len(provider.calls) == 1
        assert pageviews.docs[second_id]["city"] == "Austin"


# ---------------------------------------------------------------------------
# Short-circuits
# ---------------------------------------------------------------------------


class TestShortCircuits:
    async def test_already_enriched_event_is_untouched(self, pageviews, geo_cache, provider):
        event_id, ip_hash = await _insert(
            pageviews, enriched=True, enriched_at=NOW, country_code="FR"
        )
        service = _service(pageviews, geo_cache, provider)

        outcome = await service.enrich(event_id, PUBLIC_IP, ip_hash)

        assert outcome == EnrichmentOutcome.ALREADY_ENRICHED
        assert provider.calls == []
        assert geo_cache.entries == {}
        assert pageviews.docs[event_id]["country_code"] == "FR"

    async def test_missing_event(self, pageviews, geo_cache, provider):
        service = _service(pageviews, geo_cache, provider)

        outcome = await service.enrich("0" * 24, PUBLIC_IP, "abc")

        assert outcome == EnrichmentOutcome.ALREADY_ENRICHED
        assert provider.calls == []

    @pytest.mark.parametrize("ip", ["127.0.0.1", "10.1.2.3", "192.168.0.10", "::1", "not-an-ip"])
    async def test_private_address_skips_lookup(self, pageviews, geo_cache, provider, ip):
        event_id, ip_hash = await _insert(pageviews, ip=ip)
        service = _service(pageviews, geo_cache, provider)

        outcome = await service.enrich(event_id, ip, ip_hash)

        assert outcome == EnrichmentOutcome.PRIVATE_SKIP
        assert provider.calls == []
        assert await geo_cache.count() == 0
        stored = pageviews.docs[event_id]
        assert stored["enriched"] is True
        assert stored["country_code"] is None

    async def test_disabled_enrichment(self, pageviews, geo_cache, provider):
        event_id, ip_hash = await _insert(pageviews)
        service = _service(
            pageviews, geo_cache, provider, EnrichmentConfig(enabled=False)
        )

        outcome = await service.enrich(event_id, PUBLIC_IP, ip_hash)

        assert outcome == EnrichmentOutcome.DISABLED
        assert provider.calls == []
        assert pageviews.docs[event_id]["enriched"] is True
        assert pageviews.docs[event_id]["country_code"] is None

    async def test_lost_race_reports_already_enriched(self, pageviews, geo_cache, provider):
        event_id, ip_hash = await _insert(pageviews)
        service = _service(pageviews, geo_cache, provider)
        pageviews.mark_enriched = AsyncMock(return_value=False)

        outcome = await service.enrich(event_id, PUBLIC_IP, ip_hash)

        assert outcome == EnrichmentOutcome.ALREADY_ENRICHED


# ---------------------------------------------------------------------------
# Task boundary
# ---------------------------------------------------------------------------


class TestRun:
    async def test_run_returns_outcome(self, pageviews, geo_cache, provider):
        event_id, ip_hash = await _insert(pageviews)
        service = _service(pageviews, geo_cache, provider)

        assert await service.run(event_id, PUBLIC_IP, ip_hash) == (
            EnrichmentOutcome.PROVIDER_SUCCESS
        )

    async def test_run_closes_out_event_on_storage_error(
        self, pageviews, geo_cache, provider
    ):
        event_id, ip_hash = await _insert(pageviews)
        service = _service(pageviews, geo_cache, provider)
        pageviews.get = AsyncMock(side_effect=AutoReconnect("connection reset"))

        assert await service.run(event_id, PUBLIC_IP, ip_hash) is None

        stored = pageviews.docs[event_id]
        assert stored["enriched"] is True
        assert stored["enriched_at"] == NOW
        assert stored["country_code"] is None
        assert provider.calls == []

    async def test_run_survives_failed_close_out(self, pageviews, geo_cache, provider):
        event_id, ip_hash = await _insert(pageviews)
        service = _service(pageviews, geo_cache, provider)
        pageviews.get = AsyncMock(side_effect=AutoReconnect("connection reset"))
        pageviews.mark_enriched = AsyncMock(side_effect=AutoReconnect("still down"))

        assert await service.run(event_id, PUBLIC_IP, ip_hash) is None
        pageviews.mark_enriched.assert_awaited_once()

    async def test_provider_name_recorded_on_cache_entry(self, pageviews, geo_cache):
        remote = StubProvider(austin_result("remote-api"))
        event_id, ip_hash = await _insert(pageviews)
        service = _service(pageviews, geo_cache, remote)

        await service.enrich(event_id, PUBLIC_IP, ip_hash)

        assert geo_cache.entries[ip_hash].provider == "remote-api"
