"""
GeoIP diagnostics for the admin tools page.

GET  /api/geoip/status - active enrichment config (token presence only),
                         local database check, cache size, pending tasks
POST /api/geoip/test   - one lookup against the configured or a chosen provider

Tokens are never returned; only whether one is configured.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from dependencies import (
    get_geo_cache_repository,
    get_provider_factory,
    get_settings_snapshot,
    get_task_runner,
)
from infrastructure.geoip.factory import GeoProviderFactory
from repositories.geo_cache_repository import GeoCacheRepository
from schemas.dto.requests.ingest import GeoIPTestRequest
from services.settings_snapshot import SettingsSnapshotProvider
from services.task_runner import BackgroundTaskRunner
from shared.logging import get_logger

log = get_logger(__name__)

router = APIRouter(prefix="/api/geoip", tags=["geoip"])


@router.get("/status")
async def geoip_status(
    snapshot: SettingsSnapshotProvider = Depends(get_settings_snapshot),
    factory: GeoProviderFactory = Depends(get_provider_factory),
    geo_cache: GeoCacheRepository = Depends(get_geo_cache_repository),
    runner: BackgroundTaskRunner = Depends(get_task_runner),
) -> dict:
    config = await snapshot.get()
    database = await factory.local_provider(config).check_database()
    return {
        "enabled": config.enabled,
        "provider": config.provider,
        "remote_api_token_configured": config.has_token,
        "local_database": database.model_dump(mode="json"),
        "cache_entries": await geo_cache.count(),
        "pending_enrichments": runner.pending,
    }


@router.post("/test")
async def geoip_test(
    body: Optional[GeoIPTestRequest] = None,
    snapshot: SettingsSnapshotProvider = Depends(get_settings_snapshot),
    factory: GeoProviderFactory = Depends(get_provider_factory),
) -> dict:
    """Run a lookup and return the tagged result.

    Raises ConfigurationError (503) when the chosen provider cannot be built.
    """
    body = body or GeoIPTestRequest()
    # Pick up settings saved moments ago from the admin panel
    snapshot.invalidate()
    config = await snapshot.get()
    provider = factory.get(config, provider=body.provider or config.provider)
    result = await provider.lookup(body.ip)
    log.info(
        "geoip_test_lookup",
        provider=provider.name,
        success=result.success,
        error_code=result.error_code.value if result.error_code else None,
    )
    return result.model_dump(mode="json")
