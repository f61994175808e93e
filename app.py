"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.cache.analytics_cache import AnalyticsCache
from infrastructure.cache.redis_client import create_redis_client
from infrastructure.geoip.factory import GeoProviderFactory
from infrastructure.http_client import HttpClient
from repositories.click_repository import ClickRepository
from repositories.geo_cache_repository import GeoCacheRepository
from repositories.indexes import CLICKS, GEO_CACHE, PAGEVIEWS, SETTINGS, ensure_indexes
from repositories.item_repository import ItemRepository
from repositories.pageview_repository import PageviewRepository
from repositories.settings_repository import SettingsRepository
from routes.analytics_routes import router as analytics_router
from routes.geoip_routes import router as geoip_router
from routes.health_routes import router as health_router
from routes.ingest_routes import router as ingest_router
from services.analytics_service import AnalyticsService
from services.enrichment_service import EnrichmentService
from services.ingestion_service import IngestionService
from services.settings_snapshot import SettingsSnapshotProvider
from services.task_runner import BackgroundTaskRunner
from shared.logging import get_logger, setup_logging

log = get_logger(__name__)

# Seconds the shutdown waits for in-flight enrichments
SHUTDOWN_DRAIN_TIMEOUT = 10.0


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(settings.logging)

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            environment=settings.env,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            profiles_sample_rate=settings.sentry.sentry_profile_sample_rate,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(settings.db.mongodb_uri)
        db = mongo_client[settings.db.db_name]
        app.state.mongo_client = mongo_client
        app.state.db = db
        app.state.settings = settings

        # Redis is optional; without it analytics responses are not cached
        redis_client = await create_redis_client(settings.redis.redis_uri)
        app.state.redis = redis_client

        await ensure_indexes(db)

        http_client = HttpClient(timeout=settings.geoip.geoip_remote_timeout_seconds)
        provider_factory = GeoProviderFactory(http_client)
        task_runner = BackgroundTaskRunner()

        pageviews = PageviewRepository(db[PAGEVIEWS])
        clicks = ClickRepository(db[CLICKS])
        geo_cache = GeoCacheRepository(db[GEO_CACHE])
        settings_snapshot = SettingsSnapshotProvider(
            SettingsRepository(db[SETTINGS]), settings.geoip
        )

        enrichment = EnrichmentService(
            pageviews=pageviews,
            geo_cache=geo_cache,
            settings=settings_snapshot,
            providers=provider_factory,
        )
        app.state.ingestion_service = IngestionService(
            pageviews=pageviews,
            clicks=clicks,
            enrichment=enrichment,
            runner=task_runner,
            ip_hash_salt=settings.geoip.ip_hash_salt,
            tz=settings.analytics.timezone,
        )
        app.state.analytics_service = AnalyticsService(
            pageviews=pageviews,
            clicks=clicks,
            items=ItemRepository(db),
            cache=AnalyticsCache(redis_client, settings.redis.analytics_cache_ttl_seconds),
            tz=settings.analytics.timezone,
            downsample_threshold=settings.analytics.downsample_threshold,
            geo_limit=settings.analytics.geo_limit_default,
            top_items_limit=settings.analytics.top_items_limit_default,
        )
        app.state.settings_snapshot = settings_snapshot
        app.state.provider_factory = provider_factory
        app.state.geo_cache_repository = geo_cache
        app.state.task_runner = task_runner

        log.info("app_started", env=settings.env, db_name=settings.db.db_name)

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        await task_runner.drain(SHUTDOWN_DRAIN_TIMEOUT)
        provider_factory.close()
        await http_client.aclose()
        await mongo_client.close()
        if redis_client is not None:
            await redis_client.aclose()
        log.info("app_stopped")

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(ingest_router)
    app.include_router(analytics_router)
    app.include_router(geoip_router)

    return app
