"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Services are built once in the app lifespan
and stored on app.state; these providers only look them up, so tests can
swap any of them by setting app.state in a custom lifespan.
"""

from __future__ import annotations

from fastapi import Request

from infrastructure.geoip.factory import GeoProviderFactory
from repositories.geo_cache_repository import GeoCacheRepository
from services.analytics_service import AnalyticsService
from services.ingestion_service import IngestionService
from services.settings_snapshot import SettingsSnapshotProvider
from services.task_runner import BackgroundTaskRunner


def get_ingestion_service(request: Request) -> IngestionService:
    return request.app.state.ingestion_service


def get_analytics_service(request: Request) -> AnalyticsService:
    return request.app.state.analytics_service


def get_settings_snapshot(request: Request) -> SettingsSnapshotProvider:
    return request.app.state.settings_snapshot


def get_provider_factory(request: Request) -> GeoProviderFactory:
    return request.app.state.provider_factory


def get_geo_cache_repository(request: Request) -> GeoCacheRepository:
    return request.app.state.geo_cache_repository


def get_task_runner(request: Request) -> BackgroundTaskRunner:
    return request.app.state.task_runner
