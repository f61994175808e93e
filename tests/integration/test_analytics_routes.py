"""Integration tests for the /api/analytics endpoints."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from errors import register_error_handlers
from infrastructure.cache.analytics_cache import AnalyticsCache
from routes.analytics_routes import router as analytics_router
from services.analytics_service import AnalyticsService

METRIC = {"value": 0, "previous": 0, "trend": 0}


def _mock_service():
    service = MagicMock()
    service.time_series = AsyncMock(
        return_value={
            "labels": ["2025-03-11", "2025-03-12"],
            "datasets": [{"label": "Pageviews", "data": [1, 2]}],
            "period": "week",
            "group_by": "day",
        }
    )
    service.geo = AsyncMock(
        return_value={
            "locations": [
                {
                    "country_code": "US",
                    "country_name": "United States",
                    "count": 3,
                    "latitude": 30.27,
                    "longitude": -97.74,
                }
            ],
            "total": 3,
            "level": "country",
            "period": "month",
        }
    )
    service.top_items = AsyncMock(
        return_value={"items": [], "type": "bookmarks", "period": "week"}
    )
    service.summary = AsyncMock(
        return_value={
            "pageviews": METRIC,
            "unique_visitors": METRIC,
            "clicks": METRIC,
            "top_country": "Unknown",
            "top_country_count": 0,
            "period": "week",
        }
    )
    return service


def _build_test_app(service) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.analytics_service = service
        yield

    app = FastAPI(lifespan=lifespan)
    register_error_handlers(app)
    app.include_router(analytics_router)
    return app


@pytest.fixture
def service():
    return _mock_service()


@pytest.fixture
def client(service):
    with TestClient(_build_test_app(service)) as c:
        yield c


class TestTimeSeries:
    def test_defaults(self, client, service):
        resp = client.get("/api/analytics/time-series")

        assert resp.status_code == 200
        assert resp.json()["labels"] == ["2025-03-11", "2025-03-12"]
        kwargs = service.time_series.await_args.kwargs
        assert kwargs["period"] == "week"
        assert kwargs["series_type"] == "all"
        assert kwargs["start_date"] is None

    def test_custom_range(self, client, service):
        resp = client.get(
            "/api/analytics/time-series",
            params={
                "period": "custom",
                "start_date": "2025-03-01T00:00:00Z",
                "end_date": "2025-03-10T00:00:00Z",
                "group_by": "hour",
                "downsample": 100,
            },
        )

        assert resp.status_code == 200
        kwargs = service.time_series.await_args.kwargs
        assert kwargs["start_date"].isoformat() == "2025-03-01T00:00:00+00:00"
        assert kwargs["end_date"].isoformat() == "2025-03-10T00:00:00+00:00"
        assert kwargs["group_by"] == "hour"
        assert kwargs["downsample"] == 100

    @pytest.mark.parametrize(
        "params",
        [
            {"period": "decade"},
            {"start_date": "soon"},
            {"downsample": 10},
            {"start_date": "2025-03-10", "end_date": "2025-03-01"},
        ],
        ids=["bad_period", "bad_date", "downsample_low", "inverted"],
    )
    def test_invalid_params(self, client, service, params):
        resp = client.get("/api/analytics/time-series", params=params)

        assert resp.status_code == 400
        assert resp.json()["code"] == "validation_error"
        service.time_series.assert_not_called()


class TestOtherEndpoints:
    def test_geo(self, client, service):
        resp = client.get("/api/analytics/geo", params={"level": "city", "limit": 5})

        assert resp.status_code == 200
        assert resp.json()["total"] == 3
        service.geo.assert_awaited_once_with(period="month", level="city", limit=5)

    def test_top_items(self, client, service):
        resp = client.get("/api/analytics/top-items", params={"type": "services"})

        assert resp.status_code == 200
        service.top_items.assert_awaited_once_with(
            item_type="services", period="week", limit=None
        )

    def test_top_items_rejects_pageviews(self, client):
        resp = client.get("/api/analytics/top-items", params={"type": "pageviews"})
        assert resp.status_code == 400

    def test_summary(self, client, service):
        resp = client.get("/api/analytics/summary", params={"period": "month"})

        assert resp.status_code == 200
        assert resp.json()["top_country"] == "Unknown"
        service.summary.assert_awaited_once_with(period="month")


class TestHeatmapWithRealService:
    def test_full_grid(self):
        pageviews = MagicMock()
        pageviews.heatmap = AsyncMock(return_value=[{"day_of_week": 0, "hour": 9, "value": 4}])
        clicks = MagicMock()
        clicks.heatmap = AsyncMock(return_value=[])
        service = AnalyticsService(pageviews, clicks, MagicMock(), AnalyticsCache(None))

        with TestClient(_build_test_app(service)) as client:
            resp = client.get("/api/analytics/heatmap", params={"period": "week"})

        assert resp.status_code == 200
        body = resp.json()
        assert len(body["data"]) == 168
        assert body["max_value"] == 4
        assert body["data"][9] == {"day_of_week": 0, "hour": 9, "value": 4}
        assert body["type"] == "all"
