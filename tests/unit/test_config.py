"""Unit tests for AppSettings and sub-configs."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from config import (
    AnalyticsSettings,
    AppSettings,
    DatabaseSettings,
    GeoIPSettings,
    RedisSettings,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def with_mongo(monkeypatch):
    """Set the required MONGODB_URI so AppSettings can be instantiated."""
    monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017/")
    return monkeypatch


# ---------------------------------------------------------------------------
# DatabaseSettings
# ---------------------------------------------------------------------------


class TestDatabaseSettings:
    def test_loads_mongodb_uri(self, monkeypatch):
        monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017/")
        assert DatabaseSettings().mongodb_uri == "mongodb://localhost:27017/"

    def test_default_db_name(self, monkeypatch):
        monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017/")
        monkeypatch.delenv("DB_NAME", raising=False)
        assert DatabaseSettings().db_name == "fauxdash"

    def test_missing_mongodb_uri_raises(self, monkeypatch):
        monkeypatch.delenv("MONGODB_URI", raising=False)
        with pytest.raises(PydanticValidationError):
            DatabaseSettings()


# ---------------------------------------------------------------------------
# RedisSettings
# ---------------------------------------------------------------------------


class TestRedisSettings:
    def test_redis_uri_optional(self, monkeypatch):
        monkeypatch.delenv("REDIS_URI", raising=False)
        assert RedisSettings().redis_uri is None

    def test_redis_uri_loaded(self, monkeypatch):
        monkeypatch.setenv("REDIS_URI", "redis://localhost:6379")
        assert RedisSettings().redis_uri == "redis://localhost:6379"

    def test_default_ttl(self, monkeypatch):
        monkeypatch.delenv("ANALYTICS_CACHE_TTL_SECONDS", raising=False)
        assert RedisSettings().analytics_cache_ttl_seconds == 60


# ---------------------------------------------------------------------------
# GeoIPSettings
# ---------------------------------------------------------------------------


class TestGeoIPSettings:
    def test_defaults(self, monkeypatch):
        for var in (
            "GEOIP_ENABLED",
            "GEOIP_PROVIDER",
            "GEOIP_CACHE_TTL_DAYS",
            "GEOIP_REMOTE_API_TOKEN",
        ):
            monkeypatch.delenv(var, raising=False)
        s = GeoIPSettings()
        assert s.geoip_enabled is True
        assert s.geoip_provider == "local-db"
        assert s.geoip_cache_ttl_days == 30
        assert s.geoip_remote_api_token == ""

    @pytest.mark.parametrize(
        "raw, expected",
        [("false", False), ("0", False), ("true", True), ("1", True)],
    )
    def test_enabled_flag_parsing(self, monkeypatch, raw, expected):
        monkeypatch.setenv("GEOIP_ENABLED", raw)
        assert GeoIPSettings().geoip_enabled is expected

    def test_provider_from_env(self, monkeypatch):
        monkeypatch.setenv("GEOIP_PROVIDER", "remote-api")
        monkeypatch.setenv("GEOIP_REMOTE_API_TOKEN", "tok")
        s = GeoIPSettings()
        assert s.geoip_provider == "remote-api"
        assert s.geoip_remote_api_token == "tok"


class TestAnalyticsSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("DOWNSAMPLE_THRESHOLD", raising=False)
        monkeypatch.delenv("TIMEZONE", raising=False)
        s = AnalyticsSettings()
        assert s.downsample_threshold == 150
        assert s.timezone == "UTC"
        assert s.top_items_limit_default == 10


# ---------------------------------------------------------------------------
# AppSettings
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "env, expected",
    [("production", True), ("development", False)],
    ids=["production", "development"],
)
def test_is_production(with_mongo, env, expected):
    with_mongo.setenv("ENV", env)
    assert AppSettings().is_production is expected


class TestAppSettings:
    def test_sub_configs_populated(self, with_mongo):
        s = AppSettings()
        for attr in ("db", "redis", "geoip", "analytics", "logging", "sentry"):
            assert getattr(s, attr) is not None, f"sub-config '{attr}' is None"

    def test_cors_origins_default(self, with_mongo):
        assert AppSettings().cors_origins == ["*"]

    def test_explicit_sub_config_kept(self, with_mongo):
        geoip = GeoIPSettings(geoip_enabled=False)
        assert AppSettings(geoip=geoip).geoip is geoip
