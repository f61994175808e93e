"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

GeoIP values here are only the defaults for the enrichment settings
snapshot; the admin-managed values in the ``settings`` collection take
precedence at runtime (see services/settings_snapshot.py).
"""

from __future__ import annotations

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "fauxdash"


class RedisSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Optional; without Redis analytics responses are simply not cached
    redis_uri: Optional[str] = None
    analytics_cache_ttl_seconds: int = 60


class GeoIPSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    geoip_enabled: bool = True
    geoip_provider: str = "local-db"  # "local-db" | "remote-api"
    geoip_local_db_path: str = "/data/GeoLite2-City.mmdb"
    geoip_remote_api_token: str = ""
    geoip_remote_api_url: str = "https://ipinfo.io"
    geoip_remote_timeout_seconds: float = 5.0

    geoip_cache_ttl_days: int = 30
    settings_snapshot_ttl_seconds: int = 30

    ip_hash_salt: str = "fauxdash-default-salt-please-change"


class AnalyticsSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    downsample_threshold: int = 150
    # IANA zone used to derive hour/day buckets at insert and query time
    timezone: str = "UTC"
    geo_limit_default: int = 100
    top_items_limit_default: int = 10


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production

    # Sampling rates (0.0–1.0)
    sample_rate_ingest: float = 0.05
    sample_rate_analytics: float = 0.20
    sample_rate_enrichment: float = 0.10


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1
    sentry_profile_sample_rate: float = 0.05


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: str = "development"
    app_name: str = "fauxdash"

    cors_origins: list[str] = ["*"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    redis: Optional[RedisSettings] = None
    geoip: Optional[GeoIPSettings] = None
    analytics: Optional[AnalyticsSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        if self.db is None:
            self.db = DatabaseSettings()
        if self.redis is None:
            self.redis = RedisSettings()
        if self.geoip is None:
            self.geoip = GeoIPSettings()
        if self.analytics is None:
            self.analytics = AnalyticsSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()
        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
