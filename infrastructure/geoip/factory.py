"""Selects the active GeoProvider for an enrichment settings snapshot.

Exactly one provider is active at a time. Instances are reused per
(provider, path or url, token, timeout) so the local reader stays open
across lookups and a settings change simply produces a new key.
"""

from __future__ import annotations

from typing import Optional, cast

from errors import ConfigurationError
from infrastructure.geoip.local_db import LocalDatabaseProvider
from infrastructure.geoip.protocol import GeoProvider
from infrastructure.geoip.remote_api import RemoteApiProvider
from infrastructure.http_client import HttpClient
from schemas.models.settings import (
    KNOWN_PROVIDERS,
    LOCAL_DB,
    EnrichmentConfig,
    normalize_provider,
)
from shared.logging import get_logger

log = get_logger(__name__)


class GeoProviderFactory:
    def __init__(self, http_client: HttpClient) -> None:
        self._http = http_client
        self._providers: dict[tuple, GeoProvider] = {}

    def get(
        self, config: EnrichmentConfig, provider: Optional[str] = None
    ) -> GeoProvider:
        """Return the provider for *config*.

        *provider* overrides the configured key (used by the diagnostics
        test endpoint) and skips the enabled check.

        Raises:
            ConfigurationError: enrichment disabled, unknown provider key,
                or the remote provider selected without a token.
        """
        if provider is None and not config.enabled:
            raise ConfigurationError("GeoIP enrichment is disabled")

        key_name = normalize_provider(provider) if provider else config.provider
        if key_name not in KNOWN_PROVIDERS:
            raise ConfigurationError(
                f"Unknown GeoIP provider: {key_name!r}", field="provider"
            )

        if key_name == LOCAL_DB:
            key = (LOCAL_DB, config.local_db_path, "")
        else:
            if not config.remote_api_token:
                raise ConfigurationError(
                    "Remote GeoIP provider selected but no API token is configured",
                    field="remote_api_token",
                )
            key = (
                key_name,
                config.remote_api_url,
                config.remote_api_token,
                config.remote_timeout_seconds,
            )

        cached = self._providers.get(key)
        if cached is not None:
            return cached

        if key_name == LOCAL_DB:
            instance: GeoProvider = LocalDatabaseProvider(config.local_db_path)
        else:
            instance = RemoteApiProvider(
                token=config.remote_api_token,
                http_client=self._http,
                base_url=config.remote_api_url,
                timeout=config.remote_timeout_seconds,
            )
        self._providers[key] = instance
        log.info("geoip_provider_created", provider=key_name)
        return instance

    def local_provider(self, config: EnrichmentConfig) -> LocalDatabaseProvider:
        """The local provider for *config*'s path, whether or not it is active."""
        return cast(LocalDatabaseProvider, self.get(config, provider=LOCAL_DB))

    def close(self) -> None:
        for provider in self._providers.values():
            if isinstance(provider, LocalDatabaseProvider):
                provider.close()
        self._providers.clear()
