"""Unit tests for services/settings_snapshot.py."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from config import GeoIPSettings
from services.settings_snapshot import SettingsSnapshotProvider, build_config


@pytest.fixture
def defaults() -> GeoIPSettings:
    return GeoIPSettings(
        geoip_enabled=True,
        geoip_provider="local-db",
        geoip_local_db_path="/data/GeoLite2-City.mmdb",
        geoip_remote_api_token="",
        geoip_cache_ttl_days=30,
    )


def _repo(values=None, side_effect=None):
    repo = MagicMock()
    repo.get_global = AsyncMock(return_value=values or {}, side_effect=side_effect)
    return repo


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


# ---------------------------------------------------------------------------
# build_config
# ---------------------------------------------------------------------------


class TestBuildConfig:
    def test_defaults_when_nothing_stored(self, defaults):
        config = build_config({}, defaults)
        assert config.enabled is True
        assert config.provider == "local-db"
        assert config.local_db_path == "/data/GeoLite2-City.mmdb"
        assert config.cache_ttl_days == 30
        assert config.has_token is False

    def test_stored_values_override(self, defaults):
        config = build_config(
            {
                "geoipEnabled": "true",
                "geoipProvider": "remote-api",
                "geoipMaxmindPath": "/srv/geo.mmdb",
                "geoipIpinfoToken": "secret",
            },
            defaults,
        )
        assert config.provider == "remote-api"
        assert config.local_db_path == "/srv/geo.mmdb"
        assert config.remote_api_token == "secret"
        assert config.has_token is True

    @pytest.mark.parametrize(
        "raw, expected",
        [("false", False), ("FALSE", False), ("true", True), ("0", True), ("", True)],
    )
    def test_enabled_only_false_for_literal_false(self, defaults, raw, expected):
        assert build_config({"geoipEnabled": raw}, defaults).enabled is expected

    @pytest.mark.parametrize(
        "stored, expected",
        [("maxmind", "local-db"), ("ipinfo", "remote-api"), ("Local-DB", "local-db")],
    )
    def test_legacy_provider_keys(self, defaults, stored, expected):
        assert build_config({"geoipProvider": stored}, defaults).provider == expected

    def test_empty_values_fall_back(self, defaults):
        config = build_config({"geoipProvider": "", "geoipMaxmindPath": None}, defaults)
        assert config.provider == "local-db"
        assert config.local_db_path == "/data/GeoLite2-City.mmdb"


# ---------------------------------------------------------------------------
# SettingsSnapshotProvider
# ---------------------------------------------------------------------------


class TestSettingsSnapshotProvider:
    async def test_snapshot_reused_within_ttl(self, defaults):
        repo = _repo({"geoipProvider": "remote-api"})
        clock = FakeClock()
        provider = SettingsSnapshotProvider(repo, defaults, ttl_seconds=30, clock=clock)

        first = await provider.get()
        clock.now += 10
        second = await provider.get()

        assert first is second
        repo.get_global.assert_awaited_once()

    async def test_snapshot_refreshed_after_ttl(self, defaults):
        repo = _repo({"geoipEnabled": "true"})
        clock = FakeClock()
        provider = SettingsSnapshotProvider(repo, defaults, ttl_seconds=30, clock=clock)

        first = await provider.get()
        repo.get_global.return_value = {"geoipEnabled": "false"}
        clock.now += 31
        second = await provider.get()

        assert first.enabled is True
        assert second.enabled is False
        assert repo.get_global.await_count == 2

    async def test_invalidate_forces_reload(self, defaults):
        repo = _repo()
        provider = SettingsSnapshotProvider(repo, defaults, ttl_seconds=30, clock=FakeClock())

        await provider.get()
        provider.invalidate()
        await provider.get()

        assert repo.get_global.await_count == 2

    async def test_read_failure_falls_back_to_defaults(self, defaults):
        repo = _repo(side_effect=RuntimeError("mongo down"))
        provider = SettingsSnapshotProvider(repo, defaults, clock=FakeClock())

        config = await provider.get()

        assert config.enabled is True
        assert config.provider == "local-db"

    async def test_ttl_defaults_to_settings(self, defaults):
        repo = _repo()
        clock = FakeClock()
        provider = SettingsSnapshotProvider(repo, defaults, clock=clock)

        await provider.get()
        clock.now += defaults.settings_snapshot_ttl_seconds - 1
        await provider.get()

        repo.get_global.assert_awaited_once()
