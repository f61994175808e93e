"""
Unit test configuration.

Patches dotenv so pydantic-settings never reads the project's real .env file
during unit tests. Tests control config exclusively through monkeypatch.setenv().
"""

import pytest

from fakes import (
    InMemoryGeoCache,
    InMemoryPageviews,
    StubProvider,
    austin_result,
    rate_limited_result,
)


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading .env files in all unit tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


@pytest.fixture
def pageviews() -> InMemoryPageviews:
    return InMemoryPageviews()


@pytest.fixture
def geo_cache() -> InMemoryGeoCache:
    return InMemoryGeoCache()


@pytest.fixture
def provider() -> StubProvider:
    return StubProvider(austin_result())


@pytest.fixture
def failing_provider() -> StubProvider:
    return StubProvider(rate_limited_result())
