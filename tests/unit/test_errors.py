"""Unit tests for AppError hierarchy."""

import pytest

from errors import (
    AppError,
    CacheWriteError,
    ConfigurationError,
    ProviderError,
    ValidationError,
)


class TestAppErrorSubclasses:
    @pytest.mark.parametrize(
        "cls, status, code",
        [
            (ValidationError, 400, "validation_error"),
            (ProviderError, 502, "provider_error"),
            (CacheWriteError, 500, "cache_write_error"),
            (ConfigurationError, 503, "configuration_error"),
        ],
    )
    def test_status_and_code(self, cls, status, code):
        e = cls("boom")
        assert isinstance(e, AppError)
        assert e.status_code == status
        assert e.error_code == code
        assert e.message == "boom"
        assert str(e) == "boom"

    def test_base_defaults(self):
        e = AppError("unexpected")
        assert e.status_code == 500
        assert e.error_code == "internal_error"


class TestAppErrorToDict:
    def test_basic(self):
        e = CacheWriteError("geo cache down")
        assert e.to_dict() == {"error": "geo cache down", "code": "cache_write_error"}

    @pytest.mark.parametrize(
        "kwargs, key, value",
        [
            ({"field": "path"}, "field", "path"),
            ({"details": {"retry_after": 60}}, "details", {"retry_after": 60}),
        ],
        ids=["with_field", "with_details"],
    )
    def test_optional_key_present(self, kwargs, key, value):
        e = ValidationError("invalid", **kwargs)
        assert e.to_dict()[key] == value

    def test_no_optional_keys_when_absent(self):
        d = ValidationError("missing").to_dict()
        assert "field" not in d
        assert "details" not in d


class TestProviderError:
    def test_defaults_to_lookup_failed(self):
        e = ProviderError("HTTP 500")
        assert e.code == "LOOKUP_FAILED"
        assert e.retry_after is None
        assert e.to_dict()["details"] == {"code": "LOOKUP_FAILED"}

    def test_rate_limit_carries_retry_after(self):
        e = ProviderError("Rate limit exceeded", code="RATE_LIMITED", retry_after=30)
        assert e.code == "RATE_LIMITED"
        assert e.retry_after == 30
