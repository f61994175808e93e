"""GeoProvider protocol and lookup result types.

The enrichment service depends on this, not on a concrete provider. A
provider's lookup() never raises: every failure mode is folded into a
GeoLookupResult carrying a GeoErrorCode and a readable message.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Protocol

from pydantic import BaseModel, ConfigDict

from schemas.models.geo import GeoLocation


class GeoErrorCode(str, Enum):
    PRIVATE_IP = "PRIVATE_IP"
    INVALID_IP = "INVALID_IP"
    DATABASE_NOT_FOUND = "DATABASE_NOT_FOUND"
    LOOKUP_FAILED = "LOOKUP_FAILED"
    RATE_LIMITED = "RATE_LIMITED"
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    NOT_CONFIGURED = "NOT_CONFIGURED"


class GeoLookupResult(BaseModel):
    """Tagged success/failure of a single lookup.

    Exactly one of ``location`` (success) or ``error_code`` (failure) is set.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    provider: str
    location: Optional[GeoLocation] = None
    error_code: Optional[GeoErrorCode] = None
    message: Optional[str] = None
    retry_after: Optional[int] = None

    @classmethod
    def ok(cls, provider: str, location: GeoLocation) -> "GeoLookupResult":
        return cls(success=True, provider=provider, location=location)

    @classmethod
    def fail(
        cls,
        provider: str,
        code: GeoErrorCode,
        message: str,
        *,
        retry_after: Optional[int] = None,
    ) -> "GeoLookupResult":
        return cls(
            success=False,
            provider=provider,
            error_code=code,
            message=message,
            retry_after=retry_after,
        )


class GeoProvider(Protocol):
    name: str

    async def lookup(self, ip: str) -> GeoLookupResult: ...

    async def is_available(self) -> bool: ...


__all__ = ["GeoErrorCode", "GeoLocation", "GeoLookupResult", "GeoProvider"]
