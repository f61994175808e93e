"""ipinfo-style remote API implementation of GeoProvider.

- Token-authenticated GET ``{base_url}/{ip}?token=...`` via HttpClient.
- The HttpClient timeout bounds every lookup; a timeout is reported as
  PROVIDER_UNAVAILABLE like any other transport error.
- ``loc`` is a "lat,lng" string; country names are resolved with pycountry
  because the API only returns ISO codes.
"""

from __future__ import annotations

import ipaddress
from typing import Optional

import httpx
import pycountry

from errors import ProviderError
from infrastructure.geoip.protocol import GeoErrorCode, GeoLookupResult
from infrastructure.http_client import HttpClient
from schemas.models.geo import UNKNOWN_COUNTRY, GeoLocation
from schemas.models.settings import REMOTE_API
from shared.ip_utils import is_private_ip
from shared.logging import get_logger

log = get_logger(__name__)

_DEFAULT_RETRY_AFTER = 60


def country_name_for(code: str) -> str:
    """ISO alpha-2 code to English country name; unknown codes are returned as-is."""
    try:
        return pycountry.countries.lookup(code).name
    except LookupError:
        return code


def parse_loc(loc: Optional[str]) -> tuple[Optional[float], Optional[float]]:
    """Split an ipinfo ``"lat,lng"`` string; anything malformed yields (None, None)."""
    if not isinstance(loc, str) or not loc:
        return None, None
    parts = loc.split(",")
    if len(parts) != 2:
        return None, None
    try:
        return float(parts[0]), float(parts[1])
    except ValueError:
        return None, None


class RemoteApiProvider:
    name = REMOTE_API

    def __init__(
        self,
        token: str,
        http_client: HttpClient,
        base_url: str,
        timeout: Optional[float] = None,
    ) -> None:
        self._token = token
        self._http = http_client
        self._base_url = base_url.rstrip("/")
        # Per-request override of the shared client timeout
        self._timeout = timeout

    async def is_available(self) -> bool:
        # Reachability is only known per request; a token is the precondition
        return bool(self._token)

    async def lookup(self, ip: str) -> GeoLookupResult:
        try:
            ipaddress.ip_address(ip)
        except ValueError:
            return GeoLookupResult.fail(
                self.name, GeoErrorCode.INVALID_IP, "Not a valid IP address"
            )
        if is_private_ip(ip):
            return GeoLookupResult.fail(
                self.name,
                GeoErrorCode.PRIVATE_IP,
                "Cannot geolocate private IP addresses",
            )
        if not self._token:
            return GeoLookupResult.fail(
                self.name, GeoErrorCode.NOT_CONFIGURED, "API token is not configured"
            )

        try:
            data = await self._fetch(ip)
        except ProviderError as e:
            return GeoLookupResult.fail(
                self.name,
                GeoErrorCode(e.code),
                e.message,
                retry_after=e.retry_after,
            )
        try:
            location = _to_location(data)
        except (AttributeError, TypeError, ValueError) as e:
            log.warning(
                "geoip_remote_unexpected_body",
                error=str(e),
                error_type=type(e).__name__,
            )
            return GeoLookupResult.fail(
                self.name,
                GeoErrorCode.LOOKUP_FAILED,
                f"Malformed record: {type(e).__name__}",
            )
        return GeoLookupResult.ok(self.name, location)

    async def _fetch(self, ip: str) -> dict:
        """GET the record for *ip*.

        Raises:
            ProviderError: transport failure, rejected token, rate limit,
                non-2xx status or a body with no usable record.
        """
        request_kwargs: dict = {
            "params": {"token": self._token},
            "headers": {"Accept": "application/json"},
        }
        if self._timeout is not None:
            request_kwargs["timeout"] = self._timeout
        try:
            response = await self._http.get(f"{self._base_url}/{ip}", **request_kwargs)
        except httpx.HTTPError as e:
            log.warning(
                "geoip_remote_request_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ProviderError(
                str(e) or type(e).__name__,
                code=GeoErrorCode.PROVIDER_UNAVAILABLE.value,
            ) from e

        if response.status_code in (401, 403):
            raise ProviderError(
                f"API token rejected (HTTP {response.status_code})",
                code=GeoErrorCode.NOT_CONFIGURED.value,
            )
        if response.status_code == 429:
            raise ProviderError(
                "Rate limit exceeded",
                code=GeoErrorCode.RATE_LIMITED.value,
                retry_after=_parse_retry_after(response.headers.get("Retry-After")),
            )
        if not 200 <= response.status_code < 300:
            log.warning(
                "geoip_remote_api_error",
                status_code=response.status_code,
                response_text=response.text[:200],
            )
            raise ProviderError(f"HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(f"Malformed response: {e}") from e
        if not isinstance(data, dict) or data.get("bogon"):
            raise ProviderError("No data found for IP")
        return data


def _parse_retry_after(value: Optional[str]) -> int:
    try:
        return int(value) if value else _DEFAULT_RETRY_AFTER
    except ValueError:
        return _DEFAULT_RETRY_AFTER


def _to_location(data: dict) -> GeoLocation:
    country_code = (data.get("country") or UNKNOWN_COUNTRY).upper()
    latitude, longitude = parse_loc(data.get("loc"))
    return GeoLocation(
        country_code=country_code,
        country_name=country_name_for(country_code),
        city=data.get("city") or None,
        region=data.get("region") or None,
        latitude=latitude,
        longitude=longitude,
        timezone=data.get("timezone") or None,
    )
