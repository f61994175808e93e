"""Shared async HTTP client for outbound geo lookups."""

from typing import Any

import httpx


class HttpClient:
    """Thin async wrapper around httpx.AsyncClient with a bounded timeout.

    One instance is created at startup and shared by every remote provider
    built by the GeoProviderFactory; the timeout applies per request.
    """

    def __init__(self, timeout: float = 5.0, user_agent: str = "fauxdash") -> None:
        self._timeout = timeout
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": user_agent},
        )

    @property
    def timeout(self) -> float:
        return self._timeout

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self._client.get(url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
