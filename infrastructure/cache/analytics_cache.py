"""Redis cache for analytics query responses.

Responses are stored as JSON under a key derived from the endpoint name
and its normalised query parameters. Redis is optional: with no client
every call goes straight to the query function, and Redis errors are
logged and treated as a miss so a cache outage never fails a request.
"""

import hashlib
import json
from typing import Any, Awaitable, Callable, Optional

import redis.asyncio as aioredis

from shared.logging import get_logger

log = get_logger(__name__)

_KEY_PREFIX = "analytics"


class AnalyticsCache:
    def __init__(
        self, redis_client: Optional[aioredis.Redis], ttl_seconds: int = 60
    ) -> None:
        self._redis = redis_client
        self.ttl_seconds = ttl_seconds

    @property
    def enabled(self) -> bool:
        return self._redis is not None and self.ttl_seconds > 0

    def key(self, endpoint: str, params: dict[str, Any]) -> str:
        canonical = json.dumps(params, sort_keys=True, default=str)
        digest = hashlib.sha1(canonical.encode("utf-8")).hexdigest()[:16]
        return f"{_KEY_PREFIX}:{endpoint}:{digest}"

    async def get(self, cache_key: str) -> Optional[Any]:
        if not self.enabled:
            return None
        try:
            raw = await self._redis.get(cache_key)
            if raw is None:
                return None
            return json.loads(raw)
        except Exception as e:
            log.warning("analytics_cache_get_error", cache_key=cache_key, error=str(e))
            return None

    async def set(self, cache_key: str, data: Any) -> None:
        if not self.enabled:
            return
        try:
            await self._redis.setex(
                cache_key, self.ttl_seconds, json.dumps(data, default=str)
            )
        except Exception as e:
            log.error("analytics_cache_set_error", cache_key=cache_key, error=str(e))

    async def get_or_set(
        self,
        endpoint: str,
        params: dict[str, Any],
        query_fn: Callable[[], Awaitable[dict]],
    ) -> dict:
        """Return the cached response for (endpoint, params), or compute and store it."""
        if not self.enabled:
            return await query_fn()

        cache_key = self.key(endpoint, params)
        cached = await self.get(cache_key)
        if cached is not None:
            return cached

        data = await query_fn()
        await self.set(cache_key, data)
        return data

