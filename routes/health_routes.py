"""
Health check endpoint.

GET /health checks MongoDB and Redis connectivity and reports the
enrichment queue.
Rules:
- MongoDB failure → "unhealthy" (503); nothing can be ingested without it.
- Redis failure or absence → "degraded" (200); it only caches analytics.
- The enrichment block is informational and never changes the status.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from schemas.dto.responses.common import EnrichmentHealth, HealthResponse
from shared.logging import get_logger

log = get_logger(__name__)

router = APIRouter(tags=["health"])


def _enrichment_state(request: Request) -> EnrichmentHealth:
    runner = getattr(request.app.state, "task_runner", None)
    settings = getattr(request.app.state, "settings", None)
    return EnrichmentHealth(
        pending_tasks=runner.pending if runner is not None else 0,
        default_provider=settings.geoip.geoip_provider if settings is not None else None,
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
)
async def health_check(request: Request) -> JSONResponse:
    checks: dict[str, str] = {}
    overall = "healthy"

    try:
        await request.app.state.db.client.admin.command("ping")
        checks["mongodb"] = "ok"
    except Exception as e:
        log.warning("health_mongodb_failed", error=str(e), error_type=type(e).__name__)
        checks["mongodb"] = "error"
        overall = "unhealthy"

    redis = request.app.state.redis
    if redis is None:
        checks["redis"] = "not_configured"
    else:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except Exception as e:
            log.warning("health_redis_failed", error=str(e), error_type=type(e).__name__)
            checks["redis"] = "error"

    if overall == "healthy" and checks["redis"] != "ok":
        overall = "degraded"

    body = HealthResponse(
        status=overall, checks=checks, enrichment=_enrichment_state(request)
    )
    return JSONResponse(
        status_code=503 if overall == "unhealthy" else 200,
        content=body.model_dump(),
    )
