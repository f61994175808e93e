"""
Common response DTOs shared across multiple endpoints.

ErrorResponse    - standard error shape from AppError.to_dict()
HealthResponse   - GET /health
IngestResponse   - {success, event_id} returned by the ingestion endpoints
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class ErrorResponse(BaseModel):
    """Standard error JSON body produced by the AppError exception handler."""

    model_config = ConfigDict(populate_by_name=True)

    error: str
    code: str
    field: Optional[str] = None
    details: Optional[Any] = None


class EnrichmentHealth(BaseModel):
    pending_tasks: int = 0
    default_provider: Optional[str] = None


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    checks: dict[str, str]
    enrichment: EnrichmentHealth


class IngestResponse(BaseModel):
    """Returned as soon as the raw event is persisted; enrichment runs later."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    event_id: Optional[str] = None
