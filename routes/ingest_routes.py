"""
Event ingestion endpoints.

POST /api/pageview                 - page-view beacon; enrichment runs after the response
POST /api/clicks                   - generic click {item_id, item_kind}
POST /api/bookmarks/{item_id}/click
POST /api/services/{item_id}/click

The client IP comes from proxy headers (see shared/ip_utils.py) and is
never echoed back or logged raw.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request

from dependencies import get_ingestion_service
from schemas.dto.requests.ingest import ClickRequest, PageviewRequest
from schemas.dto.responses.common import IngestResponse
from services.ingestion_service import IngestionService
from shared.ip_utils import get_request_ip

router = APIRouter(prefix="/api", tags=["ingest"])


@router.post("/pageview", response_model=IngestResponse)
async def record_pageview(
    request: Request,
    body: Optional[PageviewRequest] = None,
    ingestion: IngestionService = Depends(get_ingestion_service),
) -> IngestResponse:
    event_id = await ingestion.record_pageview(
        path=body.path if body is not None else None,
        user_agent=request.headers.get("user-agent"),
        ip=get_request_ip(request),
    )
    return IngestResponse(success=True, event_id=event_id)


@router.post("/clicks", response_model=IngestResponse)
async def record_click(
    body: ClickRequest,
    ingestion: IngestionService = Depends(get_ingestion_service),
) -> IngestResponse:
    await ingestion.record_click(body.item_id, body.item_kind)
    return IngestResponse(success=True)


@router.post("/bookmarks/{item_id}/click", response_model=IngestResponse)
async def record_bookmark_click(
    item_id: str,
    ingestion: IngestionService = Depends(get_ingestion_service),
) -> IngestResponse:
    await ingestion.record_click(item_id, "bookmark")
    return IngestResponse(success=True)


@router.post("/services/{item_id}/click", response_model=IngestResponse)
async def record_service_click(
    item_id: str,
    ingestion: IngestionService = Depends(get_ingestion_service),
) -> IngestResponse:
    await ingestion.record_click(item_id, "service")
    return IngestResponse(success=True)
