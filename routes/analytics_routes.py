"""
Analytics query endpoints.

GET /api/analytics/time-series  - chart series, zero-filled and downsampled
GET /api/analytics/geo          - pageviews by country or city
GET /api/analytics/heatmap      - 7x24 day-of-week by hour grid
GET /api/analytics/top-items    - most clicked bookmarks or services with trend
GET /api/analytics/summary      - headline numbers with trend

Query parameters are validated by the request DTOs; invalid values return
the standard 400 validation error body.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from dependencies import get_analytics_service
from schemas.dto.requests.analytics import (
    GeoQuery,
    HeatmapQuery,
    SummaryQuery,
    TimeSeriesQuery,
    TopItemsQuery,
)
from schemas.dto.responses.analytics import (
    GeoResponse,
    HeatmapResponse,
    SummaryResponse,
    TimeSeriesResponse,
    TopItemsResponse,
)
from services.analytics_service import AnalyticsService

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("/time-series", response_model=TimeSeriesResponse)
async def time_series(
    query: Annotated[TimeSeriesQuery, Query()],
    analytics: AnalyticsService = Depends(get_analytics_service),
) -> dict:
    return await analytics.time_series(
        period=query.period,
        series_type=query.type,
        group_by=query.group_by,
        downsample=query.downsample,
        start_date=query.parsed_start,
        end_date=query.parsed_end,
    )


@router.get("/geo", response_model=GeoResponse)
async def geo(
    query: Annotated[GeoQuery, Query()],
    analytics: AnalyticsService = Depends(get_analytics_service),
) -> dict:
    return await analytics.geo(period=query.period, level=query.level, limit=query.limit)


@router.get("/heatmap", response_model=HeatmapResponse)
async def heatmap(
    query: Annotated[HeatmapQuery, Query()],
    analytics: AnalyticsService = Depends(get_analytics_service),
) -> dict:
    return await analytics.heatmap(period=query.period, series_type=query.type)


@router.get("/top-items", response_model=TopItemsResponse)
async def top_items(
    query: Annotated[TopItemsQuery, Query()],
    analytics: AnalyticsService = Depends(get_analytics_service),
) -> dict:
    return await analytics.top_items(
        item_type=query.type, period=query.period, limit=query.limit
    )


@router.get("/summary", response_model=SummaryResponse)
async def summary(
    query: Annotated[SummaryQuery, Query()],
    analytics: AnalyticsService = Depends(get_analytics_service),
) -> dict:
    return await analytics.summary(period=query.period)
