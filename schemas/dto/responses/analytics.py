"""
Response DTOs for the analytics endpoints.

Field names are the JSON contract consumed by the dashboard charts.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


class Dataset(BaseModel):
    label: str
    data: list[int]


class TimeSeriesResponse(BaseModel):
    """Chart-ready series: every dataset has one value per label."""

    model_config = ConfigDict(populate_by_name=True)

    labels: list[str]
    datasets: list[Dataset]
    period: str
    group_by: str


class GeoLocationStat(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    country_code: Optional[str] = None
    country_name: Optional[str] = None
    city: Optional[str] = None
    count: int
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class GeoResponse(BaseModel):
    locations: list[GeoLocationStat]
    total: int
    level: str
    period: str


class HeatmapCell(BaseModel):
    day_of_week: int  # 0 = Sunday
    hour: int
    value: int


class HeatmapResponse(BaseModel):
    data: list[HeatmapCell]
    max_value: int
    period: str
    type: str


class TopItem(BaseModel):
    id: str
    name: str
    clicks: int
    previous_clicks: int
    trend: int


class TopItemsResponse(BaseModel):
    items: list[TopItem]
    type: str
    period: str


class MetricWithTrend(BaseModel):
    value: int
    previous: int
    trend: int


class SummaryResponse(BaseModel):
    """Dashboard headline numbers for a period vs. the preceding one."""

    pageviews: MetricWithTrend
    unique_visitors: MetricWithTrend
    clicks: MetricWithTrend
    top_country: str = "Unknown"
    top_country_count: int = 0
    period: str
