"""
Request DTOs for the analytics query endpoints (query parameters).

TimeSeriesQuery - GET /api/analytics/time-series
GeoQuery        - GET /api/analytics/geo
HeatmapQuery    - GET /api/analytics/heatmap
TopItemsQuery   - GET /api/analytics/top-items
SummaryQuery    - GET /api/analytics/summary

Limits and the downsample threshold are optional; when omitted the
AnalyticsSettings defaults apply.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from shared.datetime_utils import parse_datetime

TrendPeriod = Literal["day", "week", "month", "year"]
SeriesType = Literal["bookmarks", "services", "pageviews", "all"]
ItemType = Literal["bookmarks", "services"]


class TimeSeriesQuery(BaseModel):
    """Query parameters for the time-series chart.

    ``start_date``/``end_date`` accept ISO 8601 strings or Unix epoch
    seconds. An explicit start date overrides the period; ``custom`` without
    one covers the last week.
    """

    model_config = ConfigDict(populate_by_name=True)

    period: Literal["hour", "day", "week", "month", "year", "custom"] = "week"
    type: SeriesType = "all"
    group_by: Literal["hour", "day", "week", "month"] = "day"
    downsample: Optional[int] = Field(default=None, ge=50, le=500)

    start_date: Optional[str] = None
    end_date: Optional[str] = None

    _parsed_start: Optional[datetime] = PrivateAttr(default=None)
    _parsed_end: Optional[datetime] = PrivateAttr(default=None)

    @model_validator(mode="after")
    def _parse_dates(self) -> "TimeSeriesQuery":
        for raw_name, parsed_name in (
            ("start_date", "_parsed_start"),
            ("end_date", "_parsed_end"),
        ):
            raw = getattr(self, raw_name)
            if raw is None or raw == "":
                continue
            parsed = parse_datetime(raw)
            if parsed is None:
                raise ValueError(f"{raw_name} must be an ISO 8601 date or epoch seconds")
            setattr(self, parsed_name, parsed)

        if (
            self._parsed_start is not None
            and self._parsed_end is not None
            and self._parsed_start > self._parsed_end
        ):
            raise ValueError("start_date must be before end_date")
        return self

    @property
    def parsed_start(self) -> Optional[datetime]:
        return self._parsed_start

    @property
    def parsed_end(self) -> Optional[datetime]:
        return self._parsed_end


class GeoQuery(BaseModel):
    """Query parameters for the geographic breakdown."""

    model_config = ConfigDict(populate_by_name=True)

    period: Literal["hour", "day", "week", "month", "year", "all"] = "month"
    level: Literal["country", "city"] = "country"
    limit: Optional[int] = Field(default=None, ge=1, le=1000)


class HeatmapQuery(BaseModel):
    """Query parameters for the day-of-week by hour-of-day heatmap."""

    model_config = ConfigDict(populate_by_name=True)

    period: Literal["week", "month", "year"] = "month"
    type: SeriesType = "all"


class TopItemsQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: ItemType = "bookmarks"
    period: TrendPeriod = "week"
    limit: Optional[int] = Field(default=None, ge=1, le=100)


class SummaryQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    period: TrendPeriod = "week"
