"""
Click document model.

Maps to the `clicks` collection. One document per bookmark or service click.

hour_of_day, day_of_week and day_of_month are derived from clicked_at at
insert time in the server's configured timezone, so heatmap and calendar
aggregations group on stored integers instead of re-deriving from the
timestamp. day_of_week uses 0 = Sunday.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from zoneinfo import ZoneInfo

from pydantic import Field

from schemas.models.base import MongoBaseModel

ItemKind = Literal["bookmark", "service"]


class ClickDoc(MongoBaseModel):
    """Document model for the `clicks` collection."""

    item_id: str
    item_kind: ItemKind
    clicked_at: datetime

    hour_of_day: int = Field(ge=0, le=23)
    day_of_week: int = Field(ge=0, le=6)
    day_of_month: int = Field(ge=1, le=31)

    @classmethod
    def create(
        cls, item_id: str, item_kind: ItemKind, clicked_at: datetime, tz: str = "UTC"
    ) -> "ClickDoc":
        """Build a click with its calendar fields derived in *tz*."""
        local = clicked_at.astimezone(ZoneInfo(tz))
        return cls(
            item_id=item_id,
            item_kind=item_kind,
            clicked_at=clicked_at,
            hour_of_day=local.hour,
            day_of_week=local.isoweekday() % 7,
            day_of_month=local.day,
        )
