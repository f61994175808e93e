"""
Largest-Triangle-Three-Buckets (LTTB) downsampling for chart series.

Reduces an ordered series to a target number of points while keeping the
peaks and valleys a reader would notice, which plain stride decimation
drops. Reference: Sveinn Steinarsson, "Downsampling Time Series for Visual
Representation" (2013).
"""

from __future__ import annotations

import math
from typing import Sequence, TypeVar

Point = tuple[float, float]
Row = TypeVar("Row", bound=dict)


def lttb_downsample(points: Sequence[Point], threshold: int) -> list[Point]:
    """Downsample ordered ``(x, y)`` *points* to at most *threshold* points.

    - ``len(points) <= threshold``: the input is returned unchanged (as a list).
    - ``threshold < 3``: only the first and last points are kept.
    - Otherwise the first and last points are always kept and the interior
      is split into ``threshold - 2`` buckets; from each bucket the point
      forming the largest triangle with the previously selected point and
      the centroid of the next bucket is chosen.

    The output is ordered by input position, so it is non-decreasing in x
    whenever the input is.
    """
    n = len(points)
    if n <= threshold:
        return list(points)
    if threshold < 3:
        return [points[0], points[-1]]

    sampled: list[Point] = [points[0]]
    bucket_size = (n - 2) / (threshold - 2)
    a = 0  # index of the previously selected point

    for i in range(threshold - 2):
        # Centroid of the next bucket; the last point when there is none
        next_start = math.floor((i + 1) * bucket_size) + 1
        next_end = min(math.floor((i + 2) * bucket_size) + 1, n - 1)
        if next_end > next_start:
            span = points[next_start:next_end]
            avg_x = sum(p[0] for p in span) / len(span)
            avg_y = sum(p[1] for p in span) / len(span)
        else:
            avg_x, avg_y = points[-1]

        range_start = math.floor(i * bucket_size) + 1
        range_end = min(math.floor((i + 1) * bucket_size) + 1, n - 1)

        ax, ay = points[a]
        max_area = -1.0
        max_index = range_start
        for j in range(range_start, range_end):
            area = abs(
                (ax - avg_x) * (points[j][1] - ay) - (ax - points[j][0]) * (avg_y - ay)
            )
            if area > max_area:
                max_area = area
                max_index = j

        sampled.append(points[max_index])
        a = max_index

    sampled.append(points[-1])
    return sampled


def downsample_date_series(
    rows: Sequence[Row], threshold: int, value_field: str = "count"
) -> list[Row]:
    """Downsample ``{"date": ..., "count": ...}`` rows for chart rendering.

    Each row is mapped to ``(index, value)``, run through LTTB and mapped
    back to the original row objects; the synthetic index is discarded.
    """
    if len(rows) <= threshold:
        return list(rows)

    indexed: list[Point] = [
        (float(index), float(row.get(value_field) or 0)) for index, row in enumerate(rows)
    ]
    selected = lttb_downsample(indexed, threshold)
    return [rows[int(x)] for x, _ in selected]
