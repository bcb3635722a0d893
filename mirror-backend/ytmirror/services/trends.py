"""
Daily trend series built from channel snapshots.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, List, Optional, Tuple

from ytmirror.core.enums import TrendMetric
from ytmirror.core.errors import AppError

DEFAULT_WINDOW_DAYS = 30
MAX_WINDOW_DAYS = 3650

_METRIC_ALIASES = {
    "viewcount": TrendMetric.VIEW_COUNT,
    "view_count": TrendMetric.VIEW_COUNT,
    "views": TrendMetric.VIEW_COUNT,
    "subscribercount": TrendMetric.SUBSCRIBER_COUNT,
    "subscriber_count": TrendMetric.SUBSCRIBER_COUNT,
    "subscribers": TrendMetric.SUBSCRIBER_COUNT,
    "videocount": TrendMetric.VIDEO_COUNT,
    "video_count": TrendMetric.VIDEO_COUNT,
    "videos": TrendMetric.VIDEO_COUNT,
}


@dataclass
class TrendPoint:
    snapshot_date: date
    value: Optional[int]


def parse_trend_metric(raw: Optional[str]) -> TrendMetric:
    """Accepts camelCase, snake_case and short plural forms; blank means view_count."""
    value = (raw or "").strip()
    if not value:
        return TrendMetric.VIEW_COUNT
    try:
        return _METRIC_ALIASES[value.lower()]
    except KeyError:
        raise AppError(
            f"Unsupported metric: {value}",
            status_code=400,
            code="INVALID_METRIC",
            details={"allowed": [m.value for m in TrendMetric]},
        )


def window_bounds(days: int, today: date) -> Tuple[date, date]:
    """Inclusive [start, end] covering ``days`` UTC dates ending today."""
    days = min(max(1, days), MAX_WINDOW_DAYS)
    return today - timedelta(days=days - 1), today


def build_daily_series(snapshots: Iterable, metric: TrendMetric, start: date, end: date) -> List[TrendPoint]:
    """
    One point per date in [start, end]. Dates without a snapshot repeat the
    last known value; leading gaps stay None.
    """
    by_date = {row.snapshot_date: getattr(row, TrendMetric(metric).value) for row in snapshots}

    points: List[TrendPoint] = []
    last_value: Optional[int] = None
    cursor = start
    while cursor <= end:
        if cursor in by_date:
            last_value = by_date[cursor]
        points.append(TrendPoint(snapshot_date=cursor, value=last_value))
        cursor += timedelta(days=1)
    return points
