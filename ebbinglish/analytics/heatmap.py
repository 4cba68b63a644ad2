"""
Heatmap - Activity Calendar

GitHub-style calendar of review activity. The grid starts on the Sunday on
or before the first of the trailing `days` days and runs through today, cut
into weeks of seven cells; the last week may be partial.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Optional

import pandas as pd

from ebbinglish.analytics.constants import WEEK_DAYS
from ebbinglish.analytics.metrics import count_by_day, daily_series, heatmap_intensity
from ebbinglish.analytics.types import HeatmapCell
from ebbinglish.clock import ensure_utc, utc_now
from ebbinglish.config import HEATMAP_DAYS


def _week_start(day: date) -> date:
    # date.weekday(): Monday == 0 ... Sunday == 6
    return day - timedelta(days=(day.weekday() + 1) % WEEK_DAYS)


def build_heatmap(
    timestamps: Iterable,
    days: int = HEATMAP_DAYS,
    today: Optional[date] = None
) -> list[list[HeatmapCell]]:
    """
    Build the activity calendar.

    Args:
        timestamps: Event datetimes (naive values are read as UTC)
        days: Trailing days to cover (at least one)
        today: Last day of the grid (defaults to today in UTC)

    Returns:
        Weeks of HeatmapCell, oldest first
    """
    today = today or utc_now().date()
    first_day = today - timedelta(days=max(days, 1) - 1)
    start = _week_start(first_day)

    event_days = pd.Series(
        [ensure_utc(ts).date() for ts in timestamps if ts is not None],
        dtype="object",
    )
    counts = daily_series(count_by_day(event_days), start, today)

    cells = [
        HeatmapCell(date=day, count=int(count), intensity=heatmap_intensity(int(count)))
        for day, count in counts.items()
    ]
    return [cells[i:i + WEEK_DAYS] for i in range(0, len(cells), WEEK_DAYS)]
