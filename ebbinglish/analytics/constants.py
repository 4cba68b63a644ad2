"""
Constants for the activity heatmap and the stats dashboard.
"""

from __future__ import annotations

from typing import Final


# Heatmap intensity buckets: 0, 1, 2-3, 4-6, 7+
HEATMAP_INTENSITY_UPPER_BOUNDS: Final[tuple[int, ...]] = (0, 1, 3, 6)

DAILY_SERIES_DAYS: Final[int] = 14
WEEK_DAYS: Final[int] = 7
SUCCESS_WINDOW_DAYS: Final[int] = 30
DIFFICULT_WORDS_LIMIT: Final[int] = 8

HEALTH_WEIGHTS: Final[dict[str, float]] = {
    "mastery": 0.45,
    "success": 0.35,
    "stage": 0.20,
}

LOG_COLUMNS: Final[list[str]] = ["word_id", "grade", "reviewed_at", "day"]
STATE_COLUMNS: Final[list[str]] = [
    "word_id",
    "text",
    "is_priority",
    "stage",
    "lapse_count",
    "seen_count",
    "due_at",
]
