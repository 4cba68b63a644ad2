"""
Types for the activity heatmap and the stats dashboard.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

import pandas as pd


@dataclass(frozen=True)
class HeatmapCell:
    date: date
    count: int
    intensity: int  # 0..4


@dataclass(frozen=True)
class DifficultWord:
    word_id: str
    text: str
    is_priority: bool
    stage: int
    lapse_count: int
    seen_count: int


@dataclass(frozen=True)
class StatsDashboard:
    """
    Precomputed KPI values and series for the stats page.

    Percentages (success_30d, review_coverage, mastery_rate, health_score)
    are integers in 0..100.
    """
    total_words: int
    priority_words: int
    words_with_note: int
    never_reviewed: int
    active_review_words: int
    due_now: int
    overdue: int
    stage_counts: list[int]
    mastered: int
    grade_split_30d: dict[str, int]
    success_30d: int
    reviews_today: int
    reviews_7d: int
    daily_reviews_14d: pd.Series
    current_streak: int
    longest_streak: int
    avg_per_active_day_30d: float
    review_coverage: int
    mastery_rate: int
    health_score: int
    difficult_words: list[DifficultWord]
    heatmap: list[list[HeatmapCell]]
