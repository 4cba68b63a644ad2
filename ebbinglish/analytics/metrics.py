"""
Metric computations for the stats dashboard.

Days are UTC calendar days throughout.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable

import pandas as pd

from ebbinglish.analytics.constants import (
    DIFFICULT_WORDS_LIMIT,
    HEALTH_WEIGHTS,
    HEATMAP_INTENSITY_UPPER_BOUNDS,
)
from ebbinglish.analytics.types import DifficultWord
from ebbinglish.mastery.constants import MAX_STAGE, STATS_MASTERED_STAGE, ReviewGrade
from ebbinglish.mastery.rating import round_half_up


# ---- Day Series ----

def build_day_index(start: date, end: date) -> pd.Index:
    """
    Dense index of calendar days from start to end inclusive.
    """
    if end < start:
        return pd.Index([], dtype="object")
    return pd.Index(pd.date_range(start=start.isoformat(), end=end.isoformat(), freq="D").date)


def count_by_day(days: pd.Series) -> pd.Series:
    """
    Number of events per calendar day.
    """
    if days.empty:
        return pd.Series(dtype="int64")
    return days.value_counts().sort_index()


def daily_series(counts: pd.Series, start: date, end: date) -> pd.Series:
    """
    Per-day counts over [start, end], zero-filled.
    """
    day_index = build_day_index(start, end)
    if counts.empty:
        return pd.Series(0, index=day_index, dtype="int64")
    return counts.reindex(day_index, fill_value=0).astype("int64")


def heatmap_intensity(count: int) -> int:
    """Bucket a day's count: 0, 1, 2-3, 4-6, 7+."""
    for intensity, upper in enumerate(HEATMAP_INTENSITY_UPPER_BOUNDS):
        if count <= upper:
            return intensity
    return len(HEATMAP_INTENSITY_UPPER_BOUNDS)


# ---- Streaks ----

def compute_current_streak(active_days: set[date], today: date) -> int:
    """
    Consecutive active days ending today (0 if today has no review).
    """
    streak = 0
    cursor = today
    while cursor in active_days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def compute_longest_streak(active_days: Iterable[date]) -> int:
    """Longest run of consecutive active days."""
    ordered = sorted(set(active_days))
    if not ordered:
        return 0

    best = run = 1
    for prev, curr in zip(ordered, ordered[1:]):
        if (curr - prev).days == 1:
            run += 1
            best = max(best, run)
        else:
            run = 1
    return best


# ---- Review Quality ----

def compute_grade_split(logs_df: pd.DataFrame) -> dict[str, int]:
    """
    Counts of known / fuzzy / again grades.
    """
    if logs_df.empty:
        return {"known": 0, "fuzzy": 0, "again": 0}

    grades = logs_df["grade"]
    known = int((grades == int(ReviewGrade.KNOWN)).sum())
    fuzzy = int((grades == int(ReviewGrade.FUZZY)).sum())
    return {"known": known, "fuzzy": fuzzy, "again": int(len(grades)) - known - fuzzy}


def compute_success_rate(grade_split: dict[str, int]) -> int:
    """
    Percent success where fuzzy counts half.
    """
    total = sum(grade_split.values())
    if total == 0:
        return 0
    return round_half_up((grade_split["known"] + grade_split["fuzzy"] * 0.5) / total * 100)


def compute_avg_per_active_day(logs_df: pd.DataFrame) -> float:
    if logs_df.empty:
        return 0.0
    active_days = logs_df["day"].nunique()
    return round(len(logs_df) / active_days, 1)


# ---- Stage Metrics ----

def clamped_stages(states_df: pd.DataFrame) -> pd.Series:
    if states_df.empty:
        return pd.Series(dtype="int64")
    return states_df["stage"].fillna(0).astype("int64").clip(lower=0, upper=MAX_STAGE)


def compute_stage_distribution(states_df: pd.DataFrame) -> list[int]:
    """
    Number of words at each fixed-interval stage (index = stage).
    """
    stages = clamped_stages(states_df)
    counts = stages.value_counts().reindex(range(MAX_STAGE + 1), fill_value=0)
    return [int(count) for count in counts]


def compute_mastered_count(states_df: pd.DataFrame) -> int:
    return int((clamped_stages(states_df) >= STATS_MASTERED_STAGE).sum())


def compute_stage_weighted(states_df: pd.DataFrame) -> float:
    """
    Mean stage as a fraction of the top stage (0..1).
    """
    if states_df.empty:
        return 0.0
    return float(clamped_stages(states_df).sum()) / (len(states_df) * MAX_STAGE)


def compute_due_counts(states_df: pd.DataFrame, now: datetime, today_start: datetime) -> tuple[int, int]:
    """
    Returns:
        (due now, overdue since before today)
    """
    if states_df.empty:
        return 0, 0
    due_at = pd.to_datetime(states_df["due_at"], utc=True)
    due_now = int((due_at <= pd.Timestamp(now)).sum())
    overdue = int((due_at < pd.Timestamp(today_start)).sum())
    return due_now, overdue


def percent(part: int, whole: int) -> int:
    if whole == 0:
        return 0
    return round_half_up(part / whole * 100)


def compute_health_score(mastery_rate: int, success_rate: int, stage_weighted: float) -> int:
    """
    Single 0-100 health figure blending mastery, recent success and depth.
    """
    raw = (
        mastery_rate * HEALTH_WEIGHTS["mastery"]
        + success_rate * HEALTH_WEIGHTS["success"]
        + stage_weighted * 100 * HEALTH_WEIGHTS["stage"]
    )
    return round_half_up(min(max(raw, 0.0), 100.0))


def select_difficult_words(states_df: pd.DataFrame, limit: int = DIFFICULT_WORDS_LIMIT) -> list[DifficultWord]:
    """
    Seen words ranked by lapses (desc), then stage (asc), then reviews (desc).
    """
    if states_df.empty:
        return []

    seen = states_df[states_df["seen_count"] > 0]
    ranked = seen.sort_values(
        by=["lapse_count", "stage", "seen_count"],
        ascending=[False, True, False],
    ).head(limit)

    return [
        DifficultWord(
            word_id=row.word_id,
            text=row.text,
            is_priority=bool(row.is_priority),
            stage=int(row.stage),
            lapse_count=int(row.lapse_count),
            seen_count=int(row.seen_count),
        )
        for row in ranked.itertuples(index=False)
    ]
