"""
Rating - Memory Confidence Score for a Word

Heuristic 0-100 score and S/A/B/C/D level computed from a word's review
log history and its fixed-interval state. Pure and total: any input,
including empty or nonsensical counters, yields a score in [0, 100].

    score = success * 0.48 + stage * 0.28 + consistency * 0.14 + seen * 0.10
            - overdue penalty (max 0.16) - lapse penalty (max 0.14)
"""

from __future__ import annotations
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

from ebbinglish.clock import ensure_utc, utc_now
from ebbinglish.mastery.constants import (
    MAX_STAGE,
    RATING_CONSISTENCY_DAYS,
    RATING_EMPTY_SCORE,
    RATING_LAPSE_PENALTY,
    RATING_LAPSE_SATURATION,
    RATING_LEVELS,
    RATING_OVERDUE_PENALTY,
    RATING_OVERDUE_SATURATION_DAYS,
    RATING_SEEN_SATURATION,
    RATING_WEIGHTS,
    RATING_WINDOW_DAYS,
    ReviewGrade,
)


@dataclass(frozen=True)
class MemoryRating:
    level: str
    score: int
    summary: str


def _clamp(value: float, low: float, high: float) -> float:
    if not math.isfinite(value):
        return low if value != math.inf else high
    return min(max(value, low), high)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def rating_level(score: int) -> str:
    """Map a 0-100 score to its letter level."""
    for level, threshold in RATING_LEVELS:
        if score >= threshold:
            return level
    return "D"


def get_memory_rating(
    stage: int,
    due_at: Optional[datetime],
    lapse_count: int,
    seen_count: int,
    logs: Iterable,
    now: Optional[datetime] = None
) -> MemoryRating:
    """
    Score how well a word is retained.

    Args:
        stage: Fixed-interval stage (0-6)
        due_at: Next due timestamp, or None if never scheduled
        lapse_count: Number of failed reviews
        seen_count: Number of reviews
        logs: Review log entries with `grade` and `reviewed_at`
        now: Reference time (defaults to now)

    Returns:
        MemoryRating with level, score and a one-line summary
    """
    now = ensure_utc(now) if now is not None else utc_now()
    logs = list(logs)
    total = len(logs)

    if total == 0:
        return MemoryRating(level="D", score=RATING_EMPTY_SCORE, summary="No review history yet")

    known = sum(1 for log in logs if log.grade == ReviewGrade.KNOWN)
    fuzzy = sum(1 for log in logs if log.grade == ReviewGrade.FUZZY)
    success_rate = (known + fuzzy * 0.5) / total

    window_start = now - timedelta(days=RATING_WINDOW_DAYS)
    active_days = {
        ensure_utc(log.reviewed_at).date()
        for log in logs
        if log.reviewed_at is not None and ensure_utc(log.reviewed_at) >= window_start
    }
    consistency = _clamp(len(active_days) / RATING_CONSISTENCY_DAYS, 0, 1)

    stage_norm = _clamp((stage or 0) / MAX_STAGE, 0, 1)
    seen_norm = _clamp((seen_count or 0) / RATING_SEEN_SATURATION, 0, 1)

    days_overdue = 0.0
    if due_at is not None:
        days_overdue = max((now - ensure_utc(due_at)).total_seconds() / 86400.0, 0.0)
    overdue_penalty = _clamp(days_overdue / RATING_OVERDUE_SATURATION_DAYS, 0, 1) * RATING_OVERDUE_PENALTY
    lapse_penalty = _clamp((lapse_count or 0) / RATING_LAPSE_SATURATION, 0, 1) * RATING_LAPSE_PENALTY

    base = (
        success_rate * RATING_WEIGHTS["success"]
        + stage_norm * RATING_WEIGHTS["stage"]
        + consistency * RATING_WEIGHTS["consistency"]
        + seen_norm * RATING_WEIGHTS["seen"]
    )
    score = round_half_up(_clamp((base - overdue_penalty - lapse_penalty) * 100, 0, 100))

    return MemoryRating(
        level=rating_level(score),
        score=score,
        summary=f"Success {round_half_up(success_rate * 100)}%, stage {stage}, lapses {lapse_count}",
    )
