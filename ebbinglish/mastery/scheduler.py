"""
Scheduler - Fixed-Interval Review Planning

Pure graduated-interval scheduling (no database calls). Independent of
rounds and the mastery ladder; drives the "due now" review surface.

    known  -> one stage up, due after STAGE_INTERVAL_DAYS[next_stage]
    fuzzy  -> same stage (at least 1), due in 12 hours
    unknown -> back to stage 0, due in 10 minutes, one lapse
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from ebbinglish.mastery.constants import (
    AGAIN_RETRY_MINUTES,
    FUZZY_RETRY_HOURS,
    MAX_STAGE,
    STAGE_INTERVAL_DAYS,
    ReviewGrade,
)


@dataclass(frozen=True)
class NextReviewPlan:
    next_stage: int
    due_at: datetime
    lapse_increment: int


def clamp_stage(stage: int) -> int:
    """Clamp a stored stage into the interval table."""
    return min(max(int(stage), 0), MAX_STAGE)


def plan_next_review(
    current_stage: int,
    grade: ReviewGrade,
    now: Optional[datetime] = None
) -> NextReviewPlan:
    """
    Plan the next review for a word.

    Args:
        current_stage: Stored stage (clamped into range)
        grade: Review grade (0, 1 or 2)
        now: Review timestamp (defaults to now)

    Returns:
        NextReviewPlan with the next stage, due timestamp and lapse increment
    """
    if now is None:
        now = datetime.now(timezone.utc)

    stage = clamp_stage(current_stage)
    grade = ReviewGrade(grade)

    if grade == ReviewGrade.KNOWN:
        next_stage = clamp_stage(stage + 1)
        return NextReviewPlan(
            next_stage=next_stage,
            due_at=now + timedelta(days=STAGE_INTERVAL_DAYS[next_stage]),
            lapse_increment=0,
        )

    if grade == ReviewGrade.FUZZY:
        return NextReviewPlan(
            next_stage=max(1, stage),
            due_at=now + timedelta(hours=FUZZY_RETRY_HOURS),
            lapse_increment=0,
        )

    return NextReviewPlan(
        next_stage=0,
        due_at=now + timedelta(minutes=AGAIN_RETRY_MINUTES),
        lapse_increment=1,
    )
