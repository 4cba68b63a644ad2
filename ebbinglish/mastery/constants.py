"""
Mastery Constants and Parameters

All tunable numbers for the two study ladders, the fixed-interval review
scheduler and the memory rating live here.
"""

from __future__ import annotations

from enum import Enum, IntEnum


# ---- Review Grades ----

class ReviewGrade(IntEnum):
    """Grade stored on every review log row."""
    UNKNOWN = 0  # Not recalled
    FUZZY = 1    # Partially recalled
    KNOWN = 2    # Recalled


class WordStatus(str, Enum):
    """Display status derived from review state and the latest grade."""
    NEW = "new"
    SEEN = "seen"
    FUZZY = "fuzzy"
    UNKNOWN = "unknown"
    MASTERED = "mastered"
    FROZEN = "frozen"


# ---- Fixed-Interval Scheduler ----

# Days until the next review, indexed by stage
STAGE_INTERVAL_DAYS: tuple[int, ...] = (0, 1, 2, 4, 7, 15, 30)
MAX_STAGE = len(STAGE_INTERVAL_DAYS) - 1
FUZZY_RETRY_HOURS = 12
AGAIN_RETRY_MINUTES = 10

# Stage from which the stats page counts a word as mastered
STATS_MASTERED_STAGE = 5


# ---- Mastery Ladder ----

MASTERED_PHASE = 3
ENCOUNTER_PROMOTE_AFTER = 2   # First-time-perfect encounters needed to leave phase 0
ENCOUNTER_FIRST_FREEZE = 3    # Cooldown after phase 0 -> 1
ENCOUNTER_SECOND_FREEZE = 6   # Cooldown after phase 1 -> 2
STRICT_MASTERY_ROUNDS = 2     # First-try-known rounds in a row needed in strict mode


# ---- Memory Rating ----

RATING_EMPTY_SCORE = 20
RATING_WINDOW_DAYS = 30
RATING_CONSISTENCY_DAYS = 14
RATING_SEEN_SATURATION = 25
RATING_LAPSE_SATURATION = 12
RATING_OVERDUE_SATURATION_DAYS = 7

RATING_WEIGHTS = {
    "success": 0.48,
    "stage": 0.28,
    "consistency": 0.14,
    "seen": 0.10,
}
RATING_OVERDUE_PENALTY = 0.16
RATING_LAPSE_PENALTY = 0.14

# Lower bound of each level, checked top-down
RATING_LEVELS: tuple[tuple[str, int], ...] = (
    ("S", 85),
    ("A", 70),
    ("B", 55),
    ("C", 40),
)
