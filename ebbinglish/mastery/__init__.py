"""
Mastery - Word State and Scheduling Rules

Pure rules, no store access:
- Mastery ladders: per encounter and per settled round
- Fixed-interval review stages
- Memory rating (S/A/B/C/D)
- Display status derivation
"""

from ebbinglish.mastery.constants import ReviewGrade, WordStatus, STAGE_INTERVAL_DAYS, MAX_STAGE
from ebbinglish.mastery.memory_state import (
    Building,
    Cooldown,
    Mastered,
    MasteryState,
    MASTERED,
    from_fields,
    to_fields,
)
from ebbinglish.mastery.ladder import (
    LadderPolicy,
    ENCOUNTER_POLICY,
    apply_outcome,
    apply_encounter,
    apply_round_outcome,
)
from ebbinglish.mastery.scheduler import NextReviewPlan, plan_next_review
from ebbinglish.mastery.rating import MemoryRating, get_memory_rating
from ebbinglish.mastery.status import derive_word_status


__all__ = [
    # Enums
    "ReviewGrade",
    "WordStatus",
    "STAGE_INTERVAL_DAYS",
    "MAX_STAGE",

    # Mastery state
    "Building",
    "Cooldown",
    "Mastered",
    "MasteryState",
    "MASTERED",
    "from_fields",
    "to_fields",

    # Ladder
    "LadderPolicy",
    "ENCOUNTER_POLICY",
    "apply_outcome",
    "apply_encounter",
    "apply_round_outcome",

    # Reviews
    "NextReviewPlan",
    "plan_next_review",
    "MemoryRating",
    "get_memory_rating",
    "derive_word_status",
]
