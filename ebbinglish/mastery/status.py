"""
Status - Display Status Derivation

Maps a word's review state and its most recent grade to one of
new / seen / fuzzy / unknown / mastered / frozen.
"""

from __future__ import annotations
from typing import Optional

from ebbinglish.mastery.constants import ReviewGrade, WordStatus


def _status_from_grade(latest_grade: Optional[int]) -> WordStatus:
    if latest_grade == ReviewGrade.UNKNOWN:
        return WordStatus.UNKNOWN
    if latest_grade == ReviewGrade.FUZZY:
        return WordStatus.FUZZY
    return WordStatus.SEEN


def derive_word_status(
    state,
    latest_grade: Optional[int],
    ignore_frozen: bool = False
) -> WordStatus:
    """
    Derive the display status of a word.

    Args:
        state: ReviewState row (or anything with seen_count, freeze_rounds,
            is_mastered), or None if the word was never reviewed
        latest_grade: Grade of the most recent review log, or None
        ignore_frozen: Read frozen words through their latest grade instead,
            as in-round progress counters need

    Returns:
        WordStatus
    """
    if state is None or (state.seen_count or 0) <= 0:
        return WordStatus.NEW
    if (state.freeze_rounds or 0) > 0:
        if ignore_frozen:
            return _status_from_grade(latest_grade)
        return WordStatus.FROZEN
    if state.is_mastered:
        return WordStatus.MASTERED
    return _status_from_grade(latest_grade)

