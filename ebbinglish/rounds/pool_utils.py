"""
Pool utilities for round sessions.

Ordering keys and the batch cut used by the selector. Python's sort is
stable, so words that tie on every key keep their round order.
"""

from __future__ import annotations
from typing import Iterable

from ebbinglish.clock import ensure_utc
from ebbinglish.mastery.constants import WordStatus
from ebbinglish.rounds.pool_types import RoundWord


def encounter_sort_key(word: RoundWord) -> tuple:
    """Priority words first, then oldest first."""
    return (0 if word.is_priority else 1, ensure_utc(word.created_at))


def extra_sort_key(word: RoundWord) -> tuple:
    """
    Unknown before fuzzy, most recently reviewed first (a word that was
    just missed comes back soonest), then priority, then oldest first.
    """
    reviewed = word.last_reviewed_at
    reviewed_ts = ensure_utc(reviewed).timestamp() if reviewed is not None else 0.0
    return (
        0 if word.status == WordStatus.UNKNOWN else 1,
        -reviewed_ts,
        0 if word.is_priority else 1,
        ensure_utc(word.created_at),
    )


def take_first(words: Iterable[RoundWord], size: int) -> list[str]:
    """First `size` word ids."""
    if size <= 0:
        return []
    out: list[str] = []
    for word in words:
        if len(out) >= size:
            break
        out.append(word.word_id)
    return out
