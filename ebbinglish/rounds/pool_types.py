"""
Typed pool models for round session selection.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ebbinglish.mastery.constants import WordStatus


@dataclass(frozen=True)
class RoundWord:
    """
    Selection view of one word in a round.

    `status` is the frozen-normalized status (a frozen word reads as its
    latest grade) since frozen words can still be studied inside a round.
    """
    word_id: str
    is_priority: bool
    created_at: datetime
    status: WordStatus
    last_reviewed_at: Optional[datetime] = None


@dataclass
class RoundPoolState:
    """
    Snapshot of a round taken when a session is about to be drawn.

    Attributes:
        round_id: Round identifier
        words: Owned round words in round order
        completed: Words marked known at least once in this round
        attempted: Attempted words that are still in the round and not new
    """
    round_id: str
    words: list[RoundWord]
    completed: set[str] = field(default_factory=set)
    attempted: set[str] = field(default_factory=set)

    def remaining(self) -> list[RoundWord]:
        """Words not completed yet, in round order."""
        return [w for w in self.words if w.word_id not in self.completed]

    def encounter_candidates(self) -> list[RoundWord]:
        """Not completed and never attempted in this round."""
        return [w for w in self.remaining() if w.word_id not in self.attempted]

    def extra_candidates(self) -> list[RoundWord]:
        """Attempted, not completed, and currently unknown or fuzzy."""
        return [
            w for w in self.remaining()
            if w.word_id in self.attempted
            and w.status in (WordStatus.UNKNOWN, WordStatus.FUZZY)
        ]
