"""
Settlement - Round Completion Event

When the last word of a round is marked known, the round settles:

1. Every running freeze of the user is counted down by one round.
2. Every word of the round takes one step on the round ladder, with
   "first try known in this round" as the outcome.

Both steps run on the caller's session, inside the same transaction as
the session finish that triggered them.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from ebbinglish import log_repo
from ebbinglish.mastery import memory_state
from ebbinglish.mastery.constants import MASTERED_PHASE
from ebbinglish.mastery.ladder import apply_round_outcome
from ebbinglish.mastery.memory_state import Building, Cooldown, MasteryState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoundSettled:
    """
    Domain event raised once per round, when it becomes complete.

    Attributes:
        user_id: Owner; scopes the freeze countdown
        round_id: Settled round
        word_ids: All words of the round
        first_try_known_ids: Words known on their first attempt
        freeze_rounds: Configured cooldown length
        require_consecutive_known: Strict mastery toggle
    """
    user_id: str
    round_id: str
    word_ids: tuple[str, ...]
    first_try_known_ids: frozenset[str]
    freeze_rounds: int
    require_consecutive_known: bool


@dataclass(frozen=True)
class SettlementReport:
    freezes_decremented: int
    promoted: int
    demoted: int
    mastered: int


def _phase(state: MasteryState) -> int:
    if isinstance(state, Building):
        return 0
    if isinstance(state, Cooldown):
        return state.phase
    return MASTERED_PHASE


def apply_round_settled(session: Session, event: RoundSettled) -> SettlementReport:
    """
    Apply a RoundSettled event to the user's review states.

    Returns:
        SettlementReport with transition counts
    """
    decremented = log_repo.decrement_freeze_rounds(session, event.user_id)
    states = log_repo.load_states(session, event.user_id, event.word_ids)

    promoted = demoted = mastered = 0
    for word_id in event.word_ids:
        row = states.get(word_id)
        if row is None:
            continue

        before = memory_state.read_state(row)
        after = apply_round_outcome(
            before,
            word_id in event.first_try_known_ids,
            event.freeze_rounds,
            event.require_consecutive_known,
        )
        memory_state.write_state(row, after)

        if _phase(after) > _phase(before):
            promoted += 1
            if _phase(after) == MASTERED_PHASE:
                mastered += 1
        elif _phase(after) < _phase(before):
            demoted += 1

    logger.info(
        "Round %s settled: %d freezes decremented, %d promoted (%d mastered), %d demoted",
        event.round_id, decremented, promoted, mastered, demoted,
    )
    return SettlementReport(
        freezes_decremented=decremented,
        promoted=promoted,
        demoted=demoted,
        mastered=mastered,
    )
