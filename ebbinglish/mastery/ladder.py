"""
Ladder - Mastery Phase Transitions

Pure transition functions for the two mastery ladders (no database calls).

Encounter ladder: a word has to prove itself cold, then again after a
short freeze, then again after a long freeze:

    Building --(2 perfect)--> Cooldown(1, 3) --(perfect)--> Cooldown(2, 6) --(perfect)--> Mastered

Any miss after the first freeze drops the word straight back to
Building(0). Freezes are counted down by round settlement only; an
encounter while frozen leaves the state untouched.

Round ladder: one step per word when its round settles, with "known on
the first attempt in this round" as the outcome. A first-try-known word
is mastered (after two rounds in a row in strict mode) and frozen for
the configured number of rounds; any other word falls back to Building(0).
"""

from __future__ import annotations
from dataclasses import dataclass

from ebbinglish.mastery.constants import (
    ENCOUNTER_FIRST_FREEZE,
    ENCOUNTER_PROMOTE_AFTER,
    ENCOUNTER_SECOND_FREEZE,
    STRICT_MASTERY_ROUNDS,
)
from ebbinglish.mastery.memory_state import (
    MASTERED,
    Building,
    Cooldown,
    Mastered,
    MasteryState,
)


@dataclass(frozen=True)
class LadderPolicy:
    """
    Parameters of the encounter ladder.

    Attributes:
        promote_after: Consecutive perfect outcomes needed to leave phase 0
        first_freeze: Rounds frozen after reaching phase 1
        second_freeze: Rounds frozen after reaching phase 2
    """
    promote_after: int
    first_freeze: int
    second_freeze: int


ENCOUNTER_POLICY = LadderPolicy(
    promote_after=ENCOUNTER_PROMOTE_AFTER,
    first_freeze=ENCOUNTER_FIRST_FREEZE,
    second_freeze=ENCOUNTER_SECOND_FREEZE,
)


def apply_outcome(
    state: MasteryState,
    first_time_perfect: bool,
    policy: LadderPolicy = ENCOUNTER_POLICY
) -> MasteryState:
    """
    Compute the next mastery state for one outcome.

    Rules, in order:
    1. Mastered stays mastered, counters reset.
    2. A running freeze leaves the state unchanged.
    3. Building: perfect counts up and promotes to Cooldown(1) at
       `promote_after`; anything else resets the count.
    4. Cooldown(1) with an expired freeze: perfect promotes to Cooldown(2),
       anything else demotes to Building(0).
    5. Cooldown(2) with an expired freeze: perfect masters the word,
       anything else demotes to Building(0).

    Args:
        state: Current tagged state
        first_time_perfect: Whether the outcome counts as a clean pass
        policy: Ladder parameters

    Returns:
        Next tagged state (the input is never modified)
    """
    if isinstance(state, Mastered):
        return MASTERED

    if isinstance(state, Cooldown):
        if state.rounds_left > 0:
            return state
        if not first_time_perfect:
            return Building(0)
        if state.phase == 1:
            return Cooldown(phase=2, rounds_left=policy.second_freeze)
        return MASTERED

    if not first_time_perfect:
        return Building(0)

    count = state.consecutive_perfect + 1
    if count >= policy.promote_after:
        return Cooldown(phase=1, rounds_left=policy.first_freeze)
    return Building(count)


def apply_encounter(state: MasteryState, first_time_perfect: bool) -> MasteryState:
    """Per-encounter ladder step (fixed 2 / 3 / 6 parameters)."""
    return apply_outcome(state, first_time_perfect, ENCOUNTER_POLICY)


def apply_round_outcome(
    state: MasteryState,
    first_try_known: bool,
    freeze_rounds: int,
    require_consecutive_known: bool
) -> MasteryState:
    """
    Round ladder step, evaluated once per word at round settlement.

    Args:
        state: Tagged state after the settlement's freeze countdown
        first_try_known: Word was known on its first attempt in the round
        freeze_rounds: Configured freeze applied to a newly mastered word
        require_consecutive_known: Strict mode, mastering needs two
            first-try-known rounds in a row

    Returns:
        Mastered(freeze_rounds) or Building
    """
    if not first_try_known:
        return Building(0)

    if isinstance(state, Mastered):
        return Mastered(rounds_left=max(int(freeze_rounds), 0))

    previous = state.consecutive_perfect if isinstance(state, Building) else 0
    count = previous + 1
    needed = STRICT_MASTERY_ROUNDS if require_consecutive_known else 1
    if count >= needed:
        return Mastered(rounds_left=max(int(freeze_rounds), 0))
    return Building(count)
