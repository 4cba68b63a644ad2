"""
Memory State - Tagged Mastery State for a Single Word

The store keeps mastery progress as four flat columns
(consecutive_perfect, freeze_rounds, is_mastered, mastery_phase). Those
columns must stay mutually consistent, so the ladder never touches them
directly. It works on one of three variants instead:

- Building: phase 0, counting first-time-perfect encounters
- Cooldown: phase 1 or 2, frozen for `rounds_left` settled rounds
  (0 means the freeze ran out and the word awaits verification)
- Mastered: phase 3; a round settlement may leave it frozen for
  `rounds_left` settled rounds before it is drawn again
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Union

from ebbinglish.mastery.constants import MASTERED_PHASE


@dataclass(frozen=True)
class Building:
    consecutive_perfect: int = 0


@dataclass(frozen=True)
class Cooldown:
    phase: int
    rounds_left: int

    def __post_init__(self):
        if self.phase not in (1, 2):
            raise ValueError(f"Cooldown phase must be 1 or 2, got {self.phase}")
        if self.rounds_left < 0:
            raise ValueError("Cooldown rounds_left cannot be negative")


@dataclass(frozen=True)
class Mastered:
    rounds_left: int = 0

    def __post_init__(self):
        if self.rounds_left < 0:
            raise ValueError("Mastered rounds_left cannot be negative")


MasteryState = Union[Building, Cooldown, Mastered]

MASTERED = Mastered()


def from_fields(
    consecutive_perfect: int,
    freeze_rounds: int,
    is_mastered: bool,
    mastery_phase: int
) -> MasteryState:
    """
    Rebuild the tagged state from stored columns.

    Rows written before the phase ladder existed may carry a freeze with
    phase 0; those are read as a phase 1 cooldown.
    """
    freeze = max(freeze_rounds, 0)
    if is_mastered or mastery_phase >= MASTERED_PHASE:
        return Mastered(rounds_left=freeze) if freeze else MASTERED
    if mastery_phase in (1, 2):
        return Cooldown(phase=mastery_phase, rounds_left=freeze)
    if freeze > 0:
        return Cooldown(phase=1, rounds_left=freeze)
    return Building(consecutive_perfect=max(consecutive_perfect, 0))


def to_fields(state: MasteryState) -> dict:
    """
    Flatten a tagged state into the stored column values.

    Returns:
        Dict with consecutive_perfect, freeze_rounds, is_mastered, mastery_phase
    """
    if isinstance(state, Mastered):
        return {
            "consecutive_perfect": 0,
            "freeze_rounds": state.rounds_left,
            "is_mastered": True,
            "mastery_phase": MASTERED_PHASE,
        }
    if isinstance(state, Cooldown):
        return {
            "consecutive_perfect": 0,
            "freeze_rounds": state.rounds_left,
            "is_mastered": False,
            "mastery_phase": state.phase,
        }
    return {
        "consecutive_perfect": state.consecutive_perfect,
        "freeze_rounds": 0,
        "is_mastered": False,
        "mastery_phase": 0,
    }


def read_state(row) -> MasteryState:
    """Tagged state of a ReviewState row (or any object with the four columns)."""
    return from_fields(
        row.consecutive_perfect or 0,
        row.freeze_rounds or 0,
        bool(row.is_mastered),
        row.mastery_phase or 0,
    )


def write_state(row, state: MasteryState) -> None:
    """Copy a tagged state onto a ReviewState row (modifies in place)."""
    for column, value in to_fields(state).items():
        setattr(row, column, value)
