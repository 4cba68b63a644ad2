from types import SimpleNamespace

import pytest

from ebbinglish.mastery.constants import WordStatus
from ebbinglish.mastery.status import derive_word_status


def _state(seen=1, freeze=0, mastered=False):
    return SimpleNamespace(seen_count=seen, freeze_rounds=freeze, is_mastered=mastered)


def test_never_reviewed_is_new():
    assert derive_word_status(None, None) == WordStatus.NEW
    assert derive_word_status(_state(seen=0), 2) == WordStatus.NEW


def test_running_freeze_wins_over_mastered_and_grade():
    assert derive_word_status(_state(freeze=2, mastered=True), 0) == WordStatus.FROZEN


@pytest.mark.parametrize("grade, expected", [
    (0, WordStatus.UNKNOWN),
    (1, WordStatus.FUZZY),
    (2, WordStatus.SEEN),
    (None, WordStatus.SEEN),
])
def test_frozen_read_through_latest_grade(grade, expected):
    assert derive_word_status(_state(freeze=3), grade, ignore_frozen=True) == expected


def test_mastered_without_freeze():
    assert derive_word_status(_state(mastered=True), 0) == WordStatus.MASTERED


@pytest.mark.parametrize("grade, expected", [
    (0, WordStatus.UNKNOWN),
    (1, WordStatus.FUZZY),
    (2, WordStatus.SEEN),
])
def test_status_by_latest_grade(grade, expected):
    assert derive_word_status(_state(), grade) == expected
