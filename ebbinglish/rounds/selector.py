"""
Selector - Round Session Word Selection

Builds the pool snapshot of a round and cuts the next batch from it.

Session types:
- normal: encounter phase. Only words never attempted in this round, so
  every word is met exactly once before extra practice. No backfill with
  attempted words when fewer than session_size remain.
- extra: attempted words whose latest answer was unknown or fuzzy and
  that were never marked known in this round.
"""

from __future__ import annotations
import logging

from sqlalchemy.orm import Session

from ebbinglish import log_repo, word_repo
from ebbinglish.errors import NoWordsAvailable
from ebbinglish.mastery.constants import WordStatus
from ebbinglish.mastery.status import derive_word_status
from ebbinglish.models import StudyRound
from ebbinglish.rounds.pool_types import RoundPoolState, RoundWord
from ebbinglish.rounds.pool_utils import encounter_sort_key, extra_sort_key, take_first
from ebbinglish.schemas import SessionType

logger = logging.getLogger(__name__)

ENCOUNTER_FINISHED_MESSAGE = "Encounter phase already finished. Use Extra Practice."
NO_EXTRA_WORDS_MESSAGE = "No words available for this session type"


def build_round_pool_state(session: Session, user_id: str, study_round: StudyRound) -> RoundPoolState:
    """
    Snapshot a round for selection.

    Loads the round's owned words, their review states and latest grades,
    and derives each word's frozen-normalized status.
    """
    round_word_ids = list(study_round.word_ids)
    words_by_id = {
        word.id: word
        for word in word_repo.find_owned_words(session, user_id, round_word_ids)
    }
    states = log_repo.load_states(session, user_id, round_word_ids)
    latest = log_repo.latest_reviews(session, user_id, round_word_ids)

    pool_words: list[RoundWord] = []
    for word_id in round_word_ids:
        word = words_by_id.get(word_id)
        if word is None:
            continue
        latest_grade, latest_at = latest.get(word_id, (None, None))
        pool_words.append(RoundWord(
            word_id=word_id,
            is_priority=bool(word.is_priority),
            created_at=word.created_at,
            status=derive_word_status(states.get(word_id), latest_grade, ignore_frozen=True),
            last_reviewed_at=latest_at,
        ))

    statuses = {w.word_id: w.status for w in pool_words}
    in_round = set(round_word_ids)
    attempted = {
        word_id for word_id in study_round.attempted_word_ids
        if word_id in in_round and statuses.get(word_id, WordStatus.NEW) != WordStatus.NEW
    }

    return RoundPoolState(
        round_id=study_round.id,
        words=pool_words,
        completed=set(study_round.completed_word_ids),
        attempted=attempted,
    )


def select_session_words(
    pool_state: RoundPoolState,
    session_type: SessionType,
    session_size: int
) -> list[str]:
    """
    Pick the ordered word ids of the next session.

    Args:
        pool_state: Round snapshot
        session_type: normal or extra
        session_size: Maximum batch size

    Returns:
        Word ids in the order they must be presented

    Raises:
        NoWordsAvailable: Candidate pool is empty
    """
    session_type = SessionType(session_type)

    if session_type == SessionType.NORMAL:
        candidates = sorted(pool_state.encounter_candidates(), key=encounter_sort_key)
        selected = take_first(candidates, session_size)
        if not selected:
            raise NoWordsAvailable(ENCOUNTER_FINISHED_MESSAGE)
    else:
        candidates = sorted(pool_state.extra_candidates(), key=extra_sort_key)
        selected = take_first(candidates, session_size)
        if not selected:
            raise NoWordsAvailable(NO_EXTRA_WORDS_MESSAGE)

    logger.debug(
        "Round %s: %d %s candidates, selected %d",
        pool_state.round_id, len(candidates), session_type.value, len(selected),
    )
    return selected
