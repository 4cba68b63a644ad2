"""
Study Actions - Round and Session Operations

Exposed operations of the round/session study flow. Each one validates its
payload, runs in a single transaction and returns an ActionResult; nothing
raises across this boundary.

Lifecycle:
1. create_round: fix a working set of owned words
2. start_session: draw the next normal (encounter) or extra batch
3. save_session_progress: advisory partial answers, in session order
4. finish_session: fold answers into round and word state; settle the
   round when its last word becomes known
"""

from __future__ import annotations
import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ebbinglish import database, log_repo, settings_repo, word_repo
from ebbinglish.clock import utc_now
from ebbinglish.errors import NotFoundError, StateConflict, ValidationError, study_action
from ebbinglish.mastery import memory_state
from ebbinglish.mastery.constants import WordStatus
from ebbinglish.mastery.memory_state import MASTERED, Building
from ebbinglish.models import StudyRound, StudySession
from ebbinglish.rounds.selector import build_round_pool_state, select_session_words
from ebbinglish.rounds.settlement import RoundSettled, apply_round_settled
from ebbinglish.schemas import (
    OUTCOME_GRADES,
    CreateRoundRequest,
    EditRoundWordStatusRequest,
    RoundStatus,
    SessionOutcome,
    SessionResult,
    SessionResultsRequest,
    SessionType,
    StartSessionRequest,
    TargetStatus,
    UpdateRoundStatusRequest,
    UpdateSettingsRequest,
)

logger = logging.getLogger(__name__)

ROUND_NOT_FOUND = "Round not found"
SESSION_NOT_FOUND = "Session not found"


# ---- Helpers ----

def _load_round(session: Session, user_id: str, round_id: str, for_update: bool = False) -> StudyRound:
    query = select(StudyRound).where(StudyRound.id == round_id, StudyRound.user_id == user_id)
    if for_update:
        query = query.with_for_update()
    study_round = session.scalar(query)
    if study_round is None:
        raise NotFoundError(ROUND_NOT_FOUND)
    return study_round


def _load_session(session: Session, user_id: str, session_id: str, for_update: bool = False) -> StudySession:
    query = select(StudySession).where(StudySession.id == session_id, StudySession.user_id == user_id)
    if for_update:
        query = query.with_for_update()
    study_session = session.scalar(query)
    if study_session is None:
        raise NotFoundError(SESSION_NOT_FOUND)
    return study_session


def _find_open_session(
    session: Session,
    user_id: str,
    round_id: str,
    session_type: SessionType
) -> Optional[StudySession]:
    return session.scalar(
        select(StudySession)
        .where(
            StudySession.user_id == user_id,
            StudySession.round_id == round_id,
            StudySession.type == session_type.value,
            StudySession.completed_at.is_(None),
        )
        .order_by(StudySession.started_at.desc())
    )


def _in_round_order(word_ids: Iterable[str], members: set[str]) -> list[str]:
    return [word_id for word_id in word_ids if word_id in members]


def _is_round_complete(word_ids: Iterable[str], completed: set[str]) -> bool:
    return set(word_ids) <= completed


def _next_round_status(current: str, complete: bool) -> str:
    if current == RoundStatus.ARCHIVED.value:
        return current
    return RoundStatus.COMPLETED.value if complete else RoundStatus.ACTIVE.value


def _serialize_results(results: list[SessionResult], now: datetime) -> list[dict]:
    return [
        {
            "word_id": item.word_id,
            "outcome": item.outcome.value,
            "timestamp": (item.timestamp or now).isoformat(),
        }
        for item in results
    ]


# ---- Rounds ----

@study_action("Invalid round payload", "Failed to create round")
def create_round(user_id: str, name: str, word_ids: list[str]) -> dict:
    """
    Create a round from owned words.

    Duplicate ids collapse to their first occurrence; every id must belong
    to the user.

    Returns:
        {"round_id": str}
    """
    request = CreateRoundRequest(name=name, word_ids=word_ids)
    unique_ids = list(dict.fromkeys(request.word_ids))

    with database.session_scope() as session:
        owned = word_repo.find_owned_words(session, user_id, unique_ids)
        if len(owned) != len(unique_ids):
            raise NotFoundError("Some words are invalid")

        study_round = StudyRound(
            user_id=user_id,
            name=request.name,
            word_ids=unique_ids,
            completed_word_ids=[],
            attempted_word_ids=[],
            first_try_known_word_ids=[],
            status=RoundStatus.ACTIVE.value,
        )
        session.add(study_round)
        session.flush()
        round_id = study_round.id

    logger.info("Round %s created with %d words", round_id, len(unique_ids))
    return {"round_id": round_id}


@study_action("Invalid round update payload", "Failed to update round")
def update_round_status(user_id: str, round_id: str, status: str) -> None:
    """Set a round's status by hand (e.g. archive it)."""
    request = UpdateRoundStatusRequest(round_id=round_id, status=status)
    with database.session_scope() as session:
        study_round = _load_round(session, user_id, request.round_id)
        study_round.status = request.status.value
    return None


@study_action("Round id is required", "Failed to delete round")
def delete_round(user_id: str, round_id: str) -> None:
    """Delete a round and its sessions."""
    if not round_id:
        raise ValidationError("Round id is required")
    with database.session_scope() as session:
        session.delete(_load_round(session, user_id, round_id))
    logger.info("Round %s deleted", round_id)
    return None


@study_action("Invalid round request", "Failed to load round progress")
def get_round_progress(user_id: str, round_id: str) -> dict:
    """
    Progress counters of a round.

    Frozen words are counted under their latest grade, so the numbers match
    what the session selector sees.
    """
    if not round_id:
        raise ValidationError("Invalid round request")
    with database.session_scope() as session:
        study_round = _load_round(session, user_id, round_id)
        pool_state = build_round_pool_state(session, user_id, study_round)

        status_counts = {status.value: 0 for status in WordStatus}
        for word in pool_state.words:
            status_counts[word.status.value] += 1

        completed = set(study_round.completed_word_ids)
        return {
            "round_id": study_round.id,
            "name": study_round.name,
            "status": study_round.status,
            "total": len(study_round.word_ids),
            "completed": len(completed),
            "attempted": len(pool_state.attempted),
            "first_try_known": len(study_round.first_try_known_word_ids),
            "remaining_to_encounter": len(pool_state.encounter_candidates()),
            "extra_available": len(pool_state.extra_candidates()),
            "status_counts": status_counts,
            "is_complete": _is_round_complete(study_round.word_ids, completed),
        }


@study_action("Invalid word status update", "Failed to update word status")
def edit_round_word_status(user_id: str, round_id: str, word_id: str, target_status: str) -> None:
    """
    Manually override a word's status inside a round.

    Writes a synthetic review log (known for the mastered targets) and
    forces the word's mastery state: Mastered for the mastered targets,
    Building(0) otherwise. Round sets are edited directly; this does not
    settle the round even when it completes it.
    """
    request = EditRoundWordStatusRequest(
        round_id=round_id, word_id=word_id, target_status=target_status
    )
    target = request.target_status
    now = utc_now()

    with database.session_scope() as session:
        study_round = _load_round(session, user_id, request.round_id, for_update=True)
        if request.word_id not in study_round.word_ids:
            raise NotFoundError("Word is not in this round")
        if word_repo.get_owned_word(session, user_id, request.word_id) is None:
            raise NotFoundError("Word is not in this round")

        attempted = set(study_round.attempted_word_ids) | {request.word_id}
        completed = set(study_round.completed_word_ids)
        first_try_known = set(study_round.first_try_known_word_ids)

        if target in (TargetStatus.UNKNOWN, TargetStatus.FUZZY):
            completed.discard(request.word_id)
            first_try_known.discard(request.word_id)
            grade = OUTCOME_GRADES[SessionOutcome(target.value)]
            next_state = Building(0)
        else:
            completed.add(request.word_id)
            if target == TargetStatus.FIRST_TRY_MASTERED:
                first_try_known.add(request.word_id)
            else:
                first_try_known.discard(request.word_id)
            grade = OUTCOME_GRADES[SessionOutcome.KNOWN]
            next_state = MASTERED

        log_repo.append_review_log(session, user_id, request.word_id, grade, now)
        state = log_repo.record_review(session, user_id, request.word_id, grade, now)
        memory_state.write_state(state, next_state)

        study_round.attempted_word_ids = _in_round_order(study_round.word_ids, attempted)
        study_round.completed_word_ids = _in_round_order(study_round.word_ids, completed)
        study_round.first_try_known_word_ids = _in_round_order(study_round.word_ids, first_try_known)
        study_round.status = _next_round_status(
            study_round.status, _is_round_complete(study_round.word_ids, completed)
        )

    logger.info("Round %s: word %s set to %s", round_id, word_id, target.value)
    return None


# ---- Sessions ----

def _start_session(session: Session, user_id: str, request: StartSessionRequest) -> dict:
    study_round = _load_round(session, user_id, request.round_id)

    ongoing = _find_open_session(session, user_id, study_round.id, request.type)
    if ongoing is not None:
        logger.info("Reusing open %s session %s", request.type.value, ongoing.id)
        return {"session_id": ongoing.id, "word_ids": list(ongoing.word_ids), "reused": True}

    settings = settings_repo.ensure_study_settings(session, user_id)
    pool_state = build_round_pool_state(session, user_id, study_round)
    selected = select_session_words(
        pool_state, request.type, settings_repo.effective_session_size(settings)
    )

    study_session = StudySession(
        user_id=user_id,
        round_id=study_round.id,
        type=request.type.value,
        word_ids=selected,
        results=[],
        started_at=utc_now(),
    )
    session.add(study_session)
    session.flush()

    logger.info(
        "Session %s (%s) created for round %s with %d words",
        study_session.id, request.type.value, study_round.id, len(selected),
    )
    return {"session_id": study_session.id, "word_ids": selected, "reused": False}


@study_action("Invalid session request", "Failed to start session")
def start_session(user_id: str, round_id: str, session_type: str) -> dict:
    """
    Start (or resume) a session of the given type for a round.

    An open session of the same type is returned instead of creating a
    duplicate. The batch size comes from the user's settings.

    Returns:
        {"session_id": str, "word_ids": list[str], "reused": bool}
    """
    request = StartSessionRequest(round_id=round_id, type=session_type)
    try:
        with database.session_scope() as session:
            return _start_session(session, user_id, request)
    except IntegrityError as exc:
        # Lost the race on the open-session index: hand back the winner
        logger.warning(
            "Concurrent %s session start for round %s", request.type.value, request.round_id
        )
        with database.session_scope() as session:
            existing = _find_open_session(session, user_id, request.round_id, request.type)
            if existing is None:
                raise exc
            return {"session_id": existing.id, "word_ids": list(existing.word_ids), "reused": True}


@study_action("Invalid session progress payload", "Failed to save session progress")
def save_session_progress(user_id: str, session_id: str, results: list) -> dict:
    """
    Store partial answers of an open session.

    The answers must be a prefix of the session's word order. A completed
    session accepts nothing and reports zero saved.

    Returns:
        {"saved": int}
    """
    request = SessionResultsRequest(session_id=session_id, results=results)
    now = utc_now()

    with database.session_scope() as session:
        study_session = _load_session(session, user_id, request.session_id)
        if study_session.completed_at is not None:
            return {"saved": 0}

        if len(request.results) > len(study_session.word_ids):
            logger.warning("Session %s: progress longer than session", study_session.id)
            raise StateConflict("Session progress exceeds session size")

        for index, item in enumerate(request.results):
            if item.word_id != study_session.word_ids[index]:
                logger.warning("Session %s: progress out of order at %d", study_session.id, index)
                raise StateConflict("Session progress is out of order")

        study_session.results = _serialize_results(request.results, now)
        return {"saved": len(request.results)}


@study_action("Invalid session result payload", "Failed to finish session")
def finish_session(user_id: str, session_id: str, results: list) -> dict:
    """
    Complete a session and fold its answers into the round.

    Per answered word: a review log row, review state counters, and the
    round's attempted / completed / first-try-known sets. Only normal
    sessions can produce first attempts. If the round becomes complete the
    RoundSettled event is applied in the same transaction.

    Finishing an already completed session changes nothing and succeeds.

    Returns:
        {"round_id": str, "round_completed": bool}
    """
    request = SessionResultsRequest(session_id=session_id, results=results)
    now = utc_now()

    result_by_word: dict[str, SessionResult] = {}
    for item in request.results:
        result_by_word.setdefault(item.word_id, item)

    with database.session_scope() as session:
        # Row locks serialize concurrent finishes of the same session
        study_session = _load_session(session, user_id, request.session_id, for_update=True)
        study_round = _load_round(session, user_id, study_session.round_id, for_update=True)

        session_word_ids = set(study_session.word_ids)
        if any(word_id not in session_word_ids for word_id in result_by_word):
            raise ValidationError("Session result contains invalid word")

        if study_session.completed_at is not None:
            completed = set(study_round.completed_word_ids)
            return {
                "round_id": study_round.id,
                "round_completed": _is_round_complete(study_round.word_ids, completed),
            }

        settings = settings_repo.ensure_study_settings(session, user_id)
        round_word_ids = list(study_round.word_ids)
        states = log_repo.load_states(session, user_id, round_word_ids)

        reviewed = {word_id for word_id, state in states.items() if (state.seen_count or 0) > 0}
        attempted = set(study_round.attempted_word_ids) & reviewed
        completed = set(study_round.completed_word_ids)
        first_try_known = set(study_round.first_try_known_word_ids)
        was_complete = _is_round_complete(round_word_ids, completed)

        for word_id in study_session.word_ids:
            item = result_by_word.get(word_id)
            if item is None:
                continue

            is_first_attempt = False
            if study_session.type == SessionType.NORMAL.value:
                is_first_attempt = word_id not in attempted
                attempted.add(word_id)

            if item.outcome == SessionOutcome.KNOWN:
                completed.add(word_id)
                if is_first_attempt:
                    first_try_known.add(word_id)

            grade = OUTCOME_GRADES[item.outcome]
            log_repo.append_review_log(session, user_id, word_id, grade, now)
            states[word_id] = log_repo.record_review(
                session, user_id, word_id, grade, now, state=states.get(word_id)
            )

        is_complete = _is_round_complete(round_word_ids, completed)
        study_round.attempted_word_ids = _in_round_order(round_word_ids, attempted)
        study_round.completed_word_ids = _in_round_order(round_word_ids, completed)
        study_round.first_try_known_word_ids = _in_round_order(round_word_ids, first_try_known)

        if is_complete and not was_complete:
            apply_round_settled(session, RoundSettled(
                user_id=user_id,
                round_id=study_round.id,
                word_ids=tuple(round_word_ids),
                first_try_known_ids=frozenset(first_try_known),
                freeze_rounds=settings.freeze_rounds,
                require_consecutive_known=settings.require_consecutive_known,
            ))

        study_round.status = _next_round_status(study_round.status, is_complete)
        study_session.completed_at = now
        study_session.results = _serialize_results(request.results, now)
        round_id = study_round.id

    logger.info(
        "Session %s finished with %d answers (round %s complete: %s)",
        session_id, len(result_by_word), round_id, is_complete,
    )
    return {"round_id": round_id, "round_completed": is_complete}


# ---- Settings ----

@study_action("Invalid settings request", "Failed to load settings")
def get_study_settings(user_id: str) -> dict:
    """Current settings, created with defaults on first access."""
    with database.session_scope() as session:
        return settings_repo.settings_to_dict(settings_repo.ensure_study_settings(session, user_id))


@study_action("Invalid settings payload", "Failed to update settings")
def update_study_settings(user_id: str, **changes) -> dict:
    """
    Update any subset of session_size, freeze_rounds, auto_play_audio and
    require_consecutive_known.
    """
    request = UpdateSettingsRequest(**changes)
    with database.session_scope() as session:
        settings = settings_repo.update_study_settings(session, user_id, request.model_dump())
        data = settings_repo.settings_to_dict(settings)
    logger.info("Study settings updated for %s: %s", user_id, request.model_dump(exclude_none=True))
    return data
