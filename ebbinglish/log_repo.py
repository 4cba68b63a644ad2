"""
Review log and review state repository.

The review log is append-only; metrics are computed from it at query time.
Review state rows are upserted with increment semantics on every review.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ebbinglish.clock import ensure_utc
from ebbinglish.mastery.constants import ReviewGrade
from ebbinglish.models import ReviewLog, ReviewState, Word


# ---- Review Log ----

def append_review_log(
    session: Session,
    user_id: str,
    word_id: str,
    grade: int,
    reviewed_at: datetime,
    revealed_answer: bool = True
) -> ReviewLog:
    """Append one immutable review log row."""
    log = ReviewLog(
        user_id=user_id,
        word_id=word_id,
        grade=int(grade),
        revealed_answer=revealed_answer,
        reviewed_at=reviewed_at,
    )
    session.add(log)
    return log


def latest_reviews(
    session: Session,
    user_id: str,
    word_ids: Iterable[str]
) -> dict[str, tuple[int, datetime]]:
    """
    Most recent (grade, reviewed_at) per word.

    Ties on reviewed_at go to the row inserted last.
    """
    ids = list(set(word_ids))
    if not ids:
        return {}

    rows = session.execute(
        select(ReviewLog.word_id, ReviewLog.grade, ReviewLog.reviewed_at)
        .where(ReviewLog.user_id == user_id, ReviewLog.word_id.in_(ids))
        .order_by(ReviewLog.reviewed_at.desc(), ReviewLog.id.desc())
    ).all()

    latest: dict[str, tuple[int, datetime]] = {}
    for word_id, grade, reviewed_at in rows:
        if word_id not in latest:
            latest[word_id] = (grade, ensure_utc(reviewed_at))
    return latest


def load_logs(
    session: Session,
    user_id: str,
    word_id: Optional[str] = None,
    since: Optional[datetime] = None
) -> list[ReviewLog]:
    """Review logs for a user (optionally one word / a time window), oldest first."""
    query = select(ReviewLog).where(ReviewLog.user_id == user_id)
    if word_id is not None:
        query = query.where(ReviewLog.word_id == word_id)
    if since is not None:
        query = query.where(ReviewLog.reviewed_at >= since)
    return list(session.scalars(query.order_by(ReviewLog.reviewed_at.asc(), ReviewLog.id.asc())))


# ---- Review State ----

def load_states(
    session: Session,
    user_id: str,
    word_ids: Iterable[str]
) -> dict[str, ReviewState]:
    """Review state rows keyed by word id (words never reviewed are absent)."""
    ids = list(set(word_ids))
    if not ids:
        return {}
    rows = session.scalars(
        select(ReviewState).where(ReviewState.user_id == user_id, ReviewState.word_id.in_(ids))
    )
    return {row.word_id: row for row in rows}


def load_all_states(session: Session, user_id: str) -> list[tuple[ReviewState, Word]]:
    """Every review state of a user together with its word."""
    return list(session.execute(
        select(ReviewState, Word)
        .join(Word, Word.id == ReviewState.word_id)
        .where(ReviewState.user_id == user_id)
    ).tuples())


def new_review_state(user_id: str, word_id: str) -> ReviewState:
    """Blank review state with every counter explicitly zeroed."""
    return ReviewState(
        user_id=user_id,
        word_id=word_id,
        seen_count=0,
        lapse_count=0,
        consecutive_perfect=0,
        freeze_rounds=0,
        is_mastered=False,
        mastery_phase=0,
        stage=0,
        due_at=None,
        last_reviewed_at=None,
    )


def record_review(
    session: Session,
    user_id: str,
    word_id: str,
    grade: int,
    reviewed_at: datetime,
    state: Optional[ReviewState] = None,
    lapse_increment: Optional[int] = None
) -> ReviewState:
    """
    Upsert a word's review state for one review.

    seen_count always goes up by one; lapse_count goes up by
    `lapse_increment`, or by one for an unknown grade when not given.

    Args:
        state: Already loaded row, if the caller has it

    Returns:
        The created or updated ReviewState
    """
    if state is None:
        state = session.scalar(
            select(ReviewState).where(ReviewState.user_id == user_id, ReviewState.word_id == word_id)
        )
    if state is None:
        state = new_review_state(user_id, word_id)
        # A word first met in a round is due for fixed-interval review right away
        state.due_at = reviewed_at
        session.add(state)

    if lapse_increment is None:
        lapse_increment = 1 if grade == ReviewGrade.UNKNOWN else 0

    state.seen_count = (state.seen_count or 0) + 1
    state.lapse_count = (state.lapse_count or 0) + lapse_increment
    state.last_reviewed_at = reviewed_at
    return state


def decrement_freeze_rounds(session: Session, user_id: str) -> int:
    """
    Count one settled round off every running freeze of a user.

    Returns:
        Number of rows decremented
    """
    session.flush()
    result = session.execute(
        update(ReviewState)
        .where(ReviewState.user_id == user_id, ReviewState.freeze_rounds > 0)
        .values(freeze_rounds=ReviewState.freeze_rounds - 1)
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount or 0


def load_due_states(
    session: Session,
    user_id: str,
    now: datetime,
    limit: int
) -> list[tuple[ReviewState, Word]]:
    """States due at or before `now`, most overdue first."""
    return list(session.execute(
        select(ReviewState, Word)
        .join(Word, Word.id == ReviewState.word_id)
        .where(
            ReviewState.user_id == user_id,
            ReviewState.due_at.is_not(None),
            ReviewState.due_at <= now,
        )
        .order_by(ReviewState.due_at.asc(), Word.created_at.asc())
        .limit(limit)
    ).tuples())
