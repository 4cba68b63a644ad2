"""
Word repository.

Ownership lookups for words. Every mutation that references a word id
checks ownership through here first.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ebbinglish.clock import utc_now
from ebbinglish.models import ReviewState, Word


def add_word(
    session: Session,
    user_id: str,
    text: str,
    language: str = "en",
    note: Optional[str] = None,
    is_priority: bool = False,
    manual_category: Optional[str] = None,
    created_at: Optional[datetime] = None
) -> Word:
    """
    Insert a word for a user (flushes so the id is available).
    """
    created_at = created_at or utc_now()
    word = Word(
        user_id=user_id,
        text=text,
        language=language,
        note=note,
        is_priority=is_priority,
        manual_category=manual_category,
        created_at=created_at,
        updated_at=created_at,
    )
    session.add(word)
    session.flush()
    return word


def find_owned_words(session: Session, user_id: str, word_ids: Iterable[str]) -> list[Word]:
    """
    Words among `word_ids` that belong to `user_id`.

    Returns:
        Matching words (order not guaranteed)
    """
    ids = list(set(word_ids))
    if not ids:
        return []
    return list(session.scalars(
        select(Word).where(Word.user_id == user_id, Word.id.in_(ids))
    ))


def get_owned_word(session: Session, user_id: str, word_id: str) -> Optional[Word]:
    """Single owned word, or None."""
    return session.scalar(
        select(Word).where(Word.user_id == user_id, Word.id == word_id)
    )


def count_words(session: Session, user_id: str) -> dict:
    """
    Word totals for the stats page.

    Returns:
        Dict with total, priority, with_note and never_reviewed counts
    """
    def _count(*conditions) -> int:
        return session.scalar(
            select(func.count(Word.id)).where(Word.user_id == user_id, *conditions)
        ) or 0

    never_reviewed = session.scalar(
        select(func.count(Word.id))
        .outerjoin(ReviewState, ReviewState.word_id == Word.id)
        .where(Word.user_id == user_id, ReviewState.id.is_(None))
    ) or 0

    return {
        "total": _count(),
        "priority": _count(Word.is_priority.is_(True)),
        "with_note": _count(Word.note.is_not(None)),
        "never_reviewed": never_reviewed,
    }


def search_words(
    session: Session,
    user_id: str,
    keyword: str = "",
    tag: str = "",
    is_priority: Optional[bool] = None
) -> list[Word]:
    """
    A user's words, most recently updated first.

    Args:
        keyword: Case-insensitive substring of the text or the note
        tag: Exact manual category
        is_priority: Only priority (True) or only normal (False) words

    Returns:
        Matching words
    """
    query = select(Word).where(Word.user_id == user_id)
    if keyword:
        query = query.where(or_(
            Word.text.icontains(keyword, autoescape=True),
            Word.note.icontains(keyword, autoescape=True),
        ))
    if tag:
        query = query.where(Word.manual_category == tag)
    if is_priority is not None:
        query = query.where(Word.is_priority.is_(is_priority))
    return list(session.scalars(query.order_by(Word.updated_at.desc(), Word.id)))
