from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from ebbinglish import database, word_repo
from ebbinglish.models import ReviewLog, ReviewState, StudyRound, StudySession

USER_ID = "user-1"
OTHER_USER_ID = "user-2"
BASE_TIME = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def study_db(monkeypatch):
    """Fresh in-memory SQLite schema for every test."""
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.setenv("TEST_MODE", "false")
    database.dispose_engine()
    database.init_db()
    yield
    database.dispose_engine()


@pytest.fixture
def make_words():
    """
    Insert words for a user, one minute apart so creation order is stable.

    Returns the new ids in the order of `texts`.
    """
    def _make(texts, user_id=USER_ID, priority=(), notes=None):
        notes = notes or {}
        ids = []
        with database.session_scope() as session:
            for offset, text in enumerate(texts):
                word = word_repo.add_word(
                    session,
                    user_id,
                    text,
                    note=notes.get(text),
                    is_priority=text in priority,
                    created_at=BASE_TIME + timedelta(minutes=offset),
                )
                ids.append(word.id)
        return ids

    return _make


@pytest.fixture
def fetch_round():
    def _fetch(round_id):
        with database.session_scope() as session:
            return session.get(StudyRound, round_id)

    return _fetch


@pytest.fixture
def fetch_session():
    def _fetch(session_id):
        with database.session_scope() as session:
            return session.get(StudySession, session_id)

    return _fetch


@pytest.fixture
def fetch_state():
    def _fetch(word_id):
        with database.session_scope() as session:
            return session.scalar(select(ReviewState).where(ReviewState.word_id == word_id))

    return _fetch


@pytest.fixture
def count_logs():
    def _count(word_id=None):
        with database.session_scope() as session:
            query = select(ReviewLog)
            if word_id is not None:
                query = query.where(ReviewLog.word_id == word_id)
            return len(list(session.scalars(query)))

    return _count
