"""
SQLAlchemy ORM Models

Words, per-word review state, the append-only review log, study rounds,
study sessions and per-user study settings.
"""

import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import declarative_base, relationship

from ebbinglish.clock import utc_now
from ebbinglish.config import (
    DEFAULT_AUTO_PLAY_AUDIO,
    DEFAULT_FREEZE_ROUNDS,
    DEFAULT_REQUIRE_CONSECUTIVE_KNOWN,
    DEFAULT_SESSION_SIZE,
)

Base = declarative_base()


def _new_id() -> str:
    return uuid.uuid4().hex


class Word(Base):
    """
    A vocabulary word owned by exactly one user.
    """
    __tablename__ = 'words'

    id = Column(String(64), primary_key=True, default=_new_id)
    user_id = Column(String(255), nullable=False, index=True)
    text = Column(String(255), nullable=False)
    language = Column(String(16), nullable=False, default="en")
    note = Column(Text, nullable=True)
    is_priority = Column(Boolean, nullable=False, default=False)
    manual_category = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    review_state = relationship(
        "ReviewState", back_populates="word", uselist=False, cascade="all, delete-orphan"
    )
    review_logs = relationship("ReviewLog", back_populates="word", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Word({self.id}, {self.text!r})>"


class ReviewState(Base):
    """
    Mutable memory state for one word, created on its first review.

    Mastery columns (consecutive_perfect, freeze_rounds, is_mastered,
    mastery_phase) are only written through the tagged state helpers.
    stage/due_at belong to the fixed-interval scheduler.
    """
    __tablename__ = 'review_states'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), nullable=False, index=True)
    word_id = Column(String(64), ForeignKey('words.id', ondelete="CASCADE"), nullable=False, unique=True)

    seen_count = Column(Integer, nullable=False, default=0)
    lapse_count = Column(Integer, nullable=False, default=0)

    # Mastery ladder
    consecutive_perfect = Column(Integer, nullable=False, default=0)
    freeze_rounds = Column(Integer, nullable=False, default=0)
    is_mastered = Column(Boolean, nullable=False, default=False)
    mastery_phase = Column(Integer, nullable=False, default=0)

    # Fixed-interval scheduler
    stage = Column(Integer, nullable=False, default=0)
    due_at = Column(DateTime(timezone=True), nullable=True)

    last_reviewed_at = Column(DateTime(timezone=True), nullable=True)

    word = relationship("Word", back_populates="review_state")

    def __repr__(self):
        return f"<ReviewState({self.word_id}, seen={self.seen_count}, phase={self.mastery_phase})>"


class ReviewLog(Base):
    """
    Append-only record of a single review.
    """
    __tablename__ = 'review_logs'
    __table_args__ = (
        Index('ix_review_logs_user_word', 'user_id', 'word_id'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), nullable=False)
    word_id = Column(String(64), ForeignKey('words.id', ondelete="CASCADE"), nullable=False)
    grade = Column(Integer, nullable=False)  # 0=unknown, 1=fuzzy, 2=known
    revealed_answer = Column(Boolean, nullable=False, default=False)
    reviewed_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)

    word = relationship("Word", back_populates="review_logs")

    def __repr__(self):
        return f"<ReviewLog(id={self.id}, {self.word_id}, grade={self.grade})>"


class StudyRound(Base):
    """
    A fixed working set of words studied to completion over several sessions.

    word_ids never changes after creation; the three progress lists only grow
    (manual status edits aside) and stay subsets of word_ids.
    """
    __tablename__ = 'study_rounds'

    id = Column(String(64), primary_key=True, default=_new_id)
    user_id = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    word_ids = Column(JSON, nullable=False, default=list)
    completed_word_ids = Column(JSON, nullable=False, default=list)
    attempted_word_ids = Column(JSON, nullable=False, default=list)
    first_try_known_word_ids = Column(JSON, nullable=False, default=list)
    status = Column(String(16), nullable=False, default="active")  # active, completed, archived
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    sessions = relationship("StudySession", back_populates="round", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<StudyRound({self.id}, {self.name!r}, {self.status})>"


class StudySession(Base):
    """
    One bounded batch drawn from a round. Immutable once completed_at is set.
    """
    __tablename__ = 'study_sessions'
    __table_args__ = (
        # At most one open session per round and type
        Index(
            'uq_study_sessions_open',
            'round_id',
            'type',
            unique=True,
            sqlite_where=text('completed_at IS NULL'),
            postgresql_where=text('completed_at IS NULL'),
        ),
    )

    id = Column(String(64), primary_key=True, default=_new_id)
    user_id = Column(String(255), nullable=False, index=True)
    round_id = Column(String(64), ForeignKey('study_rounds.id', ondelete="CASCADE"), nullable=False)
    type = Column(String(16), nullable=False)  # normal, extra
    word_ids = Column(JSON, nullable=False, default=list)
    results = Column(JSON, nullable=False, default=list)
    started_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    round = relationship("StudyRound", back_populates="sessions")

    def __repr__(self):
        return f"<StudySession({self.id}, round={self.round_id}, {self.type})>"


class StudySettings(Base):
    """
    Per-user study preferences, created with defaults on first access.
    """
    __tablename__ = 'study_settings'

    user_id = Column(String(255), primary_key=True)
    session_size = Column(Integer, nullable=False, default=DEFAULT_SESSION_SIZE)
    freeze_rounds = Column(Integer, nullable=False, default=DEFAULT_FREEZE_ROUNDS)
    auto_play_audio = Column(Boolean, nullable=False, default=DEFAULT_AUTO_PLAY_AUDIO)
    require_consecutive_known = Column(Boolean, nullable=False, default=DEFAULT_REQUIRE_CONSECUTIVE_KNOWN)

    def __repr__(self):
        return f"<StudySettings({self.user_id}, size={self.session_size}, freeze={self.freeze_rounds})>"
