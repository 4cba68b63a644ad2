"""
Study settings repository (one row per user, created on demand).
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from ebbinglish.config import (
    DEFAULT_AUTO_PLAY_AUDIO,
    DEFAULT_FREEZE_ROUNDS,
    DEFAULT_REQUIRE_CONSECUTIVE_KNOWN,
    DEFAULT_SESSION_SIZE,
    MAX_SESSION_SIZE,
)
from ebbinglish.models import StudySettings


def ensure_study_settings(session: Session, user_id: str) -> StudySettings:
    """
    Load a user's settings, inserting the defaults when missing.
    """
    settings = session.get(StudySettings, user_id)
    if settings is not None:
        return settings

    settings = StudySettings(
        user_id=user_id,
        session_size=DEFAULT_SESSION_SIZE,
        freeze_rounds=DEFAULT_FREEZE_ROUNDS,
        auto_play_audio=DEFAULT_AUTO_PLAY_AUDIO,
        require_consecutive_known=DEFAULT_REQUIRE_CONSECUTIVE_KNOWN,
    )
    session.add(settings)
    session.flush()
    return settings


def update_study_settings(session: Session, user_id: str, changes: dict) -> StudySettings:
    """Apply the non-None entries of `changes` to the user's settings."""
    settings = ensure_study_settings(session, user_id)
    for field, value in changes.items():
        if value is not None:
            setattr(settings, field, value)
    return settings


def effective_session_size(settings: StudySettings) -> int:
    """Session size actually used when drawing a batch."""
    return min(max(int(settings.session_size), 1), MAX_SESSION_SIZE)


def settings_to_dict(settings: StudySettings) -> dict:
    return {
        "session_size": settings.session_size,
        "freeze_rounds": settings.freeze_rounds,
        "auto_play_audio": settings.auto_play_audio,
        "require_consecutive_known": settings.require_consecutive_known,
    }
