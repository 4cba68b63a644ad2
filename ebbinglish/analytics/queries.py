"""
Data-loading helpers for analytics.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import pandas as pd
from sqlalchemy.orm import Session

from ebbinglish import log_repo
from ebbinglish.analytics.constants import LOG_COLUMNS, STATE_COLUMNS
from ebbinglish.clock import ensure_utc


def load_review_logs_df(
    session: Session,
    user_id: str,
    since: Optional[datetime] = None
) -> pd.DataFrame:
    """
    Load a user's review logs into a dataframe (one row per review).
    """
    logs = log_repo.load_logs(session, user_id, since=since)
    if not logs:
        return pd.DataFrame(columns=LOG_COLUMNS)

    df = pd.DataFrame([
        {
            "word_id": log.word_id,
            "grade": log.grade,
            "reviewed_at": ensure_utc(log.reviewed_at),
        }
        for log in logs
    ])
    df["reviewed_at"] = pd.to_datetime(df["reviewed_at"], utc=True)
    df["day"] = df["reviewed_at"].dt.date
    return df.sort_values("reviewed_at").reset_index(drop=True)


def load_review_states_df(session: Session, user_id: str) -> pd.DataFrame:
    """
    Load every review state of a user joined with its word.
    """
    rows = log_repo.load_all_states(session, user_id)
    if not rows:
        return pd.DataFrame(columns=STATE_COLUMNS)

    return pd.DataFrame([
        {
            "word_id": word.id,
            "text": word.text,
            "is_priority": bool(word.is_priority),
            "stage": state.stage or 0,
            "lapse_count": state.lapse_count or 0,
            "seen_count": state.seen_count or 0,
            "due_at": ensure_utc(state.due_at),
        }
        for state, word in rows
    ], columns=STATE_COLUMNS)
