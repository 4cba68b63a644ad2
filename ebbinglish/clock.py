"""
Timestamp helpers shared by the store and the pure modules.
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to naive timestamps and convert aware ones to UTC.

    SQLite hands DateTime(timezone=True) columns back without tzinfo.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
