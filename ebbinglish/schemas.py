"""
Pydantic request models for the study and review operations.

Every exposed operation validates its input through one of these models
before touching the store.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ebbinglish.config import (
    DUE_WORDS_LIMIT,
    LIBRARY_PAGE_SIZE,
    MAX_CATEGORY_LENGTH,
    MAX_DUE_WORDS,
    MAX_FREEZE_ROUNDS,
    MAX_KEYWORD_LENGTH,
    MAX_LIBRARY_PAGE_SIZE,
    MAX_REVIEW_BATCH,
    MAX_ROUND_NAME_LENGTH,
    MAX_ROUND_WORDS,
    MAX_SESSION_RESULTS,
    MAX_SESSION_SIZE_SETTING,
)


class SessionType(str, Enum):
    """Kind of session drawn from a round."""
    NORMAL = "normal"   # First encounters
    EXTRA = "extra"     # Re-practice of fuzzy/unknown words


class SessionOutcome(str, Enum):
    """Answer recorded for one word in a session."""
    KNOWN = "known"
    FUZZY = "fuzzy"
    UNKNOWN = "unknown"


class RoundStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class TargetStatus(str, Enum):
    """Manual override targets for a word inside a round."""
    FIRST_TRY_MASTERED = "first_try_mastered"
    MASTERED = "mastered"
    FUZZY = "fuzzy"
    UNKNOWN = "unknown"


class LibraryFilter(str, Enum):
    """Library listing filter: a derived status or the priority flag."""
    ALL = "all"
    PRIORITY = "priority"
    NORMAL = "normal"
    NEW = "new"
    SEEN = "seen"
    FUZZY = "fuzzy"
    UNKNOWN = "unknown"
    MASTERED = "mastered"
    FROZEN = "frozen"


OUTCOME_GRADES = {
    SessionOutcome.KNOWN: 2,
    SessionOutcome.FUZZY: 1,
    SessionOutcome.UNKNOWN: 0,
}


# ---- Rounds ----

class CreateRoundRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=MAX_ROUND_NAME_LENGTH)
    word_ids: list[str] = Field(..., min_length=1, max_length=MAX_ROUND_WORDS)


class UpdateRoundStatusRequest(BaseModel):
    round_id: str = Field(..., min_length=1)
    status: RoundStatus


class EditRoundWordStatusRequest(BaseModel):
    round_id: str = Field(..., min_length=1)
    word_id: str = Field(..., min_length=1)
    target_status: TargetStatus


# ---- Sessions ----

class StartSessionRequest(BaseModel):
    round_id: str = Field(..., min_length=1)
    type: SessionType


class SessionResult(BaseModel):
    """One answered word, in session order."""
    word_id: str = Field(..., min_length=1)
    outcome: SessionOutcome
    timestamp: Optional[datetime] = None


class SessionResultsRequest(BaseModel):
    session_id: str = Field(..., min_length=1)
    results: list[SessionResult] = Field(..., min_length=1, max_length=MAX_SESSION_RESULTS)


# ---- Settings ----

class UpdateSettingsRequest(BaseModel):
    session_size: Optional[int] = Field(default=None, ge=1, le=MAX_SESSION_SIZE_SETTING)
    freeze_rounds: Optional[int] = Field(default=None, ge=1, le=MAX_FREEZE_ROUNDS)
    auto_play_audio: Optional[bool] = None
    require_consecutive_known: Optional[bool] = None


# ---- Fixed-interval reviews ----

class SubmitReviewRequest(BaseModel):
    word_id: str = Field(..., min_length=1)
    grade: int = Field(..., ge=0, le=2)
    revealed: bool = False


class SubmitReviewBatchRequest(BaseModel):
    items: list[SubmitReviewRequest] = Field(..., min_length=1, max_length=MAX_REVIEW_BATCH)


class LoadDueWordsRequest(BaseModel):
    limit: int = Field(default=DUE_WORDS_LIMIT, ge=0, le=MAX_DUE_WORDS)


class UpdateStudyConfigRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    word_id: str = Field(..., min_length=1)
    is_priority: bool
    manual_category: Optional[str] = Field(default=None, max_length=MAX_CATEGORY_LENGTH)


# ---- Library ----

class LibraryPageRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    keyword: str = Field(default="", max_length=MAX_KEYWORD_LENGTH)
    tag: str = Field(default="", max_length=MAX_CATEGORY_LENGTH)
    status: LibraryFilter = LibraryFilter.ALL
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=LIBRARY_PAGE_SIZE, ge=1, le=MAX_LIBRARY_PAGE_SIZE)
    ignore_frozen: bool = False
