"""
Review Actions - Fixed-Interval "Due Now" Path

Reviews outside of rounds. Each review is planned by the stage scheduler
(0, 1, 2, 4, 7, 15, 30 days), appended to the review log and folded into
the word's review state. The round mastery ladder is not touched here.

Also hosts the per-word study config and memory card operations.
"""

from __future__ import annotations
import logging
from datetime import datetime
from typing import Optional

from ebbinglish import database, log_repo, word_repo
from ebbinglish.analytics.heatmap import build_heatmap
from ebbinglish.clock import ensure_utc, utc_now
from ebbinglish.config import DUE_WORDS_LIMIT, HEATMAP_DAYS
from ebbinglish.errors import NotFoundError, study_action
from ebbinglish.mastery.rating import get_memory_rating
from ebbinglish.mastery.scheduler import plan_next_review
from ebbinglish.schemas import (
    LoadDueWordsRequest,
    SubmitReviewBatchRequest,
    SubmitReviewRequest,
    UpdateStudyConfigRequest,
)

logger = logging.getLogger(__name__)

WORD_NOT_FOUND = "Word not found"


def _apply_review(session, user_id: str, item: SubmitReviewRequest, stage: int, now: datetime, state=None):
    plan = plan_next_review(stage, item.grade, now)
    log_repo.append_review_log(
        session, user_id, item.word_id, item.grade, now, revealed_answer=item.revealed
    )
    state = log_repo.record_review(
        session, user_id, item.word_id, item.grade, now,
        state=state, lapse_increment=plan.lapse_increment,
    )
    state.stage = plan.next_stage
    state.due_at = plan.due_at
    return plan, state


@study_action("Invalid review payload", "Failed to save review")
def submit_review(user_id: str, word_id: str, grade: int, revealed: bool = False) -> dict:
    """
    Record one fixed-interval review.

    Returns:
        {"next_stage": int, "due_at": datetime}
    """
    request = SubmitReviewRequest(word_id=word_id, grade=grade, revealed=revealed)
    now = utc_now()

    with database.session_scope() as session:
        if word_repo.get_owned_word(session, user_id, request.word_id) is None:
            raise NotFoundError(WORD_NOT_FOUND)

        state = log_repo.load_states(session, user_id, [request.word_id]).get(request.word_id)
        stage = state.stage if state is not None else 0
        plan, _ = _apply_review(session, user_id, request, stage, now, state=state)

    logger.debug("Word %s reviewed: stage %d -> %d", word_id, stage, plan.next_stage)
    return {"next_stage": plan.next_stage, "due_at": plan.due_at}


@study_action("Invalid batch payload", "Failed to save review batch")
def submit_review_batch(user_id: str, items: list) -> dict:
    """
    Record a batch of reviews in one transaction.

    Repeated words chain: each review starts from the stage the previous one
    in the batch produced. One unowned word rejects the whole batch.

    Returns:
        {"saved": int}
    """
    request = SubmitReviewBatchRequest(items=items)
    now = utc_now()
    word_ids = list(dict.fromkeys(item.word_id for item in request.items))

    with database.session_scope() as session:
        owned = word_repo.find_owned_words(session, user_id, word_ids)
        if len(owned) != len(word_ids):
            raise NotFoundError("Some words are invalid for this user")

        states = log_repo.load_states(session, user_id, word_ids)
        for item in request.items:
            current = states.get(item.word_id)
            stage = current.stage if current is not None else 0
            _, states[item.word_id] = _apply_review(session, user_id, item, stage, now, state=current)

    logger.info("Saved review batch of %d items", len(request.items))
    return {"saved": len(request.items)}


@study_action("Invalid due words request", "Failed to load due words")
def load_due_words(user_id: str, now: Optional[datetime] = None, limit: int = DUE_WORDS_LIMIT) -> list[dict]:
    """
    Words whose fixed-interval review is due, most overdue first.
    """
    request = LoadDueWordsRequest(limit=limit)
    now = ensure_utc(now) if now is not None else utc_now()
    with database.session_scope() as session:
        rows = log_repo.load_due_states(session, user_id, now, request.limit)
        return [
            {
                "word_id": word.id,
                "text": word.text,
                "is_priority": bool(word.is_priority),
                "stage": state.stage,
                "due_at": ensure_utc(state.due_at),
            }
            for state, word in rows
        ]


@study_action("Invalid study config payload", "Failed to update study config")
def update_study_config(
    user_id: str,
    word_id: str,
    is_priority: bool,
    manual_category: Optional[str] = None
) -> None:
    """Set a word's priority flag and manual category (blank clears it)."""
    request = UpdateStudyConfigRequest(
        word_id=word_id, is_priority=is_priority, manual_category=manual_category
    )
    with database.session_scope() as session:
        word = word_repo.get_owned_word(session, user_id, request.word_id)
        if word is None:
            raise NotFoundError(WORD_NOT_FOUND)
        word.is_priority = request.is_priority
        word.manual_category = request.manual_category or None
        word.updated_at = utc_now()
    return None


@study_action("Invalid word request", "Failed to load word memory")
def get_word_memory(user_id: str, word_id: str, now: Optional[datetime] = None) -> dict:
    """
    Memory card of one word: rating, state counters and activity heatmap.

    Returns:
        {"rating": MemoryRating, "stage": int, "due_at": datetime | None,
         "seen_count": int, "lapse_count": int, "heatmap": weeks of cells}
    """
    now = ensure_utc(now) if now is not None else utc_now()
    with database.session_scope() as session:
        if word_repo.get_owned_word(session, user_id, word_id) is None:
            raise NotFoundError(WORD_NOT_FOUND)

        state = log_repo.load_states(session, user_id, [word_id]).get(word_id)
        logs = log_repo.load_logs(session, user_id, word_id=word_id)

        stage = state.stage if state is not None else 0
        due_at = ensure_utc(state.due_at) if state is not None else None
        seen_count = state.seen_count if state is not None else 0
        lapse_count = state.lapse_count if state is not None else 0

        rating = get_memory_rating(stage, due_at, lapse_count, seen_count, logs, now=now)
        heatmap = build_heatmap(
            [log.reviewed_at for log in logs], days=HEATMAP_DAYS, today=now.date()
        )

    return {
        "rating": rating,
        "stage": stage,
        "due_at": due_at,
        "seen_count": seen_count,
        "lapse_count": lapse_count,
        "heatmap": heatmap,
    }
