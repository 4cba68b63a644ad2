"""
Library Actions - Word Listing with Derived Status

Lists a user's whole word library with each word's display status,
filtered by keyword, manual category, priority flag or status, one page
at a time.
"""

from __future__ import annotations
import logging
import math
from typing import Iterable

from sqlalchemy.orm import Session

from ebbinglish import database, log_repo, word_repo
from ebbinglish.clock import ensure_utc
from ebbinglish.config import LIBRARY_PAGE_SIZE
from ebbinglish.errors import study_action
from ebbinglish.mastery.constants import WordStatus
from ebbinglish.mastery.status import derive_word_status
from ebbinglish.schemas import LibraryFilter, LibraryPageRequest

logger = logging.getLogger(__name__)

PRIORITY_FILTERS = {
    LibraryFilter.PRIORITY: True,
    LibraryFilter.NORMAL: False,
}


def build_word_status_map(
    session: Session,
    user_id: str,
    word_ids: Iterable[str],
    ignore_frozen: bool = False
) -> dict[str, WordStatus]:
    """
    Derived status per word id.

    Args:
        ignore_frozen: Read frozen words through their latest grade

    Returns:
        Dict of word id -> WordStatus (never-reviewed words map to NEW)
    """
    ids = list(dict.fromkeys(word_ids))
    states = log_repo.load_states(session, user_id, ids)
    latest = log_repo.latest_reviews(session, user_id, ids)
    return {
        word_id: derive_word_status(
            states.get(word_id),
            latest.get(word_id, (None, None))[0],
            ignore_frozen=ignore_frozen,
        )
        for word_id in ids
    }


@study_action("Invalid library query", "Failed to load library")
def list_library_words(
    user_id: str,
    keyword: str = "",
    tag: str = "",
    status: str = "all",
    page: int = 1,
    page_size: int = LIBRARY_PAGE_SIZE,
    ignore_frozen: bool = False
) -> dict:
    """
    One page of the user's library, most recently updated first.

    A page past the end is clamped to the last page.

    Returns:
        {"words": [dict], "filtered_count": int, "total_pages": int, "page": int}
    """
    request = LibraryPageRequest(
        keyword=keyword,
        tag=tag,
        status=status,
        page=page,
        page_size=page_size,
        ignore_frozen=ignore_frozen,
    )

    with database.session_scope() as session:
        words = word_repo.search_words(
            session,
            user_id,
            keyword=request.keyword,
            tag=request.tag,
            is_priority=PRIORITY_FILTERS.get(request.status),
        )
        statuses = build_word_status_map(
            session, user_id, [word.id for word in words], ignore_frozen=request.ignore_frozen
        )

        if request.status not in (LibraryFilter.ALL, *PRIORITY_FILTERS):
            wanted = WordStatus(request.status.value)
            words = [word for word in words if statuses[word.id] == wanted]

        filtered_count = len(words)
        total_pages = max(1, math.ceil(filtered_count / request.page_size))
        current_page = min(request.page, total_pages)
        start = (current_page - 1) * request.page_size

        page_words = [
            {
                "word_id": word.id,
                "text": word.text,
                "note": word.note,
                "is_priority": bool(word.is_priority),
                "manual_category": word.manual_category,
                "created_at": ensure_utc(word.created_at),
                "status": statuses[word.id],
            }
            for word in words[start:start + request.page_size]
        ]

    logger.debug("Library page %d/%d for %s (%d words)", current_page, total_pages, user_id, filtered_count)
    return {
        "words": page_words,
        "filtered_count": filtered_count,
        "total_pages": total_pages,
        "page": current_page,
    }
