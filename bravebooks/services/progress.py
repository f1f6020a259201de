# bravebooks/services/progress.py
"""
Reading progress per (user, book).

`time_spent` is cumulative: callers always send the seconds read since their
last sync and the stored value only ever grows.
"""
from __future__ import annotations

import logging
from typing import Optional

from bravebooks.db.base import utcnow
from bravebooks.db.store import Store
from bravebooks.errors import PermissionDenied, ValidationError
from bravebooks.models.progress import ReadingProgress
from bravebooks.services import analytics, bookmarks, sessions
from bravebooks.utils.locks import locks

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_CHAPTER = "Chapter 1"


def _new_row(user_id: str, book_id: str) -> ReadingProgress:
    return ReadingProgress(
        id=f"{user_id}-{book_id}",
        user_id=user_id,
        book_id=book_id,
        progress=0,
        current_page=DEFAULT_PAGE,
        current_chapter=DEFAULT_CHAPTER,
        time_spent=0,
        last_read_at=utcnow(),
    )


def progress_view(row: Optional[ReadingProgress]) -> dict:
    """The reader-facing shape; defaults when nothing was stored yet."""
    if row is None:
        return {
            "current_page": DEFAULT_PAGE,
            "current_chapter": DEFAULT_CHAPTER,
            "completion_percentage": 0,
            "time_spent": 0,
            "last_read_at": None,
        }
    return {
        "current_page": row.current_page,
        "current_chapter": row.current_chapter,
        "completion_percentage": row.progress,
        "time_spent": row.time_spent,
        "last_read_at": row.last_read_at.isoformat() if row.last_read_at else None,
    }


def update_progress(
    store: Store,
    claims: dict,
    *,
    progress: float,
    current_page: Optional[int] = None,
    current_chapter: Optional[str] = None,
    time_spent: float = 0,
    bookmark_entries: Optional[list] = None,
) -> dict:
    """
    Upsert progress for the (user, book) named by a verified book-access token.
    A bookmark list, when given, replaces the stored bookmarks wholesale.
    """
    if "progress" not in (claims.get("permissions") or []):
        raise PermissionDenied("Insufficient permissions")
    if progress is None or not 0 <= progress <= 100:
        raise ValidationError("progress must be between 0 and 100")
    if time_spent < 0:
        raise ValidationError("timeSpent must not be negative")

    user_id = claims["userId"]
    book_id = claims["bookId"]

    with locks.hold(("progress", user_id, book_id)):
        row = store.get_progress(user_id, book_id)
        if row is None:
            row = store.put_progress(_new_row(user_id, book_id))

        row.progress = progress
        if current_page is not None:
            row.current_page = current_page
        if current_chapter:
            row.current_chapter = current_chapter
        row.time_spent = (row.time_spent or 0) + time_spent
        row.last_read_at = utcnow()

        if bookmark_entries is not None:
            store.replace_bookmarks(user_id, book_id, bookmarks.well_formed(user_id, book_id, bookmark_entries))

        sessions.sync_progress(store, user_id, book_id, page=current_page, time_spent=time_spent)
        store.commit()
        result = row.to_dict()

    analytics.note_reading_time(store, user_id, time_spent)
    result["bookmarks"] = bookmarks.list_bookmarks(store, user_id, book_id)
    logger.debug("Progress saved: user=%s book=%s progress=%s", user_id, book_id, progress)
    return result


# ========= session-authenticated variant =========
def get_user_progress(store: Store, user_id: str, book_id: str) -> dict:
    row = store.get_progress(user_id, book_id)
    return {
        "current_chapter": row.current_chapter if row else DEFAULT_CHAPTER,
        "current_spread": row.current_page if row else DEFAULT_PAGE,
        "progress": row.progress if row else 0,
        "last_read_at": row.last_read_at.isoformat() if row and row.last_read_at else None,
    }


def update_user_progress(
    store: Store,
    user_id: str,
    book_id: str,
    *,
    current_chapter: Optional[str] = None,
    current_spread: Optional[int] = None,
) -> dict:
    """Move the reading position only; time_spent is left alone."""
    with locks.hold(("progress", user_id, book_id)):
        row = store.get_progress(user_id, book_id)
        if row is None:
            row = store.put_progress(_new_row(user_id, book_id))
        if current_chapter:
            row.current_chapter = current_chapter
        if current_spread is not None:
            row.current_page = current_spread
        row.last_read_at = utcnow()
        store.commit()
    return get_user_progress(store, user_id, book_id)


def library_progress(store: Store, user_id: str) -> dict[str, dict]:
    return {row.book_id: progress_view(row) for row in store.list_progress(user_id)}
