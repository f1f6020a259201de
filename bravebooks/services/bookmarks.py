# bravebooks/services/bookmarks.py
from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from bravebooks.db.base import new_id, utcnow
from bravebooks.db.store import Store
from bravebooks.errors import NotFoundError, ValidationError
from bravebooks.models.bookmark import BOOKMARK_TYPES, Bookmark

logger = logging.getLogger(__name__)

NOT_FOUND = "Bookmark not found or access denied"


def _check_type(bookmark_type: str) -> str:
    if bookmark_type not in BOOKMARK_TYPES:
        raise ValidationError(f"bookmark_type must be one of: {', '.join(BOOKMARK_TYPES)}")
    return bookmark_type


def _owned(store: Store, user_id: str, bookmark_id: str) -> Bookmark:
    bm = store.get_bookmark(bookmark_id) if bookmark_id else None
    # a foreign bookmark looks exactly like a missing one
    if bm is None or bm.user_id != user_id:
        raise NotFoundError(NOT_FOUND)
    return bm


def _numeric_page(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def well_formed(user_id: str, book_id: str, entries: Iterable[dict]) -> list[Bookmark]:
    """Bookmarks from a progress sync; entries without a numeric page are dropped."""
    out = []
    now = utcnow()
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        page = _numeric_page(entry.get("page"))
        if page is None:
            continue
        bookmark_type = entry.get("bookmark_type") or "page_save"
        if bookmark_type not in BOOKMARK_TYPES:
            bookmark_type = "page_save"
        out.append(
            Bookmark(
                id=new_id("bookmark"),
                user_id=user_id,
                book_id=book_id,
                page=page,
                chapter=entry.get("chapter"),
                note=entry.get("note"),
                bookmark_type=bookmark_type,
                meta=entry.get("metadata"),
                created_at=now,
            )
        )
    return out


def list_bookmarks(store: Store, user_id: str, book_id: str) -> list[dict]:
    return [bm.to_dict() for bm in store.list_bookmarks(user_id, book_id)]


def add_bookmark(
    store: Store,
    user_id: str,
    book_id: str,
    *,
    page: int,
    chapter: Optional[str] = None,
    note: Optional[str] = None,
    bookmark_type: str = "page_save",
    metadata: Optional[dict] = None,
) -> dict:
    bm = store.add_bookmark(
        Bookmark(
            id=new_id("bookmark"),
            user_id=user_id,
            book_id=book_id,
            page=page,
            chapter=chapter,
            note=note,
            bookmark_type=_check_type(bookmark_type),
            meta=metadata,
            created_at=utcnow(),
        )
    )
    store.commit()
    logger.info("Bookmark %s added: user=%s book=%s page=%s", bm.id, user_id, book_id, page)
    return bm.to_dict()


def update_bookmark(
    store: Store,
    user_id: str,
    bookmark_id: str,
    *,
    note: Optional[str] = None,
    bookmark_type: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> dict:
    """Only the fields given (not None) change."""
    bm = _owned(store, user_id, bookmark_id)
    if note is not None:
        bm.note = note
    if bookmark_type is not None:
        bm.bookmark_type = _check_type(bookmark_type)
    if metadata is not None:
        bm.meta = metadata
    bm.updated_at = utcnow()
    store.commit()
    return bm.to_dict()


def delete_bookmark(store: Store, user_id: str, bookmark_id: str) -> None:
    bm = _owned(store, user_id, bookmark_id)
    store.delete_bookmark(bm)
    store.commit()
    logger.info("Bookmark %s deleted by user %s", bookmark_id, user_id)
