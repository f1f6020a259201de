# bravebooks/services/sessions.py
"""
Reading session lifecycle: NotStarted -> Active -> Ended.

At most one Active session exists per (user, book). Starting again while one
is active hands back the existing id. Progress syncs update the active row in
place; only an explicit end-session call closes it.
"""
from __future__ import annotations

import logging
from typing import Optional

from bravebooks.db.base import new_id, utcnow
from bravebooks.db.store import Store
from bravebooks.models.reading_session import PageEngagement, ReadingSession
from bravebooks.services import analytics
from bravebooks.utils.locks import locks

logger = logging.getLogger(__name__)


def start_session(
    store: Store,
    user_id: str,
    book_id: str,
    *,
    session_id: Optional[str] = None,
    device_type: Optional[str] = None,
    browser_info: Optional[str] = None,
) -> tuple[ReadingSession, bool]:
    """Return (session, created). Commits when a session is created."""
    with locks.hold(("session", user_id, book_id)):
        active = store.get_active_session(user_id, book_id)
        if active is not None:
            return active, False

        sid = session_id
        if not sid or store.get_session(sid) is not None:
            sid = new_id("session")

        session = store.add_session(
            ReadingSession(
                id=sid,
                user_id=user_id,
                book_id=book_id,
                session_start=utcnow(),
                total_duration=0,
                pages_visited=[],
                interactions_count=0,
                cues_collected=0,
                device_type=device_type or "desktop",
                browser_info=browser_info,
            )
        )
        store.commit()

    analytics.note_session_started(store, user_id)
    logger.info("Reading session started: %s user=%s book=%s", sid, user_id, book_id)
    return session, True


def end_session(
    store: Store,
    user_id: str,
    session_id: str,
    final_metrics: Optional[dict] = None,
) -> Optional[ReadingSession]:
    """
    Close the caller's active session with its final metrics.
    Unknown, foreign or already-ended sessions are a logged no-op (returns None).
    """
    session = store.get_session(session_id) if session_id else None
    if session is None or session.user_id != user_id or not session.is_active:
        logger.warning("end-session ignored: session=%s user=%s", session_id, user_id)
        return None

    metrics = final_metrics or {}
    session.session_end = utcnow()
    if metrics.get("total_duration") is not None:
        session.total_duration = int(metrics["total_duration"])
    if metrics.get("pages_visited") is not None:
        session.pages_visited = [int(p) for p in metrics["pages_visited"]]
    if metrics.get("final_interactions") is not None:
        session.interactions_count = int(metrics["final_interactions"])
    if metrics.get("cues_collected") is not None:
        session.cues_collected = int(metrics["cues_collected"])
    store.commit()
    logger.info("Reading session ended: %s duration=%ss", session.id, session.total_duration)
    return session


def sync_progress(
    store: Store,
    user_id: str,
    book_id: str,
    *,
    page: Optional[int],
    time_spent: float,
) -> Optional[ReadingSession]:
    """
    Fold one progress sync into the active session (no new session rows) and
    record it as a page engagement. Does not commit.
    """
    session = store.get_active_session(user_id, book_id)
    if session is None:
        return None

    session.total_duration = (session.total_duration or 0) + int(round(max(0, time_spent)))
    pages = list(session.pages_visited or [])
    if page is not None and page not in pages:
        pages.append(page)
    session.pages_visited = pages
    session.interactions_count = (session.interactions_count or 0) + 1

    store.add_page_engagement(
        PageEngagement(
            id=new_id("engagement"),
            session_id=session.id,
            user_id=user_id,
            page_number=page or 1,
            page_type="story",
            navigation_source="spread_nav",
            time_on_page=time_spent,
            actual_engagement_time=time_spent,
            interactions=[],
            cue_interactions=[],
            print_clicks=0,
        )
    )
    return session
