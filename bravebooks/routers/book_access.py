# bravebooks/routers/book_access.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from bravebooks.db.store import Store, get_store
from bravebooks.errors import NotFoundError, PermissionDenied
from bravebooks.models.user import User
from bravebooks.schemas import (
    BookmarkUpdateFields,
    EndSessionIn,
    GenerateTokenIn,
    StartSessionIn,
    TokenBookmarkAddIn,
    TokenBookmarkDeleteIn,
    TokenBookmarksIn,
    TokenBookmarkUpdateIn,
    TrackEnhancedIn,
    UpdateProgressIn,
    UserBookmarkAddIn,
    UserBookmarkDeleteIn,
    UserBookmarksIn,
    UserProgressGetIn,
    UserProgressUpdateIn,
    ValidateTokenIn,
)
from bravebooks.services import analytics, book_access, bookmarks, progress, sessions
from bravebooks.utils.authz import current_user, require_admin
from bravebooks.utils.urls import platform_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/book-access", tags=["book-access"])


def _device(request: Request) -> tuple[str, str]:
    agent = request.headers.get("user-agent") or ""
    lowered = agent.lower()
    if "ipad" in lowered or "tablet" in lowered:
        device = "tablet"
    elif "mobile" in lowered or "android" in lowered or "iphone" in lowered:
        device = "mobile"
    else:
        device = "desktop"
    return device, agent[:400]


def _book_or_404(store: Store, book_id: str) -> None:
    if store.get_book(book_id) is None:
        raise NotFoundError("Book not found")


# ========= tokens =========
@router.post("/generate-token")
def generate_token(
    payload: GenerateTokenIn,
    request: Request,
    user: User = Depends(current_user),
    store: Store = Depends(get_store),
):
    device, agent = _device(request)
    grant = book_access.generate_or_reuse_token(
        store,
        user.id,
        payload.bookId,
        platform_url=platform_url(request),
        device_type=device,
        browser_info=agent,
    )
    return {
        "success": True,
        "token": grant.token,
        "expiresAt": grant.expires_at,
        "bookUrl": grant.book_url,
    }


@router.post("/validate-token")
def validate_token(payload: ValidateTokenIn, store: Store = Depends(get_store)):
    return book_access.validate_book_token(store, payload.token, payload.bookId)


@router.post("/validate-enhanced")
def validate_enhanced(payload: ValidateTokenIn, request: Request, store: Store = Depends(get_store)):
    device, agent = _device(request)
    return book_access.validate_enhanced(
        store,
        payload.token,
        payload.bookId,
        platform_url=platform_url(request),
        device_type=device,
        browser_info=agent,
    )


# ========= progress (book token) =========
@router.post("/update-progress")
def update_progress(payload: UpdateProgressIn, store: Store = Depends(get_store)):
    claims = book_access.authorize_book_token(store, payload.token, "progress")
    saved = progress.update_progress(
        store,
        claims,
        progress=payload.progress,
        current_page=payload.currentPage,
        current_chapter=payload.currentChapter,
        time_spent=payload.timeSpent,
        bookmark_entries=payload.bookmarks,
    )
    return {"success": True, "progress": saved}


# ========= bookmarks (book token) =========
@router.post("/bookmarks/get")
def token_bookmarks_get(payload: TokenBookmarksIn, store: Store = Depends(get_store)):
    claims = book_access.authorize_book_token(store, payload.token, "bookmark")
    return {"success": True, "bookmarks": bookmarks.list_bookmarks(store, claims["userId"], claims["bookId"])}


@router.post("/bookmarks/add")
def token_bookmarks_add(payload: TokenBookmarkAddIn, store: Store = Depends(get_store)):
    claims = book_access.authorize_book_token(store, payload.token, "bookmark")
    bm = bookmarks.add_bookmark(
        store,
        claims["userId"],
        claims["bookId"],
        page=payload.page,
        chapter=payload.chapter,
        note=payload.note,
        bookmark_type=payload.bookmark_type,
        metadata=payload.metadata,
    )
    return {"success": True, "bookmark": bm}


@router.post("/bookmarks/update")
def token_bookmarks_update(payload: TokenBookmarkUpdateIn, store: Store = Depends(get_store)):
    claims = book_access.authorize_book_token(store, payload.token, "bookmark")
    bm = bookmarks.update_bookmark(
        store,
        claims["userId"],
        payload.bookmark_id,
        note=payload.note,
        bookmark_type=payload.bookmark_type,
        metadata=payload.metadata,
    )
    return {"success": True, "bookmark": bm}


@router.post("/bookmarks/delete")
def token_bookmarks_delete(payload: TokenBookmarkDeleteIn, store: Store = Depends(get_store)):
    claims = book_access.authorize_book_token(store, payload.token, "bookmark")
    bookmarks.delete_bookmark(store, claims["userId"], payload.bookmark_id)
    return {"success": True, "message": "Bookmark deleted"}


# ========= bookmarks / progress (session token) =========
@router.post("/user-bookmarks/get")
def user_bookmarks_get(
    payload: UserBookmarksIn,
    user: User = Depends(current_user),
    store: Store = Depends(get_store),
):
    return {"success": True, "bookmarks": bookmarks.list_bookmarks(store, user.id, payload.book_id)}


@router.post("/user-bookmarks/add")
def user_bookmarks_add(
    payload: UserBookmarkAddIn,
    user: User = Depends(current_user),
    store: Store = Depends(get_store),
):
    _book_or_404(store, payload.book_id)
    bm = bookmarks.add_bookmark(
        store,
        user.id,
        payload.book_id,
        page=payload.page,
        chapter=payload.chapter,
        note=payload.note,
        bookmark_type=payload.bookmark_type,
        metadata=payload.metadata,
    )
    return {"success": True, "bookmark": bm}


@router.post("/user-bookmarks/update")
def user_bookmarks_update(
    payload: BookmarkUpdateFields,
    user: User = Depends(current_user),
    store: Store = Depends(get_store),
):
    bm = bookmarks.update_bookmark(
        store,
        user.id,
        payload.bookmark_id,
        note=payload.note,
        bookmark_type=payload.bookmark_type,
        metadata=payload.metadata,
    )
    return {"success": True, "bookmark": bm}


@router.post("/user-bookmarks/delete")
def user_bookmarks_delete(
    payload: UserBookmarkDeleteIn,
    user: User = Depends(current_user),
    store: Store = Depends(get_store),
):
    bookmarks.delete_bookmark(store, user.id, payload.bookmark_id)
    return {"success": True, "message": "Bookmark deleted"}


@router.post("/user-progress/get")
def user_progress_get(
    payload: UserProgressGetIn,
    user: User = Depends(current_user),
    store: Store = Depends(get_store),
):
    return {"success": True, "progress": progress.get_user_progress(store, user.id, payload.book_id)}


@router.post("/user-progress/update")
def user_progress_update(
    payload: UserProgressUpdateIn,
    user: User = Depends(current_user),
    store: Store = Depends(get_store),
):
    _book_or_404(store, payload.book_id)
    saved = progress.update_user_progress(
        store,
        user.id,
        payload.book_id,
        current_chapter=payload.current_chapter,
        current_spread=payload.current_spread,
    )
    return {"success": True, "progress": saved}


# ========= analytics =========
@router.post("/analytics/start-session")
def start_session(
    payload: StartSessionIn,
    request: Request,
    user: User = Depends(current_user),
    store: Store = Depends(get_store),
):
    _book_or_404(store, payload.book_id)
    device, agent = _device(request)
    session, created = sessions.start_session(
        store,
        user.id,
        payload.book_id,
        session_id=payload.session_id,
        device_type=payload.device_type or device,
        browser_info=payload.browser_info or agent,
    )
    return {"success": True, "session_id": session.id, "created": created}


@router.post("/analytics/end-session")
def end_session(
    payload: EndSessionIn,
    user: User = Depends(current_user),
    store: Store = Depends(get_store),
):
    ended = sessions.end_session(store, user.id, payload.session_id, payload.final_metrics.model_dump())
    return {"success": True, "session_id": payload.session_id, "ended": ended is not None}


@router.post("/analytics/track-enhanced")
def track_enhanced(
    payload: TrackEnhancedIn,
    user: User = Depends(current_user),
    store: Store = Depends(get_store),
):
    if payload.user_id != user.id:
        raise PermissionDenied("User ID mismatch")
    result = analytics.track_event(store, user.id, payload.model_dump())
    return {"success": True, "analytics_processed": True, **result}


@router.get("/analytics/user/{user_id}")
def user_analytics(
    user_id: str,
    user: User = Depends(current_user),
    store: Store = Depends(get_store),
):
    if user_id != user.id and not user.is_admin:
        raise PermissionDenied("Access denied")
    return {"success": True, "analytics": analytics.get_user_analytics(store, user_id)}


@router.get("/analytics/summary")
def analytics_summary(_: User = Depends(require_admin), store: Store = Depends(get_store)):
    return {"success": True, "summary": analytics.platform_summary(store)}


@router.get("/analytics/enhanced-summary")
def analytics_enhanced_summary(_: User = Depends(require_admin), store: Store = Depends(get_store)):
    return {"success": True, "summary": analytics.enhanced_summary(store)}


@router.get("/health")
def health():
    return {
        "success": True,
        "service": "book-access",
        "status": "healthy",
        "features": [
            "token_generation",
            "token_validation",
            "progress_tracking",
            "bookmarks",
            "reading_sessions",
            "enhanced_analytics",
        ],
    }
