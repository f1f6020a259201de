# bravebooks/services/book_access.py
"""
Book access tokens: issue, reuse, validate.

At most one live token exists per (user, book). Asking again before it
expires returns the same token string with `last_used_at` bumped, so an
external reader that already holds it keeps working.
"""
from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

from bravebooks.config import settings
from bravebooks.db.base import utcnow
from bravebooks.db.store import Store
from bravebooks.errors import AuthError, NotFoundError, PermissionDenied
from bravebooks.models.book import Book
from bravebooks.models.book_access_token import BookAccessToken
from bravebooks.services import bookmarks, progress, sessions
from bravebooks.services.entitlement import purchase_id_for, require_entitlement
from bravebooks.utils.locks import locks
from bravebooks.utils.tokens import issue_book_token, verify_book_token

logger = logging.getLogger(__name__)

RETURN_LABEL = "Back to Library"
_TICK = dt.timedelta(microseconds=1)


@dataclass
class AccessGrant:
    token: str
    expires_at: Optional[int]  # epoch seconds; None = never expires
    book_url: str
    reused: bool


def _to_epoch(value: Optional[dt.datetime]) -> Optional[int]:
    if value is None:
        return None
    return int(value.replace(tzinfo=dt.timezone.utc).timestamp())


def _from_epoch(value: Optional[int]) -> Optional[dt.datetime]:
    if value is None:
        return None
    return dt.datetime.fromtimestamp(value, tz=dt.timezone.utc).replace(tzinfo=None)


def return_url(platform_url: str) -> str:
    return f"{platform_url.rstrip('/')}/library"


def build_book_url(book: Book, token: str, platform_url: str) -> str:
    base = book.external_url
    if base.startswith("/"):
        base = f"{platform_url.rstrip('/')}{base}"
    query = urlencode({
        "token": token,
        "platform": settings.PLATFORM_ID,
        "returnUrl": return_url(platform_url),
        "returnLabel": RETURN_LABEL,
    })
    sep = "&" if "?" in base else "?"
    return f"{base}{sep}{query}"


def generate_or_reuse_token(
    store: Store,
    user_id: str,
    book_id: str,
    *,
    platform_url: str,
    device_type: Optional[str] = None,
    browser_info: Optional[str] = None,
) -> AccessGrant:
    user = store.get_user(user_id)
    if user is None:
        raise NotFoundError("User not found")
    book = store.get_book(book_id)
    if book is None or not book.is_active:
        raise NotFoundError("Book not found")
    entitlement = require_entitlement(store, user, book)

    with locks.hold(("book-token", user_id, book_id)):
        now = utcnow()
        row = store.get_book_token(user_id, book_id)
        if row is not None and row.is_live(now):
            # strictly increasing even when two requests land in the same tick
            row.last_used_at = max(now, row.last_used_at + _TICK)
            store.commit()
            logger.info("Reusing book token: user=%s book=%s", user_id, book_id)
            grant = AccessGrant(row.token, _to_epoch(row.expires_at), "", reused=True)
        else:
            token, exp = issue_book_token(
                user_id,
                book_id,
                entitlement.purchase_id,
                expiry_days=settings.BOOK_ACCESS_TOKEN_EXPIRY_DAYS,
            )
            if row is None:
                store.put_book_token(
                    BookAccessToken(
                        id=purchase_id_for(user_id, book_id),
                        user_id=user_id,
                        book_id=book_id,
                        token=token,
                        expires_at=_from_epoch(exp),
                        created_at=now,
                        last_used_at=now,
                    )
                )
            else:
                row.token = token
                row.expires_at = _from_epoch(exp)
                row.created_at = now
                row.last_used_at = now
            store.commit()
            logger.info("Minted book token: user=%s book=%s expires=%s", user_id, book_id, exp or "never")
            grant = AccessGrant(token, exp, "", reused=False)

    if not grant.reused:
        sessions.start_session(store, user_id, book_id, device_type=device_type, browser_info=browser_info)

    grant.book_url = build_book_url(book, grant.token, platform_url)
    return grant


def validate_book_token(store: Store, token: str, book_id: str) -> dict:
    """{valid: true, ...} or just {valid: false}; no reason is ever given."""
    try:
        claims = verify_book_token(token)
    except AuthError:
        return {"valid": False}
    if claims["bookId"] != book_id:
        return {"valid": False}
    user = store.get_user(claims["userId"])
    if user is None:
        return {"valid": False}
    return {
        "valid": True,
        "userId": user.id,
        "bookId": book_id,
        "purchaseId": claims.get("purchaseId"),
        "permissions": claims.get("permissions") or [],
        "user": {"id": user.id, "name": user.name, "email": user.email},
    }


def validate_enhanced(
    store: Store,
    token: str,
    book_id: str,
    *,
    platform_url: str,
    device_type: Optional[str] = None,
    browser_info: Optional[str] = None,
) -> dict:
    """Validation plus everything the reader needs to resume in one round trip."""
    result = validate_book_token(store, token, book_id)
    if not result["valid"]:
        return result

    user_id = result["userId"]
    session, _ = sessions.start_session(
        store, user_id, book_id, device_type=device_type, browser_info=browser_info
    )
    result.update({
        "bookmarks": bookmarks.list_bookmarks(store, user_id, book_id),
        "progress": progress.progress_view(store.get_progress(user_id, book_id)),
        "analytics_session_id": session.id,
        "return_info": {
            "url": return_url(platform_url),
            "label": RETURN_LABEL,
            "platform": settings.PLATFORM_ID,
        },
    })
    return result


def authorize_book_token(store: Store, token: str, permission: str) -> dict:
    """Claims of a valid book token that carries `permission`."""
    claims = verify_book_token(token)
    if permission not in (claims.get("permissions") or []):
        raise PermissionDenied("Insufficient permissions")
    if store.get_user(claims["userId"]) is None:
        raise AuthError("User not found")
    return claims
