# bravebooks/utils/tokens.py
"""
Signed tokens (HS256 via PyJWT).

Two kinds share the secret and are told apart by the "typ" claim:
  - session:      {userId, email}, sent as `Authorization: Bearer <token>`
  - book_access:  {userId, bookId, purchaseId, permissions}, handed to the
                  external reader; `exp` is omitted when it never expires
"""
from __future__ import annotations

import datetime as dt
import uuid
from typing import Optional

import jwt

from bravebooks.config import settings
from bravebooks.errors import ExpiredToken, InvalidToken

SESSION = "session"
BOOK_ACCESS = "book_access"

BOOK_PERMISSIONS = ["read", "bookmark", "progress"]


def _now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def encode(claims: dict, *, typ: str, expires_in: Optional[dt.timedelta]) -> str:
    now = _now()
    payload = dict(claims, typ=typ, iat=int(now.timestamp()), jti=uuid.uuid4().hex)
    if expires_in is not None:
        payload["exp"] = int((now + expires_in).timestamp())
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode(token: str, *, typ: str) -> dict:
    if not token:
        raise InvalidToken()
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise ExpiredToken()
    except jwt.PyJWTError:
        raise InvalidToken()
    if payload.get("typ") != typ:
        raise InvalidToken()
    return payload


# ========= session tokens =========
def issue_session_token(user_id: str, email: str) -> str:
    return encode(
        {"userId": user_id, "email": email},
        typ=SESSION,
        expires_in=dt.timedelta(days=settings.AUTH_TOKEN_EXPIRY_DAYS),
    )


def verify_session_token(token: str) -> dict:
    payload = decode(token, typ=SESSION)
    if not payload.get("userId"):
        raise InvalidToken()
    return payload


# ========= book access tokens =========
def issue_book_token(
    user_id: str,
    book_id: str,
    purchase_id: str,
    *,
    expiry_days: Optional[int],
    permissions: Optional[list[str]] = None,
) -> tuple[str, Optional[int]]:
    """Returns (token, exp) where exp is epoch seconds or None for never."""
    expires_in = dt.timedelta(days=expiry_days) if expiry_days else None
    token = encode(
        {
            "userId": user_id,
            "bookId": book_id,
            "purchaseId": purchase_id,
            "permissions": list(permissions or BOOK_PERMISSIONS),
        },
        typ=BOOK_ACCESS,
        expires_in=expires_in,
    )
    exp = jwt.decode(token, options={"verify_signature": False}).get("exp")
    return token, exp


def verify_book_token(token: str) -> dict:
    payload = decode(token, typ=BOOK_ACCESS)
    if not payload.get("userId") or not payload.get("bookId"):
        raise InvalidToken()
    return payload
