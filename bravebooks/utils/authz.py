# bravebooks/utils/authz.py
from __future__ import annotations

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from bravebooks.db.store import Store, get_store
from bravebooks.errors import AuthError, PermissionDenied
from bravebooks.models.user import User
from bravebooks.utils.tokens import verify_session_token

# auto_error=False so a missing header becomes our AuthError (uniform error body)
bearer = HTTPBearer(auto_error=False)


def current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    store: Store = Depends(get_store),
) -> User:
    """
    Resolve the Bearer session token to a User.
    - No/garbled header: 401 "Authentication required"
    - Bad or expired token: 401 with the token error
    - Token for a user that no longer exists: 401
    """
    if credentials is None or (credentials.scheme or "").lower() != "bearer":
        raise AuthError("Authentication required")

    payload = verify_session_token(credentials.credentials)
    user = store.get_user(payload["userId"])
    if user is None:
        raise AuthError("User not found")
    return user


def require_admin(user: User = Depends(current_user)) -> User:
    """
    - If not logged in: 401 (from current_user)
    - If logged in but not an admin: 403
    - If an admin: return the user
    """
    if not user.is_admin:
        raise PermissionDenied("Admin access required")
    return user
