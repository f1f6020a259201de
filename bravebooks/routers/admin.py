# bravebooks/routers/admin.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from bravebooks.config import settings
from bravebooks.db.store import Store, get_store
from bravebooks.errors import NotFoundError
from bravebooks.models.user import User
from bravebooks.schemas import RoleIn, SettingsIn
from bravebooks.services import analytics
from bravebooks.utils.authz import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

# request field -> Settings attribute
_SETTINGS_FIELDS = {
    "authTokenExpiry": "AUTH_TOKEN_EXPIRY_DAYS",
    "bookAccessTokenExpiry": "BOOK_ACCESS_TOKEN_EXPIRY_DAYS",
    "maxLoginAttempts": "MAX_LOGIN_ATTEMPTS",
    "passwordResetExpiry": "PASSWORD_RESET_EXPIRY_HOURS",
    "enableEmailNotifications": "ENABLE_EMAIL_NOTIFICATIONS",
}
# these must not be cleared by an explicit null
_REQUIRED_SETTINGS = {"authTokenExpiry", "maxLoginAttempts", "passwordResetExpiry", "enableEmailNotifications"}


def _user_or_404(store: Store, user_id: str) -> User:
    user = store.get_user(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


# ---------------- Dashboard ----------------
@router.get("/dashboard")
def dashboard(_: User = Depends(require_admin), store: Store = Depends(get_store)):
    summary = analytics.platform_summary(store)
    users = store.list_users()
    return {
        "success": True,
        "stats": {
            "total_users": len(users),
            "premium_users": sum(1 for u in users if u.subscription_status == "premium"),
            "admin_users": sum(1 for u in users if u.role == "admin"),
            "total_books": len(store.list_books(active_only=False)),
            "total_purchases": store.count_purchases(),
            "total_sessions": summary["total_sessions"],
            "total_reading_time": summary["total_reading_time"],
            "active_users_7d": summary["active_users_7d"],
        },
        "recent_users": [u.public() for u in users[-5:][::-1]],
    }


# ---------------- Users ----------------
@router.get("/users")
def list_users(_: User = Depends(require_admin), store: Store = Depends(get_store)):
    out = []
    for u in store.list_users():
        item = u.public()
        row = store.get_analytics(u.id)
        item["total_reading_time"] = row.total_reading_time if row else 0
        item["pages_read"] = row.pages_read if row else 0
        item["total_sessions"] = row.total_sessions if row else 0
        out.append(item)
    return {"success": True, "users": out}


@router.post("/users/{user_id}/role")
def set_role(
    user_id: str,
    payload: RoleIn,
    admin: User = Depends(require_admin),
    store: Store = Depends(get_store),
):
    user = _user_or_404(store, user_id)
    user.role = payload.role
    store.commit()
    logger.info("Admin %s set role of %s to %s", admin.id, user_id, payload.role)
    return {"success": True, "user": user.public()}


# ---------------- Settings ----------------
@router.get("/settings")
def get_settings(_: User = Depends(require_admin)):
    return {"success": True, "settings": settings.system_settings()}


@router.post("/settings")
def update_settings(payload: SettingsIn, admin: User = Depends(require_admin)):
    """Only fields present in the body change; bookAccessTokenExpiry=null means never expire."""
    changes = payload.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if value is None and field in _REQUIRED_SETTINGS:
            continue
        setattr(settings, _SETTINGS_FIELDS[field], value)
    logger.info("Admin %s updated settings: %s", admin.id, sorted(changes))
    return {"success": True, "settings": settings.system_settings()}


# ---------------- Analytics ----------------
@router.get("/user-analytics/{user_id}")
def user_analytics(user_id: str, _: User = Depends(require_admin), store: Store = Depends(get_store)):
    user = _user_or_404(store, user_id)
    return {
        "success": True,
        "user": user.public(),
        "analytics": analytics.get_user_analytics(store, user_id),
    }


@router.delete("/user-analytics/{user_id}")
def wipe_user_analytics(user_id: str, admin: User = Depends(require_admin), store: Store = Depends(get_store)):
    _user_or_404(store, user_id)
    existed = analytics.wipe_user_analytics(store, user_id)
    logger.warning("Admin %s wiped analytics of user %s", admin.id, user_id)
    return {"success": True, "wiped": existed}
