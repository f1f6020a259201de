# bravebooks/routers/auth.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request

from bravebooks.config import settings
from bravebooks.db.base import new_id
from bravebooks.db.store import Store, get_store
from bravebooks.errors import AuthError, ValidationError
from bravebooks.models.password_reset import PasswordReset
from bravebooks.models.user import User
from bravebooks.schemas import ForgotPasswordIn, LoginIn, RegisterIn, ResetPasswordIn
from bravebooks.services import entitlement, progress
from bravebooks.services.rate_limit import (
    client_ip,
    login_email_limiter,
    login_ip_limiter,
    register_ip_limiter,
    reset_email_limiter,
    reset_ip_limiter,
)
from bravebooks.utils.authz import current_user
from bravebooks.utils.mailer import send_password_reset_email
from bravebooks.utils.security import check_password_strength, hash_password, verify_password
from bravebooks.utils.tokens import issue_session_token
from bravebooks.utils.urls import frontend_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

RESET_REQUESTED = "If an account with that email exists, we've sent a password reset link."
INVALID_RESET = "This reset link is invalid or has expired. Please request a new one."


# ========= helpers =========
def _ip(request: Request) -> str:
    return client_ip(request.headers, request.client.host if request.client else None)


def _require_strong(password: str) -> None:
    problems = check_password_strength(password)
    if problems:
        raise ValidationError(". ".join(problems))


def _auth_response(user: User) -> dict:
    return {
        "success": True,
        "token": issue_session_token(user.id, user.email),
        "user": user.public(),
    }


# ========= register =========
@router.post("/register")
def register(payload: RegisterIn, request: Request, store: Store = Depends(get_store)):
    ip_key = f"register:ip:{_ip(request)}"
    register_ip_limiter.enforce(ip_key)

    email_norm = payload.email.strip().lower()
    _require_strong(payload.password)

    if store.get_user_by_email(email_norm):
        register_ip_limiter.record_failed_attempt(ip_key)
        raise ValidationError("An account with this email already exists")

    user = store.add_user(
        User(
            id=new_id("user"),
            email=email_norm,
            password_hash=hash_password(payload.password),
            name=payload.name.strip(),
            subscription_status="free",
            role="user",
        )
    )
    store.commit()
    register_ip_limiter.reset(ip_key)
    logger.info("Registered user %s", user.id)
    return _auth_response(user)


# ========= login =========
@router.post("/login")
def login(payload: LoginIn, request: Request, store: Store = Depends(get_store)):
    email_norm = payload.email.strip().lower()
    email_key = f"login:email:{email_norm}"
    ip_key = f"login:ip:{_ip(request)}"

    login_email_limiter.enforce(email_key)
    login_ip_limiter.enforce(ip_key)

    user = store.get_user_by_email(email_norm)
    if not user or not verify_password(payload.password, user.password_hash):
        login_email_limiter.record_failed_attempt(email_key)
        login_ip_limiter.record_failed_attempt(ip_key)
        logger.info("Failed login for %s", email_norm)
        raise AuthError("Invalid email or password")

    login_email_limiter.reset(email_key)
    login_ip_limiter.reset(ip_key)
    return _auth_response(user)


# ========= session =========
@router.get("/verify")
def verify(user: User = Depends(current_user)):
    return {"success": True, "user": user.public()}


@router.get("/user-books")
def user_books(user: User = Depends(current_user), store: Store = Depends(get_store)):
    """Books the user may open, with their reading position where one exists."""
    positions = progress.library_progress(store, user.id)
    books = []
    for book in entitlement.library_for(store, user):
        item = book.public()
        item["progress"] = positions.get(book.id)
        books.append(item)
    return {"success": True, "books": books}


# ========= forgot password =========
@router.post("/forgot-password")
def forgot_password(payload: ForgotPasswordIn, request: Request, store: Store = Depends(get_store)):
    """
    Creates a fresh reset token and mails the link.
    Always returns the same message to avoid user enumeration.
    """
    email_norm = payload.email.strip().lower()
    ip_key = f"reset:ip:{_ip(request)}"
    email_key = f"reset:email:{email_norm}"
    reset_ip_limiter.enforce(ip_key)
    reset_email_limiter.enforce(email_key)
    reset_ip_limiter.record_failed_attempt(ip_key)
    reset_email_limiter.record_failed_attempt(email_key)

    user = store.get_user_by_email(email_norm)
    if user:
        # older links stop working once a new one is issued
        store.invalidate_password_resets(user.id)
        pr = store.add_password_reset(
            PasswordReset.issue(
                user.id,
                user.email,
                ttl_hours=settings.PASSWORD_RESET_EXPIRY_HOURS,
                ip_address=_ip(request),
            )
        )
        store.commit()

        if settings.ENABLE_EMAIL_NOTIFICATIONS:
            link = frontend_url(request, f"/reset-password?token={pr.token}")
            try:
                send_password_reset_email(
                    user.email, user.name, link, expires_hours=settings.PASSWORD_RESET_EXPIRY_HOURS
                )
            except OSError:
                # the token stays valid; the response must not reveal the failure
                logger.exception("Could not send password reset email to user %s", user.id)

    return {"success": True, "message": RESET_REQUESTED}


# ========= reset password =========
@router.get("/verify-reset-token")
def verify_reset_token(token: str = Query(default=""), store: Store = Depends(get_store)):
    pr = store.get_password_reset(token) if token else None
    return {"valid": bool(pr and pr.can_redeem())}


@router.post("/reset-password")
def reset_password(payload: ResetPasswordIn, store: Store = Depends(get_store)):
    """Set the new password and burn the token (single use)."""
    pr = store.get_password_reset(payload.token)
    if not pr or not pr.can_redeem():
        raise ValidationError(INVALID_RESET)

    user = store.get_user(pr.user_id)
    if not user:
        raise ValidationError(INVALID_RESET)

    _require_strong(payload.newPassword)

    user.password_hash = hash_password(payload.newPassword)
    pr.mark_used()
    store.invalidate_password_resets(user.id)
    store.commit()

    login_email_limiter.reset(f"login:email:{user.email}")
    logger.info("Password reset for user %s", user.id)
    return {"success": True, "message": "Password has been reset successfully. You can now sign in."}
