# bravebooks/utils/security.py
"""
Password hashing (bcrypt, per-hash random salt) and strength rules.

Passwords are trimmed before hashing and verifying, so "  x  " and "x" are
the same password.
"""
from __future__ import annotations

import logging
import re
from typing import Optional

import bcrypt

from bravebooks.config import settings
from bravebooks.errors import ValidationError

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes; refuse rather than silently truncate
MAX_PASSWORD_BYTES = 72

COMMON_PASSWORDS = frozenset({
    "password", "password1", "password123", "123456", "12345678", "123456789",
    "qwerty", "qwerty123", "abc123", "letmein", "welcome", "welcome1",
    "admin", "admin123", "iloveyou", "monkey", "dragon", "football",
})


def _normalize(password: Optional[str]) -> bytes:
    pw = (password or "").strip()
    if not pw:
        raise ValidationError("Password is required")
    raw = pw.encode("utf-8")
    if len(raw) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return raw


def hash_password(password: str) -> str:
    raw = _normalize(password)
    return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)).decode("ascii")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        raw = _normalize(password)
    except ValidationError:
        return False
    try:
        return bcrypt.checkpw(raw, password_hash.encode("ascii"))
    except ValueError:
        # not a bcrypt digest (legacy or corrupted row)
        logger.warning("Stored password hash is malformed")
        return False


def check_password_strength(password: str) -> list[str]:
    """Return the list of unmet rules; empty means the password is acceptable."""
    pw = (password or "").strip()
    problems: list[str] = []
    if len(pw) < 8:
        problems.append("Password must be at least 8 characters long")
    if not re.search(r"[A-Z]", pw):
        problems.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", pw):
        problems.append("Password must contain at least one lowercase letter")
    if not re.search(r"\d", pw):
        problems.append("Password must contain at least one number")
    if pw.lower() in COMMON_PASSWORDS:
        problems.append("Password is too common. Please choose a more unique password")
    return problems
