# bravebooks/models/password_reset.py
from __future__ import annotations

import datetime as dt
import secrets
from typing import Optional

import sqlalchemy as sa
from sqlalchemy import orm

from bravebooks.db.base import Base, new_id, utcnow


class PasswordReset(Base):
    """
    A single-use password reset token for a user.

    Typical lifecycle:
      1) Create with `PasswordReset.issue(user_id, email, ttl_hours=1)`
      2) Email `token` to the user as a link
      3) When redeemed, call `mark_used()` and commit

    A token is redeemable only while `not used and expires_at > now`.
    """

    __tablename__ = "password_resets"

    # --- Columns ---
    id: orm.Mapped[str] = orm.mapped_column(sa.String(40), primary_key=True)

    user_id: orm.Mapped[str] = orm.mapped_column(
        sa.String(40), sa.ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    email: orm.Mapped[str] = orm.mapped_column(sa.String(255), nullable=False)

    # URL-safe token; keep length generous for different token generators
    token: orm.Mapped[str] = orm.mapped_column(
        sa.String(128), nullable=False, unique=True, index=True
    )

    created_at: orm.Mapped[dt.datetime] = orm.mapped_column(sa.DateTime, nullable=False, default=utcnow)
    expires_at: orm.Mapped[dt.datetime] = orm.mapped_column(sa.DateTime, nullable=False)
    used: orm.Mapped[bool] = orm.mapped_column(sa.Boolean, nullable=False, default=False)
    used_at: orm.Mapped[Optional[dt.datetime]] = orm.mapped_column(sa.DateTime, nullable=True)

    ip_address: orm.Mapped[Optional[str]] = orm.mapped_column(sa.String(45), nullable=True)  # IPv6 max text length

    __table_args__ = (
        sa.Index("ix_password_resets_user_created_at", "user_id", "created_at"),
    )

    # --- Helpers / Constructors ---

    @staticmethod
    def _generate_token(nbytes: int = 32) -> str:
        """nbytes=32 -> ~43-char URL-safe string."""
        return secrets.token_urlsafe(nbytes)

    @classmethod
    def issue(
        cls,
        user_id: str,
        email: str,
        *,
        ttl_hours: int = 1,
        ip_address: Optional[str] = None,
    ) -> "PasswordReset":
        """
        Create a new reset token object (not added/committed).
        Call store.add_password_reset() + commit() yourself.
        """
        now = utcnow()
        return cls(
            id=new_id("reset"),
            user_id=user_id,
            email=email,
            token=cls._generate_token(),
            created_at=now,
            expires_at=now + dt.timedelta(hours=ttl_hours),
            used=False,
            ip_address=ip_address,
        )

    # --- Instance methods ---

    def is_expired(self, *, at: Optional[dt.datetime] = None) -> bool:
        current = at or utcnow()
        return current >= self.expires_at

    def can_redeem(self) -> bool:
        """True if not used and not expired."""
        return (not self.used) and (not self.is_expired())

    def mark_used(self, *, when: Optional[dt.datetime] = None) -> None:
        self.used = True
        self.used_at = when or utcnow()

    def __repr__(self) -> str:
        status = "used" if self.used else ("expired" if self.is_expired() else "active")
        return f"<PasswordReset id={self.id} user_id={self.user_id} status={status}>"
