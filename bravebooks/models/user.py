# bravebooks/models/user.py
from sqlalchemy import Column, String, DateTime, UniqueConstraint

from bravebooks.db.base import Base, utcnow

ROLES = ("user", "admin", "preview")
SUBSCRIPTIONS = ("free", "premium")


class User(Base):
    __tablename__ = "users"

    id = Column(String(40), primary_key=True)
    # stored lower-cased; lookups normalise the same way
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(120), nullable=False)
    subscription_status = Column(String(20), nullable=False, default="free")
    role = Column(String(20), nullable=False, default="user")
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (UniqueConstraint("email", name="uq_users_email"),)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def public(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "subscription_status": self.subscription_status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
