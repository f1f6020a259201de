# bravebooks/models/book_access_token.py
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, UniqueConstraint

from bravebooks.db.base import Base, utcnow


class BookAccessToken(Base):
    """The single outstanding reader token for a (user, book) pair."""

    __tablename__ = "book_access_tokens"

    id = Column(String(100), primary_key=True)  # "<user_id>-<book_id>"
    user_id = Column(String(40), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    book_id = Column(String(40), ForeignKey("books.id", ondelete="CASCADE"), nullable=False)
    token = Column(Text, nullable=False)
    expires_at = Column(DateTime, nullable=True)  # NULL = never expires
    created_at = Column(DateTime, nullable=False, default=utcnow)
    last_used_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (UniqueConstraint("user_id", "book_id", name="uq_book_token_user_book"),)

    def is_live(self, now) -> bool:
        return self.expires_at is None or self.expires_at > now
