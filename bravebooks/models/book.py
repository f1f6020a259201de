# bravebooks/models/book.py
from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint

from bravebooks.db.base import Base, utcnow


class Book(Base):
    __tablename__ = "books"

    id = Column(String(40), primary_key=True)
    title = Column(String(200), nullable=False)
    author = Column(String(200), nullable=True)
    description = Column(Text, nullable=True)
    cover_image = Column(String(400), nullable=True)
    # external reader location; the access token is appended as ?token=
    external_url = Column(String(1024), nullable=False)
    price_cents = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    @property
    def is_free(self) -> bool:
        return (self.price_cents or 0) == 0

    def public(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "description": self.description,
            "coverImage": self.cover_image,
            "price": (self.price_cents or 0) / 100,
        }


class Purchase(Base):
    __tablename__ = "purchases"

    id = Column(String(100), primary_key=True)  # "<user_id>-<book_id>"
    user_id = Column(String(40), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    book_id = Column(String(40), ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="completed")  # completed | pending
    access_type = Column(String(20), nullable=False, default="purchased")  # free | purchased
    purchased_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (UniqueConstraint("user_id", "book_id", name="uq_purchase_user_book"),)
