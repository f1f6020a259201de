# bravebooks/models/bookmark.py
from sqlalchemy import Column, String, Text, Integer, DateTime, JSON, ForeignKey, Index

from bravebooks.db.base import Base, utcnow

BOOKMARK_TYPES = ("page_save", "note", "highlight", "interactive_cue", "reading_position")


class Bookmark(Base):
    __tablename__ = "bookmarks"

    id = Column(String(40), primary_key=True)
    user_id = Column(String(40), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    book_id = Column(String(40), ForeignKey("books.id", ondelete="CASCADE"), nullable=False)
    page = Column(Integer, nullable=False)
    chapter = Column(String(120), nullable=True)
    note = Column(Text, nullable=True)
    bookmark_type = Column(String(30), nullable=False, default="page_save")
    meta = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=True)

    __table_args__ = (Index("ix_bookmarks_user_book", "user_id", "book_id"),)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "book_id": self.book_id,
            "page": self.page,
            "chapter": self.chapter,
            "note": self.note,
            "bookmark_type": self.bookmark_type,
            "metadata": self.meta,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
