# bravebooks/models/progress.py
from sqlalchemy import Column, String, Integer, Float, DateTime, ForeignKey, UniqueConstraint

from bravebooks.db.base import Base, utcnow


class ReadingProgress(Base):
    __tablename__ = "reading_progress"

    id = Column(String(100), primary_key=True)  # "<user_id>-<book_id>"
    user_id = Column(String(40), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    book_id = Column(String(40), ForeignKey("books.id", ondelete="CASCADE"), nullable=False)
    progress = Column(Float, nullable=False, default=0)  # percent 0-100
    current_page = Column(Integer, nullable=False, default=1)
    current_chapter = Column(String(120), nullable=False, default="Chapter 1")
    # cumulative seconds; only ever incremented
    time_spent = Column(Float, nullable=False, default=0)
    last_read_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (UniqueConstraint("user_id", "book_id", name="uq_progress_user_book"),)

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "bookId": self.book_id,
            "progress": self.progress,
            "currentPage": self.current_page,
            "currentChapter": self.current_chapter,
            "timeSpent": self.time_spent,
            "lastReadAt": self.last_read_at.isoformat() if self.last_read_at else None,
        }
