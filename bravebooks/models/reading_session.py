# bravebooks/models/reading_session.py
from sqlalchemy import Column, String, Integer, Float, DateTime, JSON, ForeignKey, Index

from bravebooks.db.base import Base, utcnow


class ReadingSession(Base):
    """
    One logical reading session: Active while session_end is NULL, Ended after
    an explicit end-session call. Progress syncs update the row in place.
    """

    __tablename__ = "reading_sessions"

    id = Column(String(60), primary_key=True)
    user_id = Column(String(40), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    book_id = Column(String(40), ForeignKey("books.id", ondelete="CASCADE"), nullable=False)
    session_start = Column(DateTime, nullable=False, default=utcnow)
    session_end = Column(DateTime, nullable=True)
    total_duration = Column(Integer, nullable=False, default=0)  # seconds
    pages_visited = Column(JSON, nullable=False, default=list)
    interactions_count = Column(Integer, nullable=False, default=0)
    cues_collected = Column(Integer, nullable=False, default=0)
    device_type = Column(String(40), nullable=True)
    browser_info = Column(String(400), nullable=True)

    __table_args__ = (Index("ix_reading_sessions_user_book", "user_id", "book_id"),)

    @property
    def is_active(self) -> bool:
        return self.session_end is None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "book_id": self.book_id,
            "session_start": self.session_start.isoformat() if self.session_start else None,
            "session_end": self.session_end.isoformat() if self.session_end else None,
            "total_duration": self.total_duration,
            "pages_visited": list(self.pages_visited or []),
            "interactions_count": self.interactions_count,
            "cues_collected": self.cues_collected,
            "device_type": self.device_type,
        }


class PageEngagement(Base):
    """A single page visit inside a reading session."""

    __tablename__ = "page_engagements"

    id = Column(String(60), primary_key=True)
    session_id = Column(String(60), ForeignKey("reading_sessions.id", ondelete="SET NULL"), nullable=True, index=True)
    user_id = Column(String(40), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    page_number = Column(Integer, nullable=False)
    chapter_id = Column(String(60), nullable=True)
    page_type = Column(String(20), nullable=False, default="story")
    navigation_source = Column(String(30), nullable=True)
    time_on_page = Column(Float, nullable=False, default=0)
    actual_engagement_time = Column(Float, nullable=False, default=0)
    interactions = Column(JSON, nullable=False, default=list)
    cue_interactions = Column(JSON, nullable=False, default=list)
    print_clicks = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
