# bravebooks/models/user_analytics.py
from sqlalchemy import Column, String, Integer, Float, DateTime, JSON, ForeignKey

from bravebooks.db.base import Base

# JSON columns hold nested aggregates. Always assign a new dict, never mutate
# in place, so the ORM sees the change.
JSON_FIELDS = (
    "interaction_patterns",
    "page_type_metrics",
    "cue_engagement",
    "navigation_patterns",
    "print_activity_engagement",
)
SCALAR_FIELDS = (
    "total_sessions",
    "total_reading_time",
    "average_session_duration",
    "pages_read",
    "completion_rate",
    "engagement_score",
)


class UserAnalytics(Base):
    __tablename__ = "user_analytics"

    user_id = Column(String(40), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    total_sessions = Column(Integer, nullable=False, default=0)
    total_reading_time = Column(Float, nullable=False, default=0)
    average_session_duration = Column(Float, nullable=False, default=0)
    pages_read = Column(Integer, nullable=False, default=0)
    completion_rate = Column(Integer, nullable=False, default=0)
    engagement_score = Column(Float, nullable=False, default=50)

    interaction_patterns = Column(JSON, nullable=False, default=dict)
    page_type_metrics = Column(JSON, nullable=False, default=dict)
    cue_engagement = Column(JSON, nullable=False, default=dict)
    navigation_patterns = Column(JSON, nullable=False, default=dict)
    print_activity_engagement = Column(JSON, nullable=False, default=dict)

    last_calculated = Column(DateTime, nullable=True)

    def to_profile(self) -> dict:
        profile = {"user_id": self.user_id, "last_calculated": self.last_calculated}
        for name in SCALAR_FIELDS + JSON_FIELDS:
            profile[name] = getattr(self, name)
        return profile

    def apply_profile(self, profile: dict) -> None:
        for name in SCALAR_FIELDS + JSON_FIELDS:
            setattr(self, name, profile[name])
        self.last_calculated = profile.get("last_calculated")
