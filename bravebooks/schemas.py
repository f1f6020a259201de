# bravebooks/schemas.py
from __future__ import annotations

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, EmailStr, Field

PageType = Literal["story", "cue", "activity", "navigation", "other"]
NavigationSource = Literal["toc", "chapter_nav", "spread_nav", "breadcrumb", "home_button", "direct_url", "other"]
BookmarkType = Literal["page_save", "note", "highlight", "interactive_cue", "reading_position"]


# ========= auth =========
class RegisterIn(BaseModel):
    name: str = Field(min_length=2, max_length=120)
    email: EmailStr
    password: str = Field(min_length=1)


class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class ForgotPasswordIn(BaseModel):
    email: EmailStr


class ResetPasswordIn(BaseModel):
    token: str = Field(min_length=1)
    newPassword: str = Field(min_length=1)


# ========= book access =========
class GenerateTokenIn(BaseModel):
    bookId: str = Field(min_length=1)


class ValidateTokenIn(BaseModel):
    token: str
    bookId: str


class UpdateProgressIn(BaseModel):
    token: str
    progress: float = Field(ge=0, le=100)
    currentPage: Optional[int] = Field(default=None, ge=0)
    currentChapter: Optional[str] = None
    # seconds since the last sync; fractions allowed
    timeSpent: float = Field(default=0, ge=0)
    # entries without a numeric page are dropped, not rejected
    bookmarks: Optional[list[Any]] = None


class TokenBookmarksIn(BaseModel):
    token: str


class BookmarkAddFields(BaseModel):
    page: int = Field(ge=0)
    chapter: Optional[str] = None
    note: Optional[str] = None
    bookmark_type: BookmarkType = "page_save"
    metadata: Optional[dict] = None


class TokenBookmarkAddIn(BookmarkAddFields):
    token: str


class BookmarkUpdateFields(BaseModel):
    bookmark_id: str
    note: Optional[str] = None
    bookmark_type: Optional[BookmarkType] = None
    metadata: Optional[dict] = None


class TokenBookmarkUpdateIn(BookmarkUpdateFields):
    token: str


class TokenBookmarkDeleteIn(BaseModel):
    token: str
    bookmark_id: str


class UserBookmarksIn(BaseModel):
    book_id: str


class UserBookmarkAddIn(BookmarkAddFields):
    book_id: str


class UserBookmarkDeleteIn(BaseModel):
    bookmark_id: str


class UserProgressGetIn(BaseModel):
    book_id: str


class UserProgressUpdateIn(BaseModel):
    book_id: str
    current_chapter: Optional[str] = None
    current_spread: Optional[int] = Field(default=None, ge=0)


# ========= analytics =========
class StartSessionIn(BaseModel):
    book_id: str
    session_id: Optional[str] = None
    device_type: Optional[str] = None
    browser_info: Optional[str] = None


class FinalMetrics(BaseModel):
    total_duration: Optional[int] = Field(default=None, ge=0)
    pages_visited: Optional[list[int]] = None
    final_interactions: Optional[int] = Field(default=None, ge=0)
    cues_collected: Optional[int] = Field(default=None, ge=0)


class EndSessionIn(BaseModel):
    session_id: str
    final_metrics: FinalMetrics = FinalMetrics()


class PageData(BaseModel):
    page_number: int = Field(ge=0)
    # the reader sends numeric chapter ids
    chapter_id: Optional[Union[int, str]] = None
    chapter_name: Optional[str] = None
    page_type: PageType = "story"
    navigation_source: NavigationSource = "other"


class TimingData(BaseModel):
    time_on_page: float = Field(default=0, ge=0)
    actual_engagement_time: float = Field(default=0, ge=0)
    time_before_first_interaction: float = Field(default=0, ge=0)
    session_duration_so_far: Optional[float] = Field(default=None, ge=0)


class Interaction(BaseModel):
    type: str
    element: Optional[str] = None
    # ISO-8601 string from the reader, or epoch milliseconds
    timestamp: Optional[Union[str, float]] = None
    position: Optional[dict] = None
    metadata: Optional[dict] = None


class CueInteraction(BaseModel):
    cue_name: str
    cue_icon: Optional[str] = None
    chapter_id: Optional[Union[int, str]] = None
    spread_number: Optional[int] = None
    time_before_click: float = Field(default=0, ge=0)
    click_timestamp: Optional[Union[str, float]] = None
    completion_status: Literal["started", "completed", "abandoned"] = "started"
    # client-side score is informational; the server scores from time_before_click
    engagement_score: Optional[float] = None


class PrintData(BaseModel):
    print_clicks: int = Field(default=0, ge=0)
    print_targets: list[str] = []
    time_on_activity_page: Optional[float] = None


class TrackEnhancedIn(BaseModel):
    user_id: str
    session_id: Optional[str] = None
    page_data: PageData
    timing_data: TimingData = TimingData()
    interactions: list[Interaction] = []
    cue_interactions: list[CueInteraction] = []
    print_data: Optional[PrintData] = None


# ========= admin =========
class SettingsIn(BaseModel):
    authTokenExpiry: Optional[int] = Field(default=None, ge=1, le=30)
    # null = book tokens never expire
    bookAccessTokenExpiry: Optional[int] = Field(default=None, ge=1, le=365)
    maxLoginAttempts: Optional[int] = Field(default=None, ge=3, le=10)
    passwordResetExpiry: Optional[int] = Field(default=None, ge=1, le=24)
    enableEmailNotifications: Optional[bool] = None


class RoleIn(BaseModel):
    role: Literal["user", "admin", "preview"]
