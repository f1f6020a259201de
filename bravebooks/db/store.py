# bravebooks/db/store.py
"""
Data access used by every service.

Services never touch the SQLAlchemy session directly; they go through a
Store so the persistence layer stays swappable and easy to fake in tests.
"""
from __future__ import annotations

from typing import Optional

from fastapi import Depends
from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from bravebooks.db.session import get_db
from bravebooks.models import (
    Book,
    BookAccessToken,
    Bookmark,
    PageEngagement,
    PasswordReset,
    Purchase,
    ReadingProgress,
    ReadingSession,
    User,
    UserAnalytics,
)


class Store:
    def __init__(self, db: Session) -> None:
        self.db = db

    # ========= users =========
    def get_user(self, user_id: str) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        email_norm = (email or "").strip().lower()
        return self.db.query(User).filter(User.email == email_norm).first()

    def add_user(self, user: User) -> User:
        self.db.add(user)
        self.db.flush()
        return user

    def list_users(self) -> list[User]:
        return self.db.query(User).order_by(User.created_at).all()

    def count_users(self) -> int:
        return self.db.query(func.count(User.id)).scalar() or 0

    # ========= password resets =========
    def add_password_reset(self, reset: PasswordReset) -> PasswordReset:
        self.db.add(reset)
        return reset

    def get_password_reset(self, token: str) -> Optional[PasswordReset]:
        return self.db.query(PasswordReset).filter(PasswordReset.token == token).first()

    def invalidate_password_resets(self, user_id: str) -> None:
        self.db.query(PasswordReset).filter(
            PasswordReset.user_id == user_id,
            PasswordReset.used.is_(False),
        ).update({PasswordReset.used: True}, synchronize_session=False)

    # ========= books / purchases =========
    def get_book(self, book_id: str) -> Optional[Book]:
        return self.db.get(Book, book_id)

    def add_book(self, book: Book) -> Book:
        self.db.add(book)
        return book

    def list_books(self, active_only: bool = True) -> list[Book]:
        q = self.db.query(Book)
        if active_only:
            q = q.filter(Book.is_active.is_(True))
        return q.order_by(Book.created_at).all()

    def get_purchase(self, user_id: str, book_id: str) -> Optional[Purchase]:
        return (
            self.db.query(Purchase)
            .filter(Purchase.user_id == user_id, Purchase.book_id == book_id)
            .first()
        )

    def add_purchase(self, purchase: Purchase) -> Purchase:
        self.db.add(purchase)
        return purchase

    def count_purchases(self) -> int:
        return self.db.query(func.count(Purchase.id)).filter(Purchase.status == "completed").scalar() or 0

    # ========= book access tokens =========
    def get_book_token(self, user_id: str, book_id: str) -> Optional[BookAccessToken]:
        return (
            self.db.query(BookAccessToken)
            .filter(BookAccessToken.user_id == user_id, BookAccessToken.book_id == book_id)
            .first()
        )

    def put_book_token(self, token: BookAccessToken) -> BookAccessToken:
        self.db.add(token)
        self.db.flush()
        return token

    # ========= progress =========
    def get_progress(self, user_id: str, book_id: str) -> Optional[ReadingProgress]:
        return (
            self.db.query(ReadingProgress)
            .filter(ReadingProgress.user_id == user_id, ReadingProgress.book_id == book_id)
            .first()
        )

    def put_progress(self, progress: ReadingProgress) -> ReadingProgress:
        self.db.add(progress)
        return progress

    def list_progress(self, user_id: str) -> list[ReadingProgress]:
        return self.db.query(ReadingProgress).filter(ReadingProgress.user_id == user_id).all()

    # ========= bookmarks =========
    def list_bookmarks(self, user_id: str, book_id: str) -> list[Bookmark]:
        return (
            self.db.query(Bookmark)
            .filter(Bookmark.user_id == user_id, Bookmark.book_id == book_id)
            .order_by(Bookmark.page, Bookmark.created_at)
            .all()
        )

    def get_bookmark(self, bookmark_id: str) -> Optional[Bookmark]:
        return self.db.get(Bookmark, bookmark_id)

    def add_bookmark(self, bookmark: Bookmark) -> Bookmark:
        self.db.add(bookmark)
        return bookmark

    def delete_bookmark(self, bookmark: Bookmark) -> None:
        self.db.delete(bookmark)

    def replace_bookmarks(self, user_id: str, book_id: str, bookmarks: list[Bookmark]) -> None:
        for old in self.list_bookmarks(user_id, book_id):
            self.db.delete(old)
        # deletes go out before the replacement inserts
        self.db.flush()
        self.db.add_all(bookmarks)

    # ========= reading sessions =========
    def get_session(self, session_id: str) -> Optional[ReadingSession]:
        return self.db.get(ReadingSession, session_id)

    def get_active_session(self, user_id: str, book_id: str) -> Optional[ReadingSession]:
        return (
            self.db.query(ReadingSession)
            .filter(
                ReadingSession.user_id == user_id,
                ReadingSession.book_id == book_id,
                ReadingSession.session_end.is_(None),
            )
            .order_by(desc(ReadingSession.session_start))
            .first()
        )

    def add_session(self, session: ReadingSession) -> ReadingSession:
        self.db.add(session)
        self.db.flush()
        return session

    def list_sessions(self, user_id: str, limit: Optional[int] = None) -> list[ReadingSession]:
        q = (
            self.db.query(ReadingSession)
            .filter(ReadingSession.user_id == user_id)
            .order_by(desc(ReadingSession.session_start))
        )
        if limit:
            q = q.limit(limit)
        return q.all()

    def count_sessions(self) -> int:
        return self.db.query(func.count(ReadingSession.id)).scalar() or 0

    # ========= page engagements =========
    def add_page_engagement(self, engagement: PageEngagement) -> PageEngagement:
        self.db.add(engagement)
        return engagement

    def list_page_engagements(self, user_id: Optional[str] = None) -> list[PageEngagement]:
        q = self.db.query(PageEngagement)
        if user_id:
            q = q.filter(PageEngagement.user_id == user_id)
        return q.order_by(PageEngagement.created_at).all()

    def list_session_engagements(self, session_id: str) -> list[PageEngagement]:
        return (
            self.db.query(PageEngagement)
            .filter(PageEngagement.session_id == session_id)
            .order_by(PageEngagement.created_at)
            .all()
        )

    # ========= analytics =========
    def get_analytics(self, user_id: str) -> Optional[UserAnalytics]:
        return self.db.get(UserAnalytics, user_id)

    def put_analytics(self, analytics: UserAnalytics) -> UserAnalytics:
        self.db.add(analytics)
        return analytics

    def list_analytics(self) -> list[UserAnalytics]:
        return self.db.query(UserAnalytics).all()

    def delete_analytics(self, user_id: str) -> bool:
        """Admin wipe: the profile, the user's sessions and page engagements."""
        row = self.get_analytics(user_id)
        self.db.query(PageEngagement).filter(PageEngagement.user_id == user_id).delete(synchronize_session=False)
        self.db.query(ReadingSession).filter(ReadingSession.user_id == user_id).delete(synchronize_session=False)
        if row is not None:
            self.db.delete(row)
        return row is not None

    # ========= transaction =========
    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()


def get_store(db: Session = Depends(get_db)) -> Store:
    # get_db closes the session, which rolls back anything left uncommitted
    return Store(db)
