# bravebooks/db/seed.py
import logging

from bravebooks.config import settings
from bravebooks.db.base import new_id
from bravebooks.db.store import Store
from bravebooks.models.book import Book
from bravebooks.models.user import User
from bravebooks.utils.security import hash_password

logger = logging.getLogger(__name__)


def seed_free_book(store: Store) -> Book:
    book = store.get_book(settings.FREE_BOOK_ID)
    if book is None:
        book = store.add_book(
            Book(
                id=settings.FREE_BOOK_ID,
                title="Where the Brave Things Grow",
                author="Brave Things Lab Team",
                description="An interactive story about courage, growth and the magic of trying new things.",
                cover_image="/images/wtbtg-cover.jpg",
                external_url=settings.FREE_BOOK_URL,
                price_cents=0,
                is_active=True,
            )
        )
        logger.info("Seeded free book %s", book.id)
    return book


def seed_admin(store: Store) -> User | None:
    """Create (or promote) the admin from ADMIN_EMAIL / ADMIN_PASSWORD when both are set."""
    if not (settings.ADMIN_EMAIL and settings.ADMIN_PASSWORD):
        return None
    user = store.get_user_by_email(settings.ADMIN_EMAIL)
    if user is None:
        user = store.add_user(
            User(
                id=new_id("user"),
                email=settings.ADMIN_EMAIL,
                password_hash=hash_password(settings.ADMIN_PASSWORD),
                name=settings.ADMIN_NAME,
                subscription_status="premium",
                role="admin",
            )
        )
        logger.info("Seeded admin user %s", user.email)
    elif user.role != "admin":
        user.role = "admin"
        logger.info("Promoted %s to admin", user.email)
    return user


def seed(store: Store) -> None:
    seed_free_book(store)
    seed_admin(store)
    store.commit()
