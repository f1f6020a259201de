# bravebooks/services/entitlement.py
"""
Who may read which book.

Entitlement is a policy evaluated per request: a completed purchase, or the
book being free. Nothing is written; the free book never needs a purchase row.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from bravebooks.config import settings
from bravebooks.db.store import Store
from bravebooks.errors import PermissionDenied
from bravebooks.models.book import Book
from bravebooks.models.user import User


@dataclass(frozen=True)
class Entitlement:
    purchase_id: str
    access_type: str  # free | purchased


def purchase_id_for(user_id: str, book_id: str) -> str:
    return f"{user_id}-{book_id}"


def _is_free(book: Book) -> bool:
    return book.id == settings.FREE_BOOK_ID or book.is_free


def resolve_entitlement(store: Store, user: User, book: Book) -> Optional[Entitlement]:
    purchase = store.get_purchase(user.id, book.id)
    if purchase is not None and purchase.status == "completed":
        return Entitlement(purchase_id=purchase.id, access_type=purchase.access_type)
    if _is_free(book):
        return Entitlement(purchase_id=purchase_id_for(user.id, book.id), access_type="free")
    return None


def is_entitled(store: Store, user: User, book: Book) -> bool:
    return resolve_entitlement(store, user, book) is not None


def require_entitlement(store: Store, user: User, book: Book) -> Entitlement:
    ent = resolve_entitlement(store, user, book)
    if ent is None:
        raise PermissionDenied("Book not purchased")
    return ent


def library_for(store: Store, user: User) -> list[Book]:
    """Active books the user may open, in catalogue order."""
    return [b for b in store.list_books() if is_entitled(store, user, b)]
