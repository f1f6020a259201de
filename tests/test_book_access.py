import datetime as dt
from urllib.parse import parse_qs, urlparse

import pytest

from bravebooks.config import settings
from bravebooks.db.base import utcnow
from bravebooks.errors import NotFoundError, PermissionDenied
from bravebooks.models.book import Book, Purchase
from bravebooks.services import book_access
from bravebooks.services.entitlement import is_entitled
from bravebooks.utils.tokens import verify_book_token

from tests.conftest import make_user

PLATFORM = "https://books.test"


def _premium_book(store, book_id="dragons"):
    book = store.add_book(
        Book(id=book_id, title="Dragons", external_url="https://reader.test/dragons", price_cents=499)
    )
    store.commit()
    return book


def test_token_is_reused_until_expiry(store):
    user = make_user(store)
    first = book_access.generate_or_reuse_token(store, user.id, "wtbtg", platform_url=PLATFORM)
    used_1 = store.get_book_token(user.id, "wtbtg").last_used_at

    second = book_access.generate_or_reuse_token(store, user.id, "wtbtg", platform_url=PLATFORM)
    used_2 = store.get_book_token(user.id, "wtbtg").last_used_at

    assert not first.reused
    assert second.reused
    assert second.token == first.token
    assert used_2 > used_1


def test_first_request_stores_a_complete_row(store):
    user = make_user(store)
    assert store.get_book_token(user.id, "wtbtg") is None

    grant = book_access.generate_or_reuse_token(store, user.id, "wtbtg", platform_url=PLATFORM)

    row = store.get_book_token(user.id, "wtbtg")
    assert row.id == f"{user.id}-wtbtg"
    assert row.token == grant.token
    assert row.created_at == row.last_used_at
    assert row.expires_at is None


def test_expired_token_is_replaced(store):
    settings.BOOK_ACCESS_TOKEN_EXPIRY_DAYS = 1
    user = make_user(store)
    first = book_access.generate_or_reuse_token(store, user.id, "wtbtg", platform_url=PLATFORM)
    assert first.expires_at is not None

    row = store.get_book_token(user.id, "wtbtg")
    row.expires_at = utcnow() - dt.timedelta(seconds=1)
    store.commit()

    second = book_access.generate_or_reuse_token(store, user.id, "wtbtg", platform_url=PLATFORM)
    assert not second.reused
    assert second.token != first.token
    assert store.get_book_token(user.id, "wtbtg").token == second.token


def test_never_expiring_token(store):
    user = make_user(store)
    grant = book_access.generate_or_reuse_token(store, user.id, "wtbtg", platform_url=PLATFORM)
    assert grant.expires_at is None
    assert store.get_book_token(user.id, "wtbtg").expires_at is None
    claims = verify_book_token(grant.token)
    assert "exp" not in claims
    assert claims["purchaseId"] == f"{user.id}-wtbtg"


def test_book_url_carries_token_and_return_link(store):
    user = make_user(store)
    grant = book_access.generate_or_reuse_token(store, user.id, "wtbtg", platform_url=PLATFORM)
    url = urlparse(grant.book_url)
    query = parse_qs(url.query)
    assert f"{url.scheme}://{url.netloc}{url.path}" == f"{PLATFORM}/book/wtbtg"
    assert query["token"] == [grant.token]
    assert query["platform"] == ["brave-things-books"]
    assert query["returnUrl"] == [f"{PLATFORM}/library"]
    assert query["returnLabel"] == ["Back to Library"]


def test_free_book_entitlement_writes_nothing(store):
    user = make_user(store)
    assert is_entitled(store, user, store.get_book("wtbtg"))
    book_access.generate_or_reuse_token(store, user.id, "wtbtg", platform_url=PLATFORM)
    assert store.get_purchase(user.id, "wtbtg") is None


def test_paid_book_needs_purchase(store):
    user = make_user(store)
    _premium_book(store)
    with pytest.raises(PermissionDenied):
        book_access.generate_or_reuse_token(store, user.id, "dragons", platform_url=PLATFORM)

    store.add_purchase(Purchase(id=f"{user.id}-dragons", user_id=user.id, book_id="dragons", status="completed"))
    store.commit()
    grant = book_access.generate_or_reuse_token(store, user.id, "dragons", platform_url=PLATFORM)
    assert grant.book_url.startswith("https://reader.test/dragons?token=")


def test_pending_purchase_is_not_entitlement(store):
    user = make_user(store)
    book = _premium_book(store)
    store.add_purchase(Purchase(id=f"{user.id}-dragons", user_id=user.id, book_id="dragons", status="pending"))
    store.commit()
    assert not is_entitled(store, user, book)


def test_unknown_book_or_user(store):
    user = make_user(store)
    with pytest.raises(NotFoundError):
        book_access.generate_or_reuse_token(store, user.id, "nope", platform_url=PLATFORM)
    with pytest.raises(NotFoundError):
        book_access.generate_or_reuse_token(store, "user_missing", "wtbtg", platform_url=PLATFORM)


def test_first_token_starts_a_reading_session(store):
    user = make_user(store)
    book_access.generate_or_reuse_token(store, user.id, "wtbtg", platform_url=PLATFORM)
    book_access.generate_or_reuse_token(store, user.id, "wtbtg", platform_url=PLATFORM)
    assert len(store.list_sessions(user.id)) == 1
    assert store.get_analytics(user.id).total_sessions == 1


def test_validate_checks_book_and_user(store):
    user = make_user(store)
    grant = book_access.generate_or_reuse_token(store, user.id, "wtbtg", platform_url=PLATFORM)

    ok = book_access.validate_book_token(store, grant.token, "wtbtg")
    assert ok["valid"] is True
    assert ok["userId"] == user.id
    assert ok["user"] == {"id": user.id, "name": user.name, "email": user.email}

    assert book_access.validate_book_token(store, grant.token, "other") == {"valid": False}
    assert book_access.validate_book_token(store, "garbage", "wtbtg") == {"valid": False}


def test_validate_enhanced_defaults_and_session(store):
    user = make_user(store)
    grant = book_access.generate_or_reuse_token(store, user.id, "wtbtg", platform_url=PLATFORM)
    result = book_access.validate_enhanced(store, grant.token, "wtbtg", platform_url=PLATFORM)

    assert result["valid"] is True
    assert result["bookmarks"] == []
    assert result["progress"] == {
        "current_page": 1,
        "current_chapter": "Chapter 1",
        "completion_percentage": 0,
        "time_spent": 0,
        "last_read_at": None,
    }
    assert result["analytics_session_id"] == store.get_active_session(user.id, "wtbtg").id
    assert result["return_info"] == {
        "url": f"{PLATFORM}/library",
        "label": "Back to Library",
        "platform": "brave-things-books",
    }
