from bravebooks.utils.tokens import issue_book_token

from tests.conftest import bearer, make_user


def _book_token(client, headers, book_id="wtbtg"):
    res = client.post("/book-access/generate-token", json={"bookId": book_id}, headers=headers)
    assert res.status_code == 200, res.text
    return res.json()["token"]


def _progress(client, token, **fields):
    body = {"token": token, "progress": 10}
    body.update(fields)
    return client.post("/book-access/update-progress", json=body)


def test_time_spent_accumulates(client, store):
    headers = bearer(make_user(store))
    token = _book_token(client, headers)

    assert _progress(client, token, timeSpent=30).status_code == 200
    res = _progress(client, token, progress=25, currentPage=6, currentChapter="Chapter 2", timeSpent=45)
    assert res.status_code == 200
    saved = res.json()["progress"]
    assert saved["timeSpent"] == 75
    assert saved["progress"] == 25
    assert saved["currentPage"] == 6
    assert saved["currentChapter"] == "Chapter 2"


def test_fractional_seconds_are_kept(client, store):
    user = make_user(store)
    token = _book_token(client, bearer(user))

    assert _progress(client, token, timeSpent=30.5).status_code == 200
    res = _progress(client, token, timeSpent=0.25)
    assert res.status_code == 200
    assert res.json()["progress"]["timeSpent"] == 30.75
    assert store.get_analytics(user.id).total_reading_time == 30.75


def test_progress_out_of_range_is_rejected(client, store):
    token = _book_token(client, bearer(make_user(store)))
    res = _progress(client, token, progress=150)
    assert res.status_code == 400
    assert res.json()["success"] is False


def test_progress_requires_permission(client, store):
    user = make_user(store)
    read_only, _ = issue_book_token(user.id, "wtbtg", f"{user.id}-wtbtg", expiry_days=None, permissions=["read"])
    res = _progress(client, read_only, timeSpent=10)
    assert res.status_code == 403
    assert res.json() == {"success": False, "error": "Insufficient permissions"}


def test_progress_with_bad_token(client):
    res = _progress(client, "garbage")
    assert res.status_code == 401


def test_bookmark_list_is_replaced_wholesale(client, store):
    token = _book_token(client, bearer(make_user(store)))
    _progress(client, token, bookmarks=[{"page": 3, "note": "dragon"}, {"page": 9}])

    res = _progress(
        client,
        token,
        bookmarks=[{"page": 12, "bookmark_type": "highlight"}, {"note": "no page"}, {"page": "7"}, "junk"],
    )
    marks = res.json()["progress"]["bookmarks"]
    assert [(m["page"], m["bookmark_type"]) for m in marks] == [(12, "highlight")]

    # omitted list keeps what is stored
    res = _progress(client, token, timeSpent=5)
    assert [m["page"] for m in res.json()["progress"]["bookmarks"]] == [12]


def test_token_bookmark_crud(client, store):
    token = _book_token(client, bearer(make_user(store)))

    res = client.post(
        "/book-access/bookmarks/add",
        json={"token": token, "page": 14, "chapter": "Chapter 3", "note": "favourite", "bookmark_type": "note"},
    )
    assert res.status_code == 200
    bookmark_id = res.json()["bookmark"]["id"]

    res = client.post(
        "/book-access/bookmarks/update",
        json={"token": token, "bookmark_id": bookmark_id, "note": "still favourite"},
    )
    assert res.json()["bookmark"]["note"] == "still favourite"
    assert res.json()["bookmark"]["updated_at"] is not None

    res = client.post("/book-access/bookmarks/get", json={"token": token})
    assert [b["id"] for b in res.json()["bookmarks"]] == [bookmark_id]

    res = client.post("/book-access/bookmarks/delete", json={"token": token, "bookmark_id": bookmark_id})
    assert res.status_code == 200
    assert client.post("/book-access/bookmarks/get", json={"token": token}).json()["bookmarks"] == []


def test_bookmark_endpoints_need_bookmark_permission(client, store):
    user = make_user(store)
    token, _ = issue_book_token(user.id, "wtbtg", f"{user.id}-wtbtg", expiry_days=None, permissions=["read", "progress"])
    res = client.post("/book-access/bookmarks/add", json={"token": token, "page": 1})
    assert res.status_code == 403


def test_cannot_touch_someone_elses_bookmark(client, store):
    alice = bearer(make_user(store, "alice@example.com"))
    bob = bearer(make_user(store, "bob@example.com"))

    res = client.post("/book-access/user-bookmarks/add", json={"book_id": "wtbtg", "page": 2}, headers=alice)
    bookmark_id = res.json()["bookmark"]["id"]

    upd = client.post(
        "/book-access/user-bookmarks/update",
        json={"bookmark_id": bookmark_id, "note": "mine now"},
        headers=bob,
    )
    assert upd.status_code == 404
    assert upd.json() == {"success": False, "error": "Bookmark not found or access denied"}

    dele = client.post("/book-access/user-bookmarks/delete", json={"bookmark_id": bookmark_id}, headers=bob)
    assert dele.status_code == 404

    mine = client.post("/book-access/user-bookmarks/get", json={"book_id": "wtbtg"}, headers=alice).json()
    assert mine["bookmarks"][0]["note"] is None


def test_user_progress_endpoints(client, store):
    headers = bearer(make_user(store))
    res = client.post("/book-access/user-progress/get", json={"book_id": "wtbtg"}, headers=headers)
    assert res.json()["progress"]["current_chapter"] == "Chapter 1"
    assert res.json()["progress"]["current_spread"] == 1

    res = client.post(
        "/book-access/user-progress/update",
        json={"book_id": "wtbtg", "current_chapter": "Chapter 4", "current_spread": 22},
        headers=headers,
    )
    assert res.status_code == 200
    assert res.json()["progress"]["current_spread"] == 22

    res = client.post(
        "/book-access/user-progress/update", json={"book_id": "nope", "current_spread": 2}, headers=headers
    )
    assert res.status_code == 404
