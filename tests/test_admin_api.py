from bravebooks.config import settings

from tests.conftest import bearer, make_user


def test_admin_routes_need_admin_role(client, store):
    user = bearer(make_user(store))
    for path in ("/admin/dashboard", "/admin/users", "/admin/settings"):
        assert client.get(path).status_code == 401
        res = client.get(path, headers=user)
        assert res.status_code == 403
        assert res.json() == {"success": False, "error": "Admin access required"}


def test_dashboard_and_users(client, store):
    admin = make_user(store, "admin@example.com", role="admin", name="Marie Johnson")
    make_user(store, "reader@example.com")
    res = client.get("/admin/dashboard", headers=bearer(admin))
    assert res.status_code == 200
    stats = res.json()["stats"]
    assert stats["total_users"] == 2
    assert stats["admin_users"] == 1
    assert stats["total_books"] == 1

    users = client.get("/admin/users", headers=bearer(admin)).json()["users"]
    assert {u["email"] for u in users} == {"admin@example.com", "reader@example.com"}
    assert all(u["total_reading_time"] == 0 for u in users)


def test_settings_update_and_bounds(client, store):
    headers = bearer(make_user(store, "admin@example.com", role="admin"))

    current = client.get("/admin/settings", headers=headers).json()["settings"]
    assert current["authTokenExpiry"] == 7
    assert current["bookAccessTokenExpiry"] is None
    assert current["maxLoginAttempts"] == 5

    res = client.post(
        "/admin/settings",
        json={"bookAccessTokenExpiry": 30, "maxLoginAttempts": 3},
        headers=headers,
    )
    assert res.status_code == 200
    assert res.json()["settings"]["bookAccessTokenExpiry"] == 30
    assert settings.BOOK_ACCESS_TOKEN_EXPIRY_DAYS == 30
    assert settings.MAX_LOGIN_ATTEMPTS == 3
    assert settings.AUTH_TOKEN_EXPIRY_DAYS == 7

    res = client.post("/admin/settings", json={"bookAccessTokenExpiry": None}, headers=headers)
    assert res.json()["settings"]["bookAccessTokenExpiry"] is None

    for bad in ({"authTokenExpiry": 31}, {"maxLoginAttempts": 2}, {"passwordResetExpiry": 0}, {"bookAccessTokenExpiry": 0}):
        assert client.post("/admin/settings", json=bad, headers=headers).status_code == 400


def test_login_limit_follows_settings(client, store):
    headers = bearer(make_user(store, "admin@example.com", role="admin"))
    make_user(store, "reader@example.com")
    client.post("/admin/settings", json={"maxLoginAttempts": 3}, headers=headers)

    for _ in range(3):
        res = client.post("/auth/login", json={"email": "reader@example.com", "password": "Wrong1234"})
        assert res.status_code == 401
    res = client.post("/auth/login", json={"email": "reader@example.com", "password": "Wrong1234"})
    assert res.status_code == 429


def test_role_change(client, store):
    admin = bearer(make_user(store, "admin@example.com", role="admin"))
    reader = make_user(store, "reader@example.com")
    res = client.post(f"/admin/users/{reader.id}/role", json={"role": "preview"}, headers=admin)
    assert res.status_code == 200
    assert res.json()["user"]["role"] == "preview"

    assert client.post("/admin/users/user_missing/role", json={"role": "user"}, headers=admin).status_code == 404


def test_user_analytics_wipe(client, store):
    admin = bearer(make_user(store, "admin@example.com", role="admin"))
    reader = make_user(store, "reader@example.com")
    client.post("/book-access/generate-token", json={"bookId": "wtbtg"}, headers=bearer(reader))

    res = client.get(f"/admin/user-analytics/{reader.id}", headers=admin)
    assert res.json()["analytics"]["overview"]["total_sessions"] == 1

    res = client.delete(f"/admin/user-analytics/{reader.id}", headers=admin)
    assert res.json() == {"success": True, "wiped": True}

    res = client.get(f"/admin/user-analytics/{reader.id}", headers=admin)
    overview = res.json()["analytics"]["overview"]
    assert overview["total_sessions"] == 0
    assert overview["engagement_score"] == 50
    assert res.json()["analytics"]["recent_sessions"] == []
