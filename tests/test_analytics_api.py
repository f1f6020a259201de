from tests.conftest import bearer, make_user


def _event(user_id, session_id, **overrides):
    event = {
        "user_id": user_id,
        "session_id": session_id,
        "page_data": {
            "page_number": 8,
            "chapter_id": 2,
            "chapter_name": "Rainbow Tail",
            "page_type": "cue",
            "navigation_source": "spread_nav",
        },
        "timing_data": {
            "time_on_page": 40,
            "actual_engagement_time": 35,
            "time_before_first_interaction": 3,
            "session_duration_so_far": 120,
        },
        "interactions": [
            {"type": "click", "element": "cue", "timestamp": "2025-01-01T00:00:00.000Z"},
            {"type": "click", "element": "next", "timestamp": "2025-01-01T00:00:05.000Z"},
        ],
        "cue_interactions": [
            {
                "cue_name": "Rainbow Tail",
                "cue_icon": "rainbow",
                "chapter_id": 2,
                "spread_number": 8,
                "time_before_click": 12,
                "click_timestamp": "2025-01-01T00:00:03.000Z",
                "completion_status": "completed",
                "engagement_score": 80,
            }
        ],
        "print_data": None,
    }
    event.update(overrides)
    return event


def _start(client, headers, **extra):
    body = {"book_id": "wtbtg", "device_type": "tablet"}
    body.update(extra)
    return client.post("/book-access/analytics/start-session", json=body, headers=headers)


def test_start_session_is_idempotent(client, store):
    headers = bearer(make_user(store))
    first = _start(client, headers).json()
    second = _start(client, headers, session_id="session_client_side").json()
    assert first["created"] is True
    assert second["created"] is False
    assert first["session_id"] == second["session_id"]


def test_track_enhanced(client, store):
    user = make_user(store)
    headers = bearer(user)
    session_id = _start(client, headers).json()["session_id"]

    res = client.post("/book-access/analytics/track-enhanced", json=_event(user.id, session_id), headers=headers)
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["success"] is True
    assert body["analytics_processed"] is True
    assert body["session_id"] == session_id
    assert body["page_engagement_id"].startswith("engagement_")
    assert body["analytics_summary"] == {
        "total_pages_this_session": 1,
        "total_interactions_this_session": 2,
        "cues_completed_this_session": 1,
        "print_clicks_this_session": 0,
        "current_engagement_score": 14,
    }

    res = client.post("/book-access/analytics/track-enhanced", json=_event(user.id, session_id), headers=headers)
    assert res.json()["analytics_summary"]["total_pages_this_session"] == 2

    analytics = client.get(f"/book-access/analytics/user/{user.id}", headers=headers).json()["analytics"]
    assert analytics["overview"]["pages_read"] == 2
    assert analytics["overview"]["total_sessions"] == 1
    assert analytics["overview"]["engagement_score"] == 80
    assert analytics["profile"]["cue_engagement"]["completion_rate"] == 100
    assert analytics["profile"]["page_type_metrics"]["cue_pages"] == {"count": 2, "average_time": 35}
    assert analytics["recent_sessions"][0]["pages_visited"] == [8]
    assert analytics["recent_sessions"][0]["cues_collected"] == 2
    assert analytics["page_analytics"][0]["page_number"] == 8
    assert analytics["page_analytics"][0]["visits"] == 2
    assert {e.chapter_id for e in store.list_page_engagements(user.id)} == {"2"}


def test_track_enhanced_accepts_epoch_timestamps_and_named_chapters(client, store):
    user = make_user(store)
    event = _event(user.id, None)
    event["page_data"]["chapter_id"] = "chapter-2"
    event["interactions"] = [{"type": "click", "element": "cue", "timestamp": 1735689600000}]
    event["cue_interactions"][0]["click_timestamp"] = 1735689603000.5

    res = client.post("/book-access/analytics/track-enhanced", json=event, headers=bearer(user))
    assert res.status_code == 200, res.text
    assert [e.chapter_id for e in store.list_page_engagements(user.id)] == ["chapter-2"]


def test_track_enhanced_rejects_other_user(client, store):
    user = make_user(store)
    res = client.post(
        "/book-access/analytics/track-enhanced",
        json=_event("user_someone_else", None),
        headers=bearer(user),
    )
    assert res.status_code == 403


def test_track_enhanced_requires_login(client):
    res = client.post("/book-access/analytics/track-enhanced", json=_event("user_x", None))
    assert res.status_code == 401


def test_track_enhanced_validates_page_type(client, store):
    user = make_user(store)
    bad = _event(user.id, None)
    bad["page_data"]["page_type"] = "poster"
    res = client.post("/book-access/analytics/track-enhanced", json=bad, headers=bearer(user))
    assert res.status_code == 400


def test_end_session(client, store):
    user = make_user(store)
    headers = bearer(user)
    session_id = _start(client, headers).json()["session_id"]

    res = client.post(
        "/book-access/analytics/end-session",
        json={
            "session_id": session_id,
            "final_metrics": {"total_duration": 600, "pages_visited": [1, 2], "final_interactions": 9},
        },
        headers=headers,
    )
    assert res.json() == {"success": True, "session_id": session_id, "ended": True}

    # ending twice, or someone else's session, is not an error
    again = client.post("/book-access/analytics/end-session", json={"session_id": session_id}, headers=headers)
    assert again.status_code == 200
    assert again.json()["ended"] is False

    assert _start(client, headers).json()["session_id"] != session_id


def test_user_analytics_is_private(client, store):
    alice = make_user(store, "alice@example.com")
    bob = make_user(store, "bob@example.com")
    res = client.get(f"/book-access/analytics/user/{alice.id}", headers=bearer(bob))
    assert res.status_code == 403


def test_summaries_are_admin_only(client, store):
    user = make_user(store)
    admin = make_user(store, "admin@example.com", role="admin")
    headers = bearer(user)
    session_id = _start(client, headers).json()["session_id"]
    client.post("/book-access/analytics/track-enhanced", json=_event(user.id, session_id), headers=headers)

    assert client.get("/book-access/analytics/summary", headers=headers).status_code == 403

    summary = client.get("/book-access/analytics/summary", headers=bearer(admin)).json()["summary"]
    assert summary["total_users"] == 1
    assert summary["total_sessions"] == 1
    assert summary["active_users_7d"] == 1

    enhanced = client.get("/book-access/analytics/enhanced-summary", headers=bearer(admin)).json()["summary"]
    rainbow = next(c for c in enhanced["cue_analytics"] if c["cue_name"] == "Rainbow Tail")
    assert rainbow == {"cue_name": "Rainbow Tail", "chapter": 2, "encounters": 1, "completions": 1, "completion_rate": 100}
    assert enhanced["navigation_insights"]["sources"] == {"spread_nav": 1}


def test_health(client):
    res = client.get("/book-access/health")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"
