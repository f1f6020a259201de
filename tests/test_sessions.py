from bravebooks.services import sessions

from tests.conftest import make_user


def test_start_is_idempotent(store):
    user = make_user(store)
    first, created_1 = sessions.start_session(store, user.id, "wtbtg")
    second, created_2 = sessions.start_session(store, user.id, "wtbtg")
    assert created_1 and not created_2
    assert first.id == second.id
    assert len(store.list_sessions(user.id)) == 1
    assert store.get_analytics(user.id).total_sessions == 1


def test_client_supplied_session_id_is_kept(store):
    user = make_user(store)
    session, _ = sessions.start_session(store, user.id, "wtbtg", session_id="session_from_reader")
    assert session.id == "session_from_reader"


def test_end_then_start_creates_new_session(store):
    user = make_user(store)
    first, _ = sessions.start_session(store, user.id, "wtbtg")
    ended = sessions.end_session(
        store,
        user.id,
        first.id,
        {"total_duration": 300, "pages_visited": [1, 2, 3], "final_interactions": 12, "cues_collected": 2},
    )
    assert ended is not None
    assert ended.session_end is not None
    assert ended.total_duration == 300
    assert ended.pages_visited == [1, 2, 3]
    assert ended.interactions_count == 12

    second, created = sessions.start_session(store, user.id, "wtbtg")
    assert created
    assert second.id != first.id


def test_ending_someone_elses_session_is_a_noop(store, caplog):
    owner = make_user(store, "owner@example.com")
    other = make_user(store, "other@example.com")
    session, _ = sessions.start_session(store, owner.id, "wtbtg")

    assert sessions.end_session(store, other.id, session.id, {"total_duration": 5}) is None
    assert sessions.end_session(store, owner.id, "session_unknown") is None
    assert store.get_session(session.id).is_active
    assert "end-session ignored" in caplog.text


def test_progress_sync_updates_active_session_in_place(store):
    user = make_user(store)
    session, _ = sessions.start_session(store, user.id, "wtbtg")
    sessions.sync_progress(store, user.id, "wtbtg", page=4, time_spent=30)
    sessions.sync_progress(store, user.id, "wtbtg", page=4, time_spent=15)
    sessions.sync_progress(store, user.id, "wtbtg", page=5, time_spent=10)
    store.commit()

    row = store.get_session(session.id)
    assert row.total_duration == 55
    assert row.pages_visited == [4, 5]
    assert row.interactions_count == 3
    assert len(store.list_sessions(user.id)) == 1
    assert len(store.list_session_engagements(session.id)) == 3
