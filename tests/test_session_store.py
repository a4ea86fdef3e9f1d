"""
Tests for the in-memory MCP session store.
"""
import uuid

from mcp_http_servers.sessions import SessionStore


class TestSessionStore:

    def test_create_mints_unique_ids(self, session_store):
        ids = {session_store.create().session_id for _ in range(50)}

        assert len(ids) == 50
        assert len(session_store) == 50

    def test_new_session_is_not_initialized(self, session_store):
        session = session_store.create()
        assert session.initialized is False
        assert session.session_id in session_store

    def test_create_with_known_id_returns_existing(self, session_store):
        session = session_store.create()
        assert session_store.create(session.session_id) is session
        assert len(session_store) == 1

    def test_create_adopts_client_id(self, session_store):
        session = session_store.create("client-chosen")
        assert session.session_id == "client-chosen"
        assert session_store.get("client-chosen") is session

    def test_mark_initialized(self, session_store):
        session = session_store.create()
        session_store.mark_initialized(session.session_id)
        assert session_store.get(session.session_id).initialized is True

    def test_mark_initialized_creates_missing_session(self, session_store):
        session = session_store.mark_initialized("abc")
        assert session.initialized is True
        assert "abc" in session_store

    def test_touch_updates_last_activity(self, session_store):
        session = session_store.create()
        session.last_activity = 0.0

        assert session_store.touch(session.session_id) is session
        assert session.last_activity > 0.0

    def test_touch_unknown_session(self, session_store):
        assert session_store.touch("missing") is None
        assert len(session_store) == 0

    def test_prune_idle(self, session_store):
        stale = session_store.create()
        fresh = session_store.create()
        stale.last_activity = 0.0

        assert session_store.prune_idle(60) == 1
        assert stale.session_id not in session_store
        assert fresh.session_id in session_store

    def test_pruned_id_is_never_minted_again(self, monkeypatch):
        store = SessionStore()
        first = uuid.UUID(int=1)
        second = uuid.UUID(int=2)
        values = iter([first, first, second])
        monkeypatch.setattr("mcp_http_servers.sessions.uuid.uuid4", lambda: next(values))

        session = store.create()
        session.last_activity = 0.0
        store.prune_idle(1)

        assert session.session_id == first.hex
        assert store.create().session_id == second.hex
