"""
Unit tests for the session manager.
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from askai.core.exceptions import NotFoundError, PersistenceError
from askai.models import DEFAULT_MODEL, Message, MessageUpdate, User, utcnow
from askai.services.session_manager import SessionManager


@pytest_asyncio.fixture
async def manager(gateway, store):
    await store.set_current_user(User(id="u1", email="ada@example.com", name="Ada"))
    return SessionManager(gateway, "u1", store)


class TestSessions:
    """Tests for session CRUD."""

    @pytest.mark.asyncio
    async def test_create_session(self, manager, store):
        first = manager.create_session()
        second = manager.create_session("Named")

        assert first.title == "New Chat"
        assert first.messages == []
        assert first.model == DEFAULT_MODEL
        assert first.temperature == 0.7
        assert [s.id for s in manager.sessions] == [second.id, first.id]

        await manager.flush()
        stored = await store.load_sessions("u1")
        assert [s.id for s in stored] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_update_session_bumps_timestamp(self, manager):
        session = manager.create_session()
        updated = manager.update_session(session.id, {"title": "Renamed"})

        assert updated.title == "Renamed"
        assert updated.updated_at >= session.updated_at
        assert manager.get_session(session.id).title == "Renamed"
        await manager.flush()

    @pytest.mark.asyncio
    async def test_update_unknown_session_ignored(self, manager):
        assert manager.update_session("missing", {"title": "x"}) is None

    @pytest.mark.asyncio
    async def test_delete_clears_active(self, manager, store):
        session = manager.create_session()
        manager.set_active(session.id)
        manager.delete_session(session.id)

        assert manager.sessions == []
        assert manager.active_session is None
        await manager.flush()
        assert await store.load_sessions("u1") == []
        assert await store.get_current_session_id("u1") is None

    @pytest.mark.asyncio
    async def test_archive(self, manager):
        session = manager.create_session()
        assert manager.archive_session(session.id).is_archived is True
        await manager.flush()

    @pytest.mark.asyncio
    async def test_duplicate(self, manager, store):
        session = manager.create_session("Original")
        manager.add_message(session.id, Message(content="Hi", is_user=True))

        copy = manager.duplicate_session(session.id)
        assert copy.id != session.id
        assert copy.title == "Original (Copy)"
        assert [m.content for m in copy.messages] == ["Hi"]
        assert manager.sessions[0].id == copy.id

        await manager.flush()
        assert len(await store.load_sessions("u1")) == 2

    @pytest.mark.asyncio
    async def test_duplicate_unknown(self, manager):
        manager.create_session()
        before = list(manager.sessions)
        with pytest.raises(NotFoundError):
            manager.duplicate_session("missing")
        assert manager.sessions == before
        await manager.flush()


class TestMessages:
    """Tests for message operations."""

    @pytest.mark.asyncio
    async def test_add_and_update_message(self, manager, store):
        session = manager.create_session()
        message = Message(content="", is_user=False, is_loading=True)
        manager.add_message(session.id, message)
        manager.update_message(session.id, message.id, {"content": "Done", "is_loading": False})

        current = manager.get_session(session.id).messages[0]
        assert current.content == "Done"
        assert current.is_loading is False
        assert current.is_user is False

        await manager.flush()
        stored = (await store.load_sessions("u1"))[0]
        assert stored.messages[0].content == "Done"

    @pytest.mark.asyncio
    async def test_update_unknown_message(self, manager):
        session = manager.create_session()
        assert manager.update_message(session.id, "missing", MessageUpdate(content="x")) is None
        await manager.flush()

    @pytest.mark.asyncio
    async def test_edit_keeps_first_original(self, manager):
        session = manager.create_session()
        message = Message(content="first", is_user=True)
        manager.add_message(session.id, message)

        manager.edit_message(session.id, message.id, "second")
        edited = manager.edit_message(session.id, message.id, "third")

        assert edited.content == "third"
        assert edited.is_edited is True
        assert edited.original_content == "first"
        await manager.flush()


class TestActiveAndLoad:
    """Tests for the active pointer and loading."""

    @pytest.mark.asyncio
    async def test_set_active_unknown(self, manager):
        with pytest.raises(NotFoundError):
            manager.set_active("missing")

    @pytest.mark.asyncio
    async def test_load_restores_pointer(self, manager, gateway, store):
        session = manager.create_session()
        manager.set_active(session.id)
        await manager.flush()

        fresh = SessionManager(gateway, "u1", store)
        await fresh.load()
        assert [s.id for s in fresh.sessions] == [session.id]
        assert fresh.active_session.id == session.id
        assert fresh.is_loading is False

    @pytest.mark.asyncio
    async def test_no_user_writes_nothing(self, gateway, store):
        manager = SessionManager(gateway, None, store)
        manager.create_session()
        assert manager._pending == set()
        assert await manager.load() == manager.sessions


class TestBackgroundWrites:
    """Tests for fire-and-forget durable writes."""

    @pytest.mark.asyncio
    async def test_failed_write_keeps_memory(self, store):
        gateway = AsyncMock()
        gateway.save_session.side_effect = PersistenceError("disk full")
        manager = SessionManager(gateway, "u1", store)

        session = manager.create_session()
        await manager.flush()
        assert manager.get_session(session.id) is not None

    @pytest.mark.asyncio
    async def test_writes_applied_in_order(self, manager, store):
        session = manager.create_session()
        for i in range(5):
            manager.update_session(session.id, {"title": f"Title {i}"})
        await manager.flush()

        stored = (await store.load_sessions("u1"))[0]
        assert stored.title == "Title 4"


class TestSearch:
    """Tests for sidebar filtering."""

    @pytest.mark.asyncio
    async def test_query_matches_title_and_content(self, manager):
        weather = manager.create_session("Weather")
        other = manager.create_session("Other")
        manager.add_message(other.id, Message(content="Tell me about PYTHON", is_user=True))
        manager.create_session("Unrelated")

        assert [s.id for s in manager.search("weather")] == [weather.id]
        assert [s.id for s in manager.search("python")] == [other.id]
        await manager.flush()

    @pytest.mark.asyncio
    async def test_archived_separate(self, manager):
        live = manager.create_session("Live")
        archived = manager.create_session("Old")
        manager.archive_session(archived.id)

        assert [s.id for s in manager.search()] == [live.id]
        assert [s.id for s in manager.search(show_archived=True)] == [archived.id]
        await manager.flush()

    @pytest.mark.asyncio
    async def test_period(self, manager):
        recent = manager.create_session("Recent")
        stale = manager.create_session("Stale")
        index = manager.sessions.index(stale)
        manager.sessions[index] = stale.model_copy(update={"updated_at": utcnow() - timedelta(days=10)})

        assert [s.id for s in manager.search(period="week")] == [recent.id]
        assert len(manager.search(period="month")) == 2
        assert len(manager.search(period="all")) == 2
        await manager.flush()
