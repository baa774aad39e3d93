"""
Unit tests for local storage and the chat record layout.
"""

import json

import pytest

from askai.core.exceptions import StorageCorruptedError
from askai.models import ChatSession, Message, User
from askai.storage import LocalStorage


class TestLocalStorage:
    """Tests for LocalStorage."""

    @pytest.mark.asyncio
    async def test_save_and_load(self, tmp_path):
        storage = LocalStorage(str(tmp_path))
        assert await storage.save("a/b.json", "{}") is True
        assert await storage.load("a/b.json") == b"{}"
        assert await storage.exists("a/b.json") is True

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        storage = LocalStorage(str(tmp_path))
        assert await storage.load("missing.json") is None

    @pytest.mark.asyncio
    async def test_delete(self, tmp_path):
        storage = LocalStorage(str(tmp_path))
        await storage.save("x.json", b"1")
        assert await storage.delete("x.json") is True
        assert await storage.exists("x.json") is False

    def test_path_traversal_rejected(self, tmp_path):
        storage = LocalStorage(str(tmp_path / "base"))
        with pytest.raises(ValueError):
            storage._get_full_path("../outside.json")


class TestLocalChatStore:
    """Tests for LocalChatStore."""

    @pytest.mark.asyncio
    async def test_sessions_round_trip_timestamps(self, store):
        session = ChatSession(title="Trip", messages=[Message(content="Hi", is_user=True)])
        await store.save_sessions("u1", [session])

        loaded = await store.load_sessions("u1")
        assert loaded == [session]
        assert loaded[0].created_at == session.created_at
        assert loaded[0].messages[0].timestamp.tzinfo is not None

    @pytest.mark.asyncio
    async def test_sessions_stored_camel_case(self, store, tmp_path):
        await store.save_sessions("u1", [ChatSession(title="Trip")])
        raw = json.loads((tmp_path / "data" / "askAI_sessions_u1.json").read_text())
        assert "createdAt" in raw[0]
        assert "created_at" not in raw[0]

    @pytest.mark.asyncio
    async def test_no_sessions(self, store):
        assert await store.load_sessions("nobody") == []

    @pytest.mark.asyncio
    async def test_corrupt_sessions_fail_whole_load(self, store, tmp_path):
        path = tmp_path / "data" / "askAI_sessions_u1.json"
        good = ChatSession(title="Good").to_wire()
        path.write_text(json.dumps([good, {"title": "no timestamps", "createdAt": "not a date"}]))

        with pytest.raises(StorageCorruptedError):
            await store.load_sessions("u1")

    @pytest.mark.asyncio
    async def test_unparseable_json(self, store, tmp_path):
        (tmp_path / "data" / "askAI_sessions_u1.json").write_text("{not json")
        with pytest.raises(StorageCorruptedError):
            await store.load_sessions("u1")

    @pytest.mark.asyncio
    async def test_current_session_pointer(self, store):
        assert await store.get_current_session_id("u1") is None
        await store.set_current_session_id("u1", "s1")
        assert await store.get_current_session_id("u1") == "s1"
        await store.set_current_session_id("u1", None)
        assert await store.get_current_session_id("u1") is None

    @pytest.mark.asyncio
    async def test_auth_cache(self, store):
        user = User(id="u1", email="a@example.com", name="Ada")
        await store.set_current_user(user)
        await store.set_token("tok")

        assert await store.get_current_user() == user
        assert await store.get_current_user_id() == "u1"
        assert await store.get_token() == "tok"

        await store.clear_auth()
        assert await store.get_current_user() is None
        assert await store.get_token() is None

    @pytest.mark.asyncio
    async def test_user_records(self, store):
        await store.add_user_record({"id": "u1", "email": "a@example.com", "name": "Ada"})
        assert (await store.find_user_record(email="a@example.com"))["id"] == "u1"
        assert (await store.find_user_record(user_id="u1"))["email"] == "a@example.com"
        assert await store.find_user_record(email="b@example.com") is None

    @pytest.mark.asyncio
    async def test_settings(self, store):
        await store.save_settings("u1", {"model": "gemini-pro"})
        assert await store.load_settings("u1") == {"model": "gemini-pro"}
        await store.delete_settings("u1")
        assert await store.load_settings("u1") is None
