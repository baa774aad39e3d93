"""
Unit tests for the send-message and regenerate flow.
"""

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from askai.core.exceptions import (
    CompletionTimeoutError,
    ForbiddenError,
    MissingCredentialError,
    NetworkError,
    RateLimitedError,
    RequestFailedError,
)
from askai.llm import CompletionResult
from askai.models import Message, User
from askai.services.chat_flow import (
    API_KEY_MESSAGE,
    NETWORK_MESSAGE,
    QUOTA_MESSAGE,
    REGENERATE_FAILED_MESSAGE,
    TIMEOUT_MESSAGE,
    UNEXPECTED_MESSAGE,
    ChatFlow,
    FlowState,
    explain_error,
)
from askai.services.session_manager import SessionManager
from askai.services.settings_service import SettingsStore


@pytest.fixture
def provider():
    provider = AsyncMock()
    provider.generate.return_value = CompletionResult(response="Hi! How can I help?", tokens=9,
                                                      model="gemini-1.5-flash")
    return provider


@pytest_asyncio.fixture
async def manager(gateway, store):
    await store.set_current_user(User(id="u1", email="ada@example.com", name="Ada"))
    return SessionManager(gateway, "u1", store)


@pytest.fixture
def flow(manager, provider, store):
    return ChatFlow(manager, provider, SettingsStore(store, "u1"))


def _settled(session):
    return [m for m in session.messages if not m.is_loading]


class TestSendMessage:
    """Tests for ChatFlow.send_message."""

    @pytest.mark.asyncio
    async def test_first_exchange(self, flow, manager, store):
        reply = await flow.send_message("Hello")

        session = manager.active_session
        assert session is not None
        assert len(_settled(session)) == 2
        assert session.messages[0].is_user is True
        assert session.messages[0].content == "Hello"
        assert reply.content == "Hi! How can I help?"
        assert reply.tokens == 9
        assert reply.model == "gemini-1.5-flash"
        assert reply.is_loading is False
        assert session.title == "Hello"
        assert flow.state == FlowState.RECONCILED

        await manager.flush()
        stored = (await store.load_sessions("u1"))[0]
        assert stored.title == "Hello"
        assert [m.content for m in stored.messages] == ["Hello", "Hi! How can I help?"]

    @pytest.mark.asyncio
    async def test_long_first_message_title(self, flow, manager):
        content = "x" * 80
        await flow.send_message(content)
        assert manager.active_session.title == "x" * 50 + "..."
        await manager.flush()

    @pytest.mark.asyncio
    async def test_title_only_from_first_exchange(self, flow, manager):
        await flow.send_message("First question")
        await flow.send_message("Second question")
        assert manager.active_session.title == "First question"
        await manager.flush()

    @pytest.mark.asyncio
    async def test_blank_content_is_noop(self, flow, manager, provider):
        assert await flow.send_message("   ") is None
        assert manager.sessions == []
        provider.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_content_trimmed(self, flow, manager, provider):
        await flow.send_message("  Hello  ")
        assert manager.active_session.messages[0].content == "Hello"
        assert provider.generate.call_args.args[0] == "Hello"
        await manager.flush()

    @pytest.mark.asyncio
    async def test_uses_existing_active_session(self, flow, manager):
        session = manager.create_session()
        manager.set_active(session.id)
        await flow.send_message("Hello")
        assert len(manager.sessions) == 1
        assert manager.active_session.id == session.id
        await manager.flush()

    @pytest.mark.asyncio
    async def test_history_ends_with_new_message(self, flow, manager, provider):
        await flow.send_message("One")
        await flow.send_message("Two")

        history = provider.generate.call_args.args[2]
        assert history == [
            {"role": "user", "content": "One"},
            {"role": "assistant", "content": "Hi! How can I help?"},
            {"role": "user", "content": "Two"},
        ]
        await manager.flush()

    @pytest.mark.asyncio
    async def test_history_capped(self, flow, manager, provider):
        session = manager.create_session()
        manager.set_active(session.id)
        for i in range(30):
            manager.add_message(session.id, Message(content=str(i), is_user=i % 2 == 0))

        await flow.send_message("Next")
        history = provider.generate.call_args.args[2]
        assert len(history) == 20
        assert history[0]["content"] == "11"
        assert history[-1] == {"role": "user", "content": "Next"}
        await manager.flush()

    @pytest.mark.asyncio
    async def test_settings_validated(self, flow, manager, provider):
        await flow.settings_store.update({"temperature": 5, "maxTokens": 10})
        await flow.send_message("Hello")
        settings = provider.generate.call_args.args[1]
        assert settings.temperature == 1.0
        assert settings.max_tokens == 100
        await manager.flush()

    @pytest.mark.asyncio
    async def test_timeout_reconciled(self, flow, manager, provider):
        provider.generate.side_effect = CompletionTimeoutError("Request timed out. Please try again.")

        reply = await flow.send_message("Hello")

        session = manager.active_session
        assert reply.content == TIMEOUT_MESSAGE
        assert reply.is_loading is False
        assert all(not m.is_loading for m in session.messages)
        assert session.title == "New Chat"
        assert flow.state == FlowState.RECONCILED_ERROR
        await manager.flush()

    @pytest.mark.asyncio
    async def test_busy_while_awaiting_completion(self, flow, manager, provider):
        seen = {}

        async def generate(prompt, settings, history):
            session_id = manager.active_session_id
            seen["busy"] = flow.is_busy(session_id)
            seen["state"] = flow.state
            seen["loading"] = manager.active_session.messages[-1].is_loading
            return CompletionResult(response="Done", tokens=1, model="gemini-1.5-flash")

        provider.generate.side_effect = generate
        await flow.send_message("Hello")

        assert seen == {"busy": True, "state": FlowState.AWAITING_COMPLETION, "loading": True}
        assert not flow.is_busy(manager.active_session_id)
        await manager.flush()

    @pytest.mark.asyncio
    async def test_unexpected_error_reconciled(self, flow, manager, provider):
        provider.generate.side_effect = RuntimeError("boom")
        reply = await flow.send_message("Hello")
        assert reply.content == UNEXPECTED_MESSAGE
        assert reply.is_loading is False
        assert not flow.is_busy(manager.active_session_id)
        await manager.flush()


class TestRegenerate:
    """Tests for ChatFlow.regenerate."""

    @pytest.mark.asyncio
    async def test_regenerate(self, flow, manager, provider):
        await flow.send_message("One")
        await flow.send_message("Two")
        target = manager.active_session.messages[3]

        provider.generate.return_value = CompletionResult(response="Another answer", tokens=4, model="gemini-pro")
        reply = await flow.regenerate(target.id)

        assert reply.id == target.id
        assert reply.content == "Another answer"
        assert reply.is_loading is False
        assert provider.generate.call_args.args[0] == "Two"
        assert provider.generate.call_args.args[2] == [
            {"role": "user", "content": "One"},
            {"role": "assistant", "content": "Hi! How can I help?"},
        ]
        assert len(manager.active_session.messages) == 4
        await manager.flush()

    @pytest.mark.asyncio
    async def test_regenerate_failure(self, flow, manager, provider):
        await flow.send_message("One")
        target = manager.active_session.messages[1]

        provider.generate.side_effect = NetworkError("down")
        reply = await flow.regenerate(target.id)

        assert reply.content == REGENERATE_FAILED_MESSAGE
        assert reply.is_loading is False
        await manager.flush()

    @pytest.mark.asyncio
    async def test_regenerate_requires_preceding_user_message(self, flow, manager, provider):
        await flow.send_message("One")
        user_message = manager.active_session.messages[0]
        provider.generate.reset_mock()

        assert await flow.regenerate(user_message.id) is None
        assert await flow.regenerate("missing") is None
        provider.generate.assert_not_called()
        await manager.flush()

    @pytest.mark.asyncio
    async def test_regenerate_without_active_session(self, flow):
        assert await flow.regenerate("anything") is None


class TestExplainError:
    """Tests for explain_error."""

    def test_credential_errors(self):
        assert explain_error(MissingCredentialError("no key")) == API_KEY_MESSAGE
        assert explain_error(ForbiddenError("denied")) == API_KEY_MESSAGE

    def test_network(self):
        assert explain_error(NetworkError("down")) == NETWORK_MESSAGE

    def test_quota(self):
        assert explain_error(RateLimitedError("slow down")) == QUOTA_MESSAGE
        error = RequestFailedError("API request failed: Quota exceeded", status_code=400,
                                   server_message="Quota exceeded for project")
        assert explain_error(error) == QUOTA_MESSAGE

    def test_timeout(self):
        assert explain_error(CompletionTimeoutError("t")) == TIMEOUT_MESSAGE

    def test_invalid_key_reported_by_server(self):
        error = RequestFailedError("API request failed: API key not valid. Please pass a valid API key.",
                                   status_code=400,
                                   server_message="API key not valid. Please pass a valid API key.")
        assert explain_error(error) == API_KEY_MESSAGE

    def test_other_errors_pass_through(self):
        error = RequestFailedError("API request failed: Bad request", status_code=400,
                                   server_message="Bad request")
        assert explain_error(error) == "API request failed: Bad request"
