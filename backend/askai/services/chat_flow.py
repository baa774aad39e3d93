"""
Chat Flow - send-message and regenerate orchestration.

A request moves through IDLE -> USER_MESSAGE_APPENDED -> AWAITING_COMPLETION
and ends in RECONCILED or RECONCILED_ERROR. Whatever happens, the loading
placeholder is turned into a terminal assistant message.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Set

from ..core.exceptions import AskAIError, ErrorKind, RequestFailedError
from ..llm import CompletionProvider, validate_settings
from ..models import Attachment, Message, MessageUpdate
from .session_manager import SessionManager
from .settings_service import SettingsStore

logger = logging.getLogger(__name__)

API_KEY_MESSAGE = (
    "API key error. Please check your Gemini API key configuration "
    "(GEMINI_API_KEY)."
)
NETWORK_MESSAGE = "Network error occurred. Please check your internet connection and try again."
QUOTA_MESSAGE = "API quota exceeded. Please try again later or check your API usage limits."
TIMEOUT_MESSAGE = "Request timed out. Please try again with a shorter message."
REGENERATE_FAILED_MESSAGE = "Failed to regenerate response. Please try again."
UNEXPECTED_MESSAGE = "Sorry, I encountered an error. Please try again."

HISTORY_LIMIT = 20
TITLE_LENGTH = 50


class FlowState(str, Enum):
    IDLE = "idle"
    USER_MESSAGE_APPENDED = "user_message_appended"
    AWAITING_COMPLETION = "awaiting_completion"
    RECONCILED = "reconciled"
    RECONCILED_ERROR = "reconciled_error"


def explain_error(error: AskAIError) -> str:
    """Turn a completion error into the text shown in the assistant bubble."""
    kind = error.kind
    if kind in (ErrorKind.MISSING_CREDENTIAL, ErrorKind.FORBIDDEN):
        return API_KEY_MESSAGE
    if kind == ErrorKind.NETWORK:
        return NETWORK_MESSAGE
    if kind == ErrorKind.RATE_LIMITED:
        return QUOTA_MESSAGE
    if kind == ErrorKind.TIMEOUT:
        return TIMEOUT_MESSAGE
    if isinstance(error, RequestFailedError) and error.server_message:
        server_message = error.server_message.lower()
        if "api key" in server_message:
            return API_KEY_MESSAGE
        if "quota" in server_message or "limit" in server_message:
            return QUOTA_MESSAGE
    return error.message


def derive_title(content: str) -> str:
    content = content.strip()
    if len(content) > TITLE_LENGTH:
        return content[:TITLE_LENGTH] + "..."
    return content


def _history_entries(messages: List[Message]) -> List[Dict[str, str]]:
    return [
        {"role": "user" if m.is_user else "assistant", "content": m.content}
        for m in messages
        if not m.is_loading
    ]


class ChatFlow:
    """Runs one user turn at a time per session against the completion provider."""

    def __init__(
        self,
        manager: SessionManager,
        provider: CompletionProvider,
        settings_store: SettingsStore,
    ):
        self.manager = manager
        self.provider = provider
        self.settings_store = settings_store
        self.state = FlowState.IDLE
        self._in_flight: Set[str] = set()

    def is_busy(self, session_id: Optional[str]) -> bool:
        """True while a request for the session is awaiting its completion."""
        return session_id in self._in_flight

    async def send_message(
        self,
        content: str,
        attachments: Optional[List[Attachment]] = None,
    ) -> Optional[Message]:
        """
        Send a user message and reconcile the assistant reply.

        Returns:
            The terminal assistant message, or None for blank content
        """
        if not content or not content.strip():
            return None

        session = self.manager.active_session
        if session is None:
            session = self.manager.create_session()
            self.manager.set_active(session.id)
        session_id = session.id

        user_message = Message(
            content=content.strip(),
            is_user=True,
            attachments=attachments or None,
        )
        history = _history_entries([*session.messages, user_message])[-HISTORY_LIMIT:]
        self.manager.add_message(session_id, user_message)
        self.state = FlowState.USER_MESSAGE_APPENDED

        placeholder = Message(content="", is_user=False, is_loading=True)
        self.manager.add_message(session_id, placeholder)

        reply = await self._complete(
            session_id,
            placeholder.id,
            user_message.content,
            history,
            failure_text=None,
        )

        if self.state == FlowState.RECONCILED:
            self._maybe_set_title(session_id, user_message.content)
        return reply

    async def regenerate(self, message_id: str) -> Optional[Message]:
        """
        Produce a new reply for an assistant message of the active session.

        No-op unless the message exists and follows a user message.
        """
        session = self.manager.active_session
        if session is None:
            return None

        index = next((i for i, m in enumerate(session.messages) if m.id == message_id), None)
        if index is None or index == 0:
            return None
        user_message = session.messages[index - 1]
        if not user_message.is_user:
            return None

        history = _history_entries(session.messages[:index - 1])

        self.manager.update_message(session.id, message_id, MessageUpdate(content="", is_loading=True))
        self.state = FlowState.USER_MESSAGE_APPENDED

        return await self._complete(
            session.id,
            message_id,
            user_message.content,
            history,
            failure_text=REGENERATE_FAILED_MESSAGE,
        )

    async def _complete(
        self,
        session_id: str,
        message_id: str,
        prompt: str,
        history: List[Dict[str, str]],
        failure_text: Optional[str],
    ) -> Optional[Message]:
        self._in_flight.add(session_id)
        self.state = FlowState.AWAITING_COMPLETION
        try:
            settings = validate_settings(self.settings_store.settings)
            result = await self.provider.generate(prompt, settings, history)
        except AskAIError as e:
            logger.warning(
                f"Completion failed for session {session_id}: {e.message}",
                extra={"extra_fields": {"session_id": session_id, "error_kind": e.kind.value}}
            )
            return self._fail(session_id, message_id, failure_text or explain_error(e))
        except Exception as e:
            logger.error(f"Unexpected error completing message in session {session_id}: {e}", exc_info=True)
            return self._fail(session_id, message_id, failure_text or UNEXPECTED_MESSAGE)
        finally:
            self._in_flight.discard(session_id)

        self.state = FlowState.RECONCILED
        logger.info(
            f"Completion reconciled for session {session_id}",
            extra={"extra_fields": {"session_id": session_id, "tokens": result.tokens, "model": result.model}}
        )
        return self.manager.update_message(session_id, message_id, MessageUpdate(
            content=result.response,
            tokens=result.tokens,
            model=result.model or settings.model,
            is_loading=False,
        ))

    def _fail(self, session_id: str, message_id: str, text: str) -> Optional[Message]:
        self.state = FlowState.RECONCILED_ERROR
        return self.manager.update_message(session_id, message_id, MessageUpdate(
            content=text,
            is_loading=False,
        ))

    def _maybe_set_title(self, session_id: str, content: str) -> None:
        session = self.manager.get_session(session_id)
        if session is None:
            return
        settled = [m for m in session.messages if not m.is_loading]
        if len(settled) <= 2:
            self.manager.update_session(session_id, {"title": derive_title(content)})
