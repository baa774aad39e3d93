"""
Session Manager - in-memory source of truth for a user's chat sessions.

Mutations apply to memory synchronously and schedule the durable write as a
background task. A failed write is logged and never rolls memory back.
The active session is kept as an id into the session list, so there is no
second copy that could drift from the list.
"""

import asyncio
import logging
from datetime import timedelta
from functools import partial
from typing import Any, Awaitable, Dict, List, Optional, Set, Union

from ..core.exceptions import NotFoundError
from ..models import (
    DEFAULT_MODEL,
    ChatSession,
    Message,
    MessageUpdate,
    SessionUpdate,
    utcnow,
)
from ..models.session import new_id
from ..storage import LocalChatStore
from .persistence_gateway import PersistenceGateway

logger = logging.getLogger(__name__)

SEARCH_PERIODS = {
    "week": timedelta(days=7),
    "month": timedelta(days=30),
}


class SessionManager:
    """Holds the session list and active session of one signed-in user."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        user_id: Optional[str],
        store: Optional[LocalChatStore] = None,
    ):
        """
        Args:
            gateway: Durable backend for sessions
            user_id: Signed-in user; without one nothing is written durably
            store: Local store holding the current-session pointer
        """
        self.gateway = gateway
        self.user_id = user_id
        self.store = store
        self.sessions: List[ChatSession] = []
        self.active_session_id: Optional[str] = None
        self.is_loading = False
        self._pending: Set[asyncio.Task] = set()
        self._write_lock = asyncio.Lock()

    # Background writes

    def _schedule(self, operation: Awaitable[Any], description: str) -> None:
        """Run a durable write in the background, in scheduling order."""
        task = asyncio.get_running_loop().create_task(self._serialized(operation))
        self._pending.add(task)
        task.add_done_callback(partial(self._on_write_done, description))

    async def _serialized(self, operation: Awaitable[Any]) -> Any:
        async with self._write_lock:
            return await operation

    def _on_write_done(self, description: str, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.warning(f"Durable write cancelled: {description}")
            return
        error = task.exception()
        if error is not None:
            logger.error(
                f"Failed to {description}: {error}",
                exc_info=error,
                extra={"extra_fields": {"user_id": self.user_id}}
            )

    async def flush(self) -> None:
        """Wait until every scheduled durable write has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # Lookup

    def _index(self, session_id: str) -> Optional[int]:
        for index, session in enumerate(self.sessions):
            if session.id == session_id:
                return index
        return None

    def get_session(self, session_id: str) -> Optional[ChatSession]:
        index = self._index(session_id)
        return self.sessions[index] if index is not None else None

    @property
    def active_session(self) -> Optional[ChatSession]:
        if self.active_session_id is None:
            return None
        return self.get_session(self.active_session_id)

    def session_for_message(self, message_id: str) -> Optional[ChatSession]:
        return next(
            (s for s in self.sessions if any(m.id == message_id for m in s.messages)),
            None,
        )

    def get_message(self, session_id: str, message_id: str) -> Optional[Message]:
        session = self.get_session(session_id)
        if session is None:
            return None
        return next((m for m in session.messages if m.id == message_id), None)

    # Loading and the active pointer

    async def load(self) -> List[ChatSession]:
        """
        Load sessions through the gateway and restore the active pointer.

        Raises:
            StorageCorruptedError: the local sessions record is unreadable
        """
        if not self.user_id:
            return self.sessions

        self.is_loading = True
        try:
            self.sessions = await self.gateway.get_sessions(self.user_id)
            if self.store is not None:
                current_id = await self.store.get_current_session_id(self.user_id)
                if current_id and self._index(current_id) is not None:
                    self.active_session_id = current_id
        except Exception:
            logger.error(f"Failed to load chat sessions for user {self.user_id}", exc_info=True)
            raise
        finally:
            self.is_loading = False

        logger.info(f"Loaded {len(self.sessions)} sessions for user {self.user_id}")
        return self.sessions

    def set_active(self, session_id: Optional[str]) -> Optional[ChatSession]:
        """
        Make a session active, or clear the active session with None.

        Raises:
            NotFoundError: no session with that id
        """
        if session_id is not None and self._index(session_id) is None:
            raise NotFoundError(f"Session not found: {session_id}")
        self.active_session_id = session_id
        self._persist_pointer()
        return self.active_session

    def _persist_pointer(self) -> None:
        if self.store is not None and self.user_id:
            self._schedule(
                self.store.set_current_session_id(self.user_id, self.active_session_id),
                "save current session pointer",
            )

    # Session operations

    def create_session(self, title: Optional[str] = None) -> ChatSession:
        session = ChatSession(
            title=title or "New Chat",
            model=DEFAULT_MODEL,
            temperature=0.7,
        )
        self.sessions.insert(0, session)
        if self.user_id:
            self._schedule(self.gateway.save_session(session, self.user_id), "save new session")
        return session

    def update_session(
        self,
        session_id: str,
        partial_update: Union[SessionUpdate, Dict[str, Any]],
    ) -> Optional[ChatSession]:
        """Merge a partial update into a session and bump updated_at."""
        update = (partial_update if isinstance(partial_update, SessionUpdate)
                  else SessionUpdate.model_validate(partial_update))
        changes = update.changes()
        changes.pop("updated_at", None)
        return self._apply(session_id, changes, "update session")

    def _apply(self, session_id: str, changes: Dict[str, Any], description: str) -> Optional[ChatSession]:
        index = self._index(session_id)
        if index is None:
            logger.debug(f"Ignoring {description} for unknown session {session_id}")
            return None

        current = self.sessions[index]
        changes["updated_at"] = max(utcnow(), current.updated_at)
        updated = current.model_copy(update=changes)
        self.sessions[index] = updated

        if self.user_id:
            self._schedule(
                self.gateway.update_session(session_id, SessionUpdate(**changes)),
                description,
            )
        return updated

    def delete_session(self, session_id: str) -> None:
        index = self._index(session_id)
        if index is not None:
            del self.sessions[index]
        if self.active_session_id == session_id:
            self.active_session_id = None
            self._persist_pointer()
        if self.user_id:
            self._schedule(self.gateway.delete_session(session_id), "delete session")

    def archive_session(self, session_id: str) -> Optional[ChatSession]:
        return self.update_session(session_id, {"is_archived": True})

    def duplicate_session(self, session_id: str) -> ChatSession:
        """
        Copy a session, messages included, under a new id.

        Raises:
            NotFoundError: no session with that id; nothing is changed
        """
        session = self.get_session(session_id)
        if session is None:
            raise NotFoundError("Session not found")

        now = utcnow()
        duplicated = session.model_copy(deep=True)
        duplicated = duplicated.model_copy(update={
            "id": new_id(),
            "title": f"{session.title} (Copy)",
            "created_at": now,
            "updated_at": now,
        })
        self.sessions.insert(0, duplicated)
        if self.user_id:
            self._schedule(self.gateway.save_session(duplicated, self.user_id), "save duplicated session")
        return duplicated

    # Message operations

    def add_message(self, session_id: str, message: Message) -> Optional[Message]:
        """Append a message. The durable write carries the full message list."""
        session = self.get_session(session_id)
        if session is None:
            logger.debug(f"Ignoring add message for unknown session {session_id}")
            return None
        self._apply(session_id, {"messages": [*session.messages, message]}, "save message")
        return message

    def update_message(
        self,
        session_id: str,
        message_id: str,
        partial_update: Union[MessageUpdate, Dict[str, Any]],
    ) -> Optional[Message]:
        """Merge a partial update into one message, matched by id."""
        update = (partial_update if isinstance(partial_update, MessageUpdate)
                  else MessageUpdate.model_validate(partial_update))
        session = self.get_session(session_id)
        if session is None:
            return None

        updated_message = None
        messages = []
        for message in session.messages:
            if message.id == message_id:
                message = message.model_copy(update=update.changes())
                updated_message = message
            messages.append(message)

        if updated_message is None:
            logger.debug(f"Ignoring update for unknown message {message_id}")
            return None
        self._apply(session_id, {"messages": messages}, "update message")
        return updated_message

    def edit_message(self, session_id: str, message_id: str, content: str) -> Optional[Message]:
        """User edit: marks the message edited and keeps the first original content."""
        message = self.get_message(session_id, message_id)
        if message is None:
            return None
        return self.update_message(session_id, message_id, MessageUpdate(
            content=content,
            is_edited=True,
            original_content=message.original_content or message.content,
        ))

    # Sidebar search

    def search(
        self,
        query: str = "",
        show_archived: bool = False,
        period: str = "all",
    ) -> List[ChatSession]:
        """
        Filter sessions the way the sidebar lists them.

        Archived and live sessions are never mixed. A query matches the title
        or any message content, case-insensitively, and ignores `period`.
        Otherwise `period` is one of all, today, week, month on updated_at.
        """
        now = utcnow()
        needle = query.strip().lower()
        results = []
        for session in self.sessions:
            if bool(session.is_archived) != show_archived:
                continue
            if needle:
                if needle in session.title.lower() or any(
                    needle in m.content.lower() for m in session.messages
                ):
                    results.append(session)
                continue
            if period == "today":
                if session.updated_at.astimezone(now.tzinfo).date() != now.date():
                    continue
            elif period in SEARCH_PERIODS:
                if session.updated_at < now - SEARCH_PERIODS[period]:
                    continue
            results.append(session)
        return results
