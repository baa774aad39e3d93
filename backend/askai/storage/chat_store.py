"""
Local Chat Store - the durable fallback layout on top of StorageInterface.

Records (all JSON, namespaced by a prefix):
    {ns}_users.json                     user table, with password hashes
    {ns}_sessions_{user_id}.json        the user's sessions, newest first
    {ns}_settings_{user_id}.json        the user's ChatSettings
    {ns}_currentSession_{user_id}.json  id of the active session
    {ns}_token                          auth token of the signed-in user
    {ns}_user.json                      the signed-in user
"""

import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..core.exceptions import PersistenceError, StorageCorruptedError
from ..models import ChatSession, User
from .interface import StorageInterface

logger = logging.getLogger(__name__)


class LocalChatStore:
    """Typed access to the local records of the chat application."""

    def __init__(self, storage: StorageInterface, namespace: str = "askAI"):
        self.storage = storage
        self.namespace = namespace

    # Paths

    @property
    def _users_path(self) -> str:
        return f"{self.namespace}_users.json"

    def _sessions_path(self, user_id: str) -> str:
        return f"{self.namespace}_sessions_{user_id}.json"

    def _settings_path(self, user_id: str) -> str:
        return f"{self.namespace}_settings_{user_id}.json"

    def _current_session_path(self, user_id: str) -> str:
        return f"{self.namespace}_currentSession_{user_id}.json"

    @property
    def _token_path(self) -> str:
        return f"{self.namespace}_token"

    @property
    def _user_path(self) -> str:
        return f"{self.namespace}_user.json"

    # Raw JSON helpers

    async def _read_json(self, path: str) -> Optional[Any]:
        content = await self.storage.load(path)
        if content is None:
            return None
        try:
            return json.loads(content.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"Corrupt local record {path}: {e}")
            raise StorageCorruptedError(f"Local record {path} is corrupt", details=str(e)) from e

    async def _write_json(self, path: str, data: Any) -> None:
        content = json.dumps(data, indent=2, ensure_ascii=False)
        if not await self.storage.save(path, content):
            raise PersistenceError(f"Failed to write local record {path}")

    # Users

    async def list_user_records(self) -> List[Dict[str, Any]]:
        """Raw user records including `password_hash`."""
        records = await self._read_json(self._users_path)
        if records is None:
            return []
        if not isinstance(records, list):
            raise StorageCorruptedError(f"Local record {self._users_path} is corrupt")
        return records

    async def find_user_record(self, *, email: Optional[str] = None,
                               user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        for record in await self.list_user_records():
            if email is not None and record.get("email") == email:
                return record
            if user_id is not None and record.get("id") == user_id:
                return record
        return None

    async def add_user_record(self, record: Dict[str, Any]) -> None:
        records = await self.list_user_records()
        records.append(record)
        await self._write_json(self._users_path, records)

    # Sessions

    async def load_sessions(self, user_id: str) -> List[ChatSession]:
        """
        Load a user's sessions, parsing timestamps back into datetimes.

        Raises:
            StorageCorruptedError: if any part of the record is unparseable.
                The whole load fails; no session is silently dropped.
        """
        path = self._sessions_path(user_id)
        raw = await self._read_json(path)
        if raw is None:
            return []
        try:
            return [ChatSession.model_validate(item) for item in raw]
        except (TypeError, ValidationError) as e:
            logger.error(f"Corrupt local sessions for user {user_id}: {e}")
            raise StorageCorruptedError(f"Local record {path} is corrupt", details=str(e)) from e

    async def save_sessions(self, user_id: str, sessions: List[ChatSession]) -> None:
        await self._write_json(
            self._sessions_path(user_id),
            [session.to_wire() for session in sessions],
        )

    # Settings

    async def load_settings(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self._read_json(self._settings_path(user_id))

    async def save_settings(self, user_id: str, data: Dict[str, Any]) -> None:
        await self._write_json(self._settings_path(user_id), data)

    async def delete_settings(self, user_id: str) -> None:
        await self.storage.delete(self._settings_path(user_id))

    # Current session pointer

    async def get_current_session_id(self, user_id: str) -> Optional[str]:
        value = await self._read_json(self._current_session_path(user_id))
        return value if isinstance(value, str) else None

    async def set_current_session_id(self, user_id: str, session_id: Optional[str]) -> None:
        path = self._current_session_path(user_id)
        if session_id is None:
            await self.storage.delete(path)
        else:
            await self._write_json(path, session_id)

    # Auth token and signed-in user

    async def get_token(self) -> Optional[str]:
        content = await self.storage.load(self._token_path)
        return content.decode('utf-8') if content else None

    async def set_token(self, token: str) -> None:
        if not await self.storage.save(self._token_path, token):
            raise PersistenceError("Failed to write local auth token")

    async def get_current_user(self) -> Optional[User]:
        data = await self._read_json(self._user_path)
        if data is None:
            return None
        try:
            return User.model_validate(data)
        except ValidationError as e:
            raise StorageCorruptedError(f"Local record {self._user_path} is corrupt", details=str(e)) from e

    async def get_current_user_id(self) -> Optional[str]:
        user = await self.get_current_user()
        return user.id if user else None

    async def set_current_user(self, user: User) -> None:
        await self._write_json(self._user_path, user.to_wire())

    async def clear_auth(self) -> None:
        """Forget the signed-in user and token (logout)."""
        await self.storage.delete(self._token_path)
        await self.storage.delete(self._user_path)
