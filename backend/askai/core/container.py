"""
Chat Container - builds and owns the service objects of the application.

Storage, gateway, provider and auth live for the whole process. The
workspace (sessions, settings, chat flow) belongs to the signed-in user and
is rebuilt on every sign-in.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from ..config import settings
from ..core.exceptions import StorageCorruptedError
from ..llm import CompletionProvider, create_completion_provider
from ..models import User, UserCreate
from ..services.auth_service import AuthService
from ..services.chat_flow import ChatFlow
from ..services.persistence_gateway import PersistenceGateway
from ..services.session_manager import SessionManager
from ..services.settings_service import SettingsStore
from ..storage import LocalChatStore, LocalStorage, StorageInterface

logger = logging.getLogger(__name__)

SESSIONS_UNAVAILABLE_MESSAGE = (
    "Your saved chats could not be read. New chats may not be saved until "
    "the local sessions file is repaired or the data is cleared."
)


@dataclass
class Workspace:
    """Per-user services."""
    user: User
    sessions: SessionManager
    settings: SettingsStore
    flow: ChatFlow
    sessions_error: Optional[str] = None


class ChatContainer:
    """Composition root of the chat core."""

    def __init__(
        self,
        config: Any = settings,
        storage: Optional[StorageInterface] = None,
        provider: Optional[CompletionProvider] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            config: Application settings
            storage: Storage backend, defaults to LocalStorage at the configured path
            provider: Completion provider, defaults to the configured Gemini provider
            transport: httpx transport for the remote persistence API (tests)
        """
        self.config = config
        self.store = LocalChatStore(
            storage or LocalStorage(config.local_storage_path),
            namespace=config.storage_namespace,
        )
        self.gateway = PersistenceGateway(
            self.store,
            api_base_url=config.api_base_url,
            timeout=config.remote_timeout,
            transport=transport,
            config=config,
        )
        self.provider = provider or create_completion_provider(config)
        self.auth = AuthService(self.gateway, self.store)
        self.workspace: Optional[Workspace] = None

    async def start(self) -> Optional[Workspace]:
        """Restore a cached sign-in, if any."""
        user = await self.auth.restore()
        if user is None:
            return None
        return await self._open_workspace(user)

    async def _open_workspace(self, user: User) -> Workspace:
        if self.workspace is not None:
            await self.workspace.sessions.flush()

        sessions = SessionManager(self.gateway, user.id, self.store)
        settings_store = SettingsStore(self.store, user.id)
        await settings_store.load()
        sessions_error = None
        try:
            await sessions.load()
        except StorageCorruptedError as e:
            logger.warning(
                f"Opening workspace for user {user.id} without saved sessions: {e.message}",
                extra={"extra_fields": {"user_id": user.id}}
            )
            sessions_error = SESSIONS_UNAVAILABLE_MESSAGE

        self.workspace = Workspace(
            user=user,
            sessions=sessions,
            settings=settings_store,
            flow=ChatFlow(sessions, self.provider, settings_store),
            sessions_error=sessions_error,
        )
        logger.info(f"Workspace opened for user {user.id}")
        return self.workspace

    async def login(self, email: str, password: str) -> Workspace:
        user = await self.auth.login(email, password)
        return await self._open_workspace(user)

    async def register(self, name: str, email: str, password: str) -> Workspace:
        user = await self.auth.register(name, email, password)
        return await self._open_workspace(user)

    async def sign_in_external(self, profile: UserCreate, token: str) -> Workspace:
        user = await self.auth.sign_in_external(profile, token)
        return await self._open_workspace(user)

    async def logout(self) -> None:
        """Sign out and clear the user's local caches. Saved sessions are kept."""
        if self.workspace is not None:
            await self.workspace.sessions.flush()
            await self.workspace.settings.forget()
            await self.store.set_current_session_id(self.workspace.user.id, None)
            self.workspace = None
        await self.auth.logout()

    async def clear_all_data(self) -> None:
        """Delete every session of the signed-in user and reset their settings."""
        if self.workspace is None:
            return
        manager = self.workspace.sessions
        for session in list(manager.sessions):
            manager.delete_session(session.id)
        await manager.flush()
        if self.workspace.sessions_error:
            await self.store.save_sessions(self.workspace.user.id, [])
            self.workspace.sessions_error = None
        await self.workspace.settings.reset()

    async def shutdown(self) -> None:
        if self.workspace is not None:
            await self.workspace.sessions.flush()
