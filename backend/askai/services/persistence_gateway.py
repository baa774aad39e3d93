"""
Persistence Gateway - user and session CRUD.

Every operation tries the remote API first. Any remote failure is logged and
served by the local chat store under the same contract, so callers never
know which backend answered. Only failures of the local path propagate.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar, Union
from uuid import uuid4

import httpx
from pydantic import TypeAdapter, ValidationError

from ..config import settings
from ..core.exceptions import (
    InvalidCredentialsError,
    NoActiveUserError,
    NotFoundError,
    PersistenceUnavailableError,
    UserExistsError,
)
from ..core.logging_config import filter_sensitive_data, truncate_large_data
from ..models import AuthResult, ChatSession, SessionUpdate, User, UserCreate, utcnow
from ..storage import LocalChatStore
from ..utils.auth import create_access_token, get_password_hash, verify_password

logger = logging.getLogger(__name__)

T = TypeVar("T")

_sessions_adapter = TypeAdapter(List[ChatSession])


class PersistenceGateway:
    """Remote-first store for users and chat sessions with a local fallback."""

    def __init__(
        self,
        store: LocalChatStore,
        api_base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        config: Any = settings,
    ):
        """
        Args:
            store: Local chat store used as the fallback backend
            api_base_url: Base URL of the remote persistence API
            timeout: Timeout for each remote call, in seconds
            transport: Optional httpx transport (tests inject a MockTransport)
            config: Settings used to sign locally issued tokens
        """
        self.store = store
        self.api_base_url = api_base_url.rstrip("/") + "/"
        self.timeout = timeout
        self.transport = transport
        self.config = config

    async def _remote(
        self,
        method: str,
        path: str,
        parse: Callable[[Any], T],
        *,
        json: Optional[Any] = None,
        params: Optional[Dict[str, str]] = None,
        auth: bool = True,
    ) -> T:
        """
        Perform one remote call and parse its JSON body.

        Raises:
            PersistenceUnavailableError: on any transport, status or parse failure
        """
        headers = {"Content-Type": "application/json"}
        if auth:
            token = await self.store.get_token()
            if token:
                headers["Authorization"] = f"Bearer {token}"

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"Remote call: {method} {path}",
                extra={"extra_fields": {"body": filter_sensitive_data(json), "params": params}}
            )

        try:
            async with httpx.AsyncClient(
                base_url=self.api_base_url,
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                resp = await client.request(method, path.lstrip("/"), json=json,
                                            params=params, headers=headers)
        except httpx.HTTPError as e:
            raise PersistenceUnavailableError(f"{method} {path} failed: {type(e).__name__}") from e

        if not resp.is_success:
            raise PersistenceUnavailableError(
                f"{method} {path} returned HTTP {resp.status_code}",
                details=truncate_large_data(resp.text, max_length=500),
            )

        try:
            return parse(resp.json() if resp.content else None)
        except (ValueError, ValidationError) as e:
            raise PersistenceUnavailableError(f"{method} {path} returned an invalid body") from e

    @staticmethod
    def _log_fallback(operation: str, error: PersistenceUnavailableError) -> None:
        logger.warning(
            f"API not available, using local storage for {operation}: {error.message}",
            extra={"extra_fields": {"operation": operation, "error": error.message}}
        )

    # Users

    async def create_user(self, user_data: UserCreate) -> User:
        """
        Create a user account.

        Raises:
            UserExistsError: local fallback found the email already registered
        """
        try:
            return await self._remote("POST", "/users", User.model_validate,
                                      json=user_data.to_wire(), auth=False)
        except PersistenceUnavailableError as e:
            self._log_fallback("create_user", e)

        if await self.store.find_user_record(email=user_data.email) is not None:
            raise UserExistsError("User already exists")

        user = User(
            id=f"local_{uuid4().hex}",
            email=user_data.email,
            name=user_data.name,
            picture=user_data.picture,
            given_name=user_data.given_name,
            family_name=user_data.family_name,
        )
        record = user.to_wire()
        if user_data.password:
            record["password_hash"] = get_password_hash(user_data.password)
        await self.store.add_user_record(record)
        logger.info(f"Created local user {user.id}")
        return user

    async def authenticate_user(self, email: str, password: str) -> AuthResult:
        """
        Log in with email and password.

        Raises:
            InvalidCredentialsError: unknown email or wrong password (local path)
        """
        try:
            return await self._remote("POST", "/auth/login", AuthResult.model_validate,
                                      json={"email": email, "password": password}, auth=False)
        except PersistenceUnavailableError as e:
            self._log_fallback("authenticate_user", e)

        record = await self.store.find_user_record(email=email)
        if (
            record is None
            or not record.get("password_hash")
            or not verify_password(password, record["password_hash"])
        ):
            raise InvalidCredentialsError("Invalid credentials")

        user = User.model_validate(record)
        token = create_access_token({"sub": user.id, "email": user.email}, config=self.config)
        return AuthResult(user=user, token=token)

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        try:
            return await self._remote("GET", f"/users/{user_id}", User.model_validate)
        except PersistenceUnavailableError as e:
            self._log_fallback("get_user_by_id", e)

        record = await self.store.find_user_record(user_id=user_id)
        return User.model_validate(record) if record else None

    # Sessions

    async def save_session(self, session: ChatSession, user_id: str) -> ChatSession:
        """Insert a session, or replace the stored one with the same id."""
        try:
            return await self._remote("POST", "/sessions", ChatSession.model_validate,
                                      json={**session.to_wire(), "userId": user_id})
        except PersistenceUnavailableError as e:
            self._log_fallback("save_session", e)

        sessions = await self.store.load_sessions(user_id)
        for index, existing in enumerate(sessions):
            if existing.id == session.id:
                sessions[index] = session
                break
        else:
            sessions.insert(0, session)
        await self.store.save_sessions(user_id, sessions)
        return session

    async def get_sessions(self, user_id: str) -> List[ChatSession]:
        """
        Raises:
            StorageCorruptedError: the local sessions record could not be parsed
        """
        try:
            return await self._remote("GET", "/sessions", _sessions_adapter.validate_python,
                                      params={"userId": user_id})
        except PersistenceUnavailableError as e:
            self._log_fallback("get_sessions", e)

        return await self.store.load_sessions(user_id)

    async def update_session(
        self,
        session_id: str,
        partial: Union[SessionUpdate, Dict[str, Any]],
    ) -> ChatSession:
        """
        Apply a partial update and return the stored session.

        Raises:
            NoActiveUserError: local path without a signed-in user
            NotFoundError: local path, session unknown
        """
        update = partial if isinstance(partial, SessionUpdate) else SessionUpdate.model_validate(partial)
        try:
            return await self._remote("PUT", f"/sessions/{session_id}", ChatSession.model_validate,
                                      json=update.to_wire())
        except PersistenceUnavailableError as e:
            self._log_fallback("update_session", e)

        user_id = await self._require_user_id()
        sessions = await self.store.load_sessions(user_id)
        for index, existing in enumerate(sessions):
            if existing.id == session_id:
                changes = update.changes()
                changes["updated_at"] = max(utcnow(), existing.updated_at)
                sessions[index] = existing.model_copy(update=changes)
                await self.store.save_sessions(user_id, sessions)
                return sessions[index]
        raise NotFoundError(f"Session not found: {session_id}")

    async def delete_session(self, session_id: str) -> None:
        """
        Raises:
            NoActiveUserError: local path without a signed-in user
        """
        try:
            await self._remote("DELETE", f"/sessions/{session_id}", lambda body: None)
            return
        except PersistenceUnavailableError as e:
            self._log_fallback("delete_session", e)

        user_id = await self._require_user_id()
        sessions = await self.store.load_sessions(user_id)
        remaining = [s for s in sessions if s.id != session_id]
        if len(remaining) != len(sessions):
            await self.store.save_sessions(user_id, remaining)

    async def _require_user_id(self) -> str:
        user_id = await self.store.get_current_user_id()
        if not user_id:
            raise NoActiveUserError("No user logged in")
        return user_id
