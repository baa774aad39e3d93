"""
Auth Service - sign-in state of the local user.

The signed-in user and token are cached in the local store so a restart
restores the session without asking for credentials again.
"""

import logging
from typing import Optional

from ..core.exceptions import StorageCorruptedError, UserExistsError
from ..models import User, UserCreate
from ..storage import LocalChatStore
from .persistence_gateway import PersistenceGateway

logger = logging.getLogger(__name__)


class AuthService:
    """Register, log in and log out through the persistence gateway."""

    def __init__(self, gateway: PersistenceGateway, store: LocalChatStore):
        self.gateway = gateway
        self.store = store
        self.user: Optional[User] = None

    async def restore(self) -> Optional[User]:
        """
        Restore the cached user if the backend still knows them.

        A cached user that no backend can find is signed out.
        """
        try:
            cached = await self.store.get_current_user()
        except StorageCorruptedError as e:
            logger.warning(f"Discarding unreadable cached user: {e.message}")
            await self.store.clear_auth()
            return None

        token = await self.store.get_token()
        if cached is None or not token:
            return None

        user = await self.gateway.get_user_by_id(cached.id)
        if user is None:
            logger.info(f"Cached user {cached.id} no longer exists, signing out")
            await self.store.clear_auth()
            return None

        self.user = user
        return user

    async def register(self, name: str, email: str, password: str) -> User:
        """
        Create an account and sign in with it.

        Raises:
            UserExistsError: the email is already registered
            InvalidCredentialsError: the new account could not be logged in
        """
        parts = name.split(" ")
        await self.gateway.create_user(UserCreate(
            name=name,
            email=email,
            password=password,
            given_name=parts[0],
            family_name=" ".join(parts[1:]),
        ))
        return await self.login(email, password)

    async def login(self, email: str, password: str) -> User:
        """
        Raises:
            InvalidCredentialsError: unknown email or wrong password
        """
        result = await self.gateway.authenticate_user(email, password)
        await self.store.set_current_user(result.user)
        await self.store.set_token(result.token)
        self.user = result.user
        logger.info(f"User {result.user.id} signed in")
        return result.user

    async def sign_in_external(self, profile: UserCreate, token: str) -> User:
        """
        Sign in with a profile from an external identity provider.

        The first sign-in creates the account; later ones reuse it.
        """
        try:
            user = await self.gateway.create_user(profile)
        except UserExistsError:
            record = await self.store.find_user_record(email=profile.email)
            user = User.model_validate(record) if record else User(
                id=f"external_{profile.email}",
                email=profile.email,
                name=profile.name,
                picture=profile.picture,
            )

        await self.store.set_current_user(user)
        await self.store.set_token(token)
        self.user = user
        return user

    async def logout(self) -> None:
        if self.user is not None:
            logger.info(f"User {self.user.id} signed out")
        self.user = None
        await self.store.clear_auth()
