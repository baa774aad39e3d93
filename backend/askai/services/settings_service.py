"""
Settings Service - per-user chat settings kept in the local store.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from ..core.exceptions import StorageCorruptedError
from ..models import ChatSettings
from ..storage import LocalChatStore

logger = logging.getLogger(__name__)


class SettingsStore:
    """Loads, updates and resets the ChatSettings of one user."""

    def __init__(self, store: LocalChatStore, user_id: Optional[str]):
        self.store = store
        self.user_id = user_id
        self.settings = ChatSettings()

    async def load(self) -> ChatSettings:
        """Load saved settings; unreadable records fall back to the defaults."""
        if not self.user_id:
            return self.settings

        try:
            data = await self.store.load_settings(self.user_id)
            if data is not None:
                self.settings = ChatSettings.model_validate(data)
        except (StorageCorruptedError, ValidationError) as e:
            logger.warning(f"Error loading settings for user {self.user_id}, using defaults: {e}")
            self.settings = ChatSettings()
        return self.settings

    async def update(self, changes: Dict[str, Any]) -> ChatSettings:
        """
        Merge changes into the current settings and save them.

        Keys may be snake_case or camelCase. Values are stored as given;
        clamping happens when a request is built.
        """
        self.settings = ChatSettings.model_validate(
            {**self.settings.model_dump(), **self._normalize(changes)}
        )
        await self._save()
        return self.settings

    @staticmethod
    def _normalize(changes: Dict[str, Any]) -> Dict[str, Any]:
        """Map camelCase keys to field names and drop unknown keys."""
        fields = ChatSettings.model_fields
        by_alias = {info.alias or to_camel(name): name for name, info in fields.items()}
        normalized = {}
        for key, value in changes.items():
            name = by_alias.get(key, key)
            if name in fields:
                normalized[name] = value
            else:
                logger.debug(f"Ignoring unknown setting {key}")
        return normalized

    async def reset(self) -> ChatSettings:
        self.settings = ChatSettings()
        await self._save()
        return self.settings

    async def forget(self) -> None:
        """Drop the saved settings (logout) and return to the defaults."""
        if self.user_id:
            await self.store.delete_settings(self.user_id)
        self.settings = ChatSettings()

    async def _save(self) -> None:
        if self.user_id:
            await self.store.save_settings(self.user_id, self.settings.to_wire())
