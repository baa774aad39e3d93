"""
Storage Interface - whole-record blob storage keyed by relative path.

LocalChatStore builds the chat record layout on top of any backend that
implements these four operations.
"""

from abc import ABC, abstractmethod
from typing import Optional


class StorageInterface(ABC):
    """Contract for record storage backends."""

    @abstractmethod
    async def save(self, path: str, content: bytes | str) -> bool:
        """
        Replace the record at `path`. Text is stored UTF-8 encoded.

        Returns:
            bool: False if the record could not be written
        """
        pass

    @abstractmethod
    async def load(self, path: str) -> Optional[bytes]:
        """Raw record bytes, or None when there is no record."""
        pass

    @abstractmethod
    async def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    async def delete(self, path: str) -> bool:
        """
        Returns:
            bool: True if a record was removed
        """
        pass
