"""Storage module - interface, local filesystem backend and the chat record layout."""

from .interface import StorageInterface
from .local_storage import LocalStorage
from .chat_store import LocalChatStore

__all__ = ['StorageInterface', 'LocalStorage', 'LocalChatStore']
