"""Models module."""

from .base import CamelModel, UTCDateTime, utcnow
from .user import User, UserCreate, AuthResult
from .session import Attachment, Message, ChatSession, SessionUpdate, MessageUpdate
from .chat_settings import ChatSettings, DEFAULT_MODEL

__all__ = [
    'CamelModel', 'UTCDateTime', 'utcnow',
    'User', 'UserCreate', 'AuthResult',
    'Attachment', 'Message', 'ChatSession', 'SessionUpdate', 'MessageUpdate',
    'ChatSettings', 'DEFAULT_MODEL',
]
