"""Services module - persistence, sessions, settings, auth and the chat flow."""

from .persistence_gateway import PersistenceGateway
from .session_manager import SessionManager
from .settings_service import SettingsStore
from .chat_flow import ChatFlow, FlowState, explain_error
from .auth_service import AuthService

__all__ = [
    'PersistenceGateway',
    'SessionManager',
    'SettingsStore',
    'ChatFlow',
    'FlowState',
    'explain_error',
    'AuthService',
]
