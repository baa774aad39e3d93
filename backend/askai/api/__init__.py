"""API module."""

from .auth import router as auth_router
from .sessions import router as sessions_router
from .chat import router as chat_router
from .settings import router as settings_router, data_router

__all__ = ['auth_router', 'sessions_router', 'chat_router', 'settings_router', 'data_router']
