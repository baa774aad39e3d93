"""
Ask AI - Main FastAPI Application

Local bridge between the chat UI and the chat core.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .api import auth_router, sessions_router, chat_router, settings_router, data_router
from .core.container import ChatContainer
from .core.logging_config import setup_logging

# Logger will be initialized after setup_logging() is called
logger = logging.getLogger(__name__)


def create_app(container: Optional[ChatContainer] = None, config: Any = settings) -> FastAPI:
    """
    Build the application.

    Args:
        container: Prebuilt services (tests); built in the lifespan otherwise
        config: Application settings
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup and shutdown events."""
        # Startup
        setup_logging(config)

        chat = container or ChatContainer(config)
        app.state.container = chat
        workspace = await chat.start()

        logger.info(f"Starting {config.app_name} v{config.app_version}")
        logger.info(f"Storage path: {config.local_storage_path}")
        logger.info(f"Remote API: {config.api_base_url}")
        logger.info(f"Log level: {config.log_level.upper()}")
        if workspace is not None:
            logger.info(f"Restored sign-in for user {workspace.user.id}")
        if not config.gemini_api_key:
            logger.warning("GEMINI_API_KEY is not set; chat replies will report a configuration error")
        yield
        # Shutdown
        await chat.shutdown()
        logger.info(f"Shutting down {config.app_name}")

    app = FastAPI(
        title=config.app_name,
        version=config.app_version,
        description="Local chat assistant backed by Google Gemini",
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(auth_router)
    app.include_router(sessions_router)
    app.include_router(chat_router)
    app.include_router(settings_router)
    app.include_router(data_router)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "app": config.app_name,
            "version": config.app_version,
            "status": "running",
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        chat = app.state.container
        return {
            "status": "healthy",
            "signedIn": chat.workspace is not None,
            "sessionsError": chat.workspace.sessions_error if chat.workspace else None,
            "version": config.app_version,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "askai.main:app",
        host="127.0.0.1",
        port=8000,
        reload=settings.debug
    )
