"""
Configuration Settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings."""

    # App info
    app_name: str = "Ask AI"
    app_version: str = "1.0.0"
    debug: bool = True

    # Security (locally issued tokens for the offline fallback)
    secret_key: str = "your-secret-key-change-this-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Completion service (Gemini generateContent)
    gemini_api_key: Optional[str] = None
    gemini_api_url: str = "https://generativelanguage.googleapis.com/v1beta/models"
    completion_timeout: float = 30.0  # seconds, per attempt
    completion_max_retries: int = 3
    history_limit: int = 20

    # Remote persistence API
    api_base_url: str = "http://localhost:3001/api"
    remote_timeout: float = 10.0

    # Local durable storage (fallback store)
    local_storage_path: str = "./data"
    storage_namespace: str = "askAI"

    # CORS for the local UI bridge
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file_path: str = "./logs/askai.log"
    log_file_enabled: bool = True
    log_console_enabled: bool = True
    log_json_format: bool = True  # JSON format for files, human-readable for console
    log_llm_calls: bool = True  # Log completion calls with token usage

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)


settings = Settings()
