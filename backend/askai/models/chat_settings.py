"""
Chat Settings - per-user request parameters and display preferences.
"""

from typing import Optional

from .base import CamelModel

DEFAULT_MODEL = "gemini-1.5-flash"


class ChatSettings(CamelModel):
    """User preferences. Out-of-range values are allowed here and clamped by validate_settings."""
    model: str = DEFAULT_MODEL
    temperature: Optional[float] = 0.7
    max_tokens: Optional[int] = 2048
    system_prompt: str = ""
    auto_save: bool = True
    sound_enabled: bool = True
    compact_mode: bool = False
    show_timestamps: bool = True
    show_token_count: bool = False
