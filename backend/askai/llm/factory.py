"""
Completion Provider Factory - Creates the configured provider instance.
"""

from typing import Any

from .base import CompletionProvider
from .gemini_provider import GeminiProvider


def create_completion_provider(config: Any, provider: str = "gemini") -> CompletionProvider:
    """
    Create a completion provider from a Settings object.

    A missing API key is not an error here; the provider reports it on the
    first request so the conversation can show a readable message.

    Raises:
        ValueError: for an unknown provider name
    """
    if provider == "gemini":
        return GeminiProvider(
            api_key=config.gemini_api_key,
            base_url=config.gemini_api_url,
            timeout=config.completion_timeout,
            max_retries=config.completion_max_retries,
            history_limit=config.history_limit,
            log_calls=config.log_llm_calls,
        )
    raise ValueError(f"Unsupported completion provider: {provider}")
