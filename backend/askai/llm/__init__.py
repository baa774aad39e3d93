"""LLM module - chat-completion client and request validation."""

from .base import CompletionProvider, CompletionResult
from .gemini_provider import GeminiProvider
from .validation import validate_settings, AVAILABLE_MODELS
from .factory import create_completion_provider

__all__ = [
    'CompletionProvider',
    'CompletionResult',
    'GeminiProvider',
    'validate_settings',
    'AVAILABLE_MODELS',
    'create_completion_provider',
]
