"""
Completion Provider Base - Abstract base for chat-completion backends.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..models import ChatSettings
from .validation import AVAILABLE_MODELS


@dataclass
class CompletionResult:
    """Outcome of one logical completion request."""
    response: str
    tokens: Optional[int] = None
    model: str = ""
    raw: Optional[Dict[str, Any]] = None


class CompletionProvider(ABC):
    """
    Abstract base class for completion providers.

    History entries are dicts with 'role' ("user" or "assistant") and 'content'.
    """

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        settings: ChatSettings,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> CompletionResult:
        """
        Generate a reply to `prompt` given the prior conversation.

        Raises:
            CompletionError: one of the completion error kinds
        """
        pass

    def available_models(self) -> List[str]:
        """Model identifiers accepted by validate_settings."""
        return list(AVAILABLE_MODELS)
