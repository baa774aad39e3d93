"""
Request-parameter validation applied before every completion call.
"""

import math
from typing import List, Optional

from ..models import ChatSettings, DEFAULT_MODEL

AVAILABLE_MODELS: List[str] = [
    "gemini-1.5-flash",
    "gemini-1.5-pro",
    "gemini-pro",
]

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2048
MIN_TOKENS = 100
MAX_TOKENS = 4000


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _temperature(value: Optional[float]) -> float:
    if value is None or math.isnan(value):
        return DEFAULT_TEMPERATURE
    return _clamp(float(value), 0.0, 1.0)


def _max_tokens(value: Optional[int]) -> int:
    if value is None:
        return DEFAULT_MAX_TOKENS
    return int(_clamp(int(value), MIN_TOKENS, MAX_TOKENS))


def validate_settings(settings: ChatSettings) -> ChatSettings:
    """
    Return a corrected copy of the settings. Never raises.

    temperature is clamped to [0, 1], max_tokens to [100, 4000] and an
    unknown model is replaced by the default model.
    """
    return settings.model_copy(update={
        "temperature": _temperature(settings.temperature),
        "max_tokens": _max_tokens(settings.max_tokens),
        "model": settings.model if settings.model in AVAILABLE_MODELS else DEFAULT_MODEL,
    })
