"""
Unit tests for request-parameter validation.
"""

import math

import pytest

from askai.llm.validation import (
    AVAILABLE_MODELS,
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    validate_settings,
)
from askai.models import ChatSettings, DEFAULT_MODEL


class TestValidateSettings:
    """Tests for validate_settings."""

    @pytest.mark.parametrize("given, expected", [(-1, 0.0), (5, 1.0), (0.3, 0.3), (0, 0.0), (1, 1.0)])
    def test_temperature_clamped(self, given, expected):
        result = validate_settings(ChatSettings(temperature=given))
        assert result.temperature == expected

    @pytest.mark.parametrize("given, expected", [(50, 100), (100000, 4000), (1500, 1500)])
    def test_max_tokens_clamped(self, given, expected):
        result = validate_settings(ChatSettings(max_tokens=given))
        assert result.max_tokens == expected

    def test_missing_values_use_defaults(self):
        result = validate_settings(ChatSettings(temperature=None, max_tokens=None))
        assert result.temperature == DEFAULT_TEMPERATURE
        assert result.max_tokens == DEFAULT_MAX_TOKENS

    def test_nan_temperature_uses_default(self):
        result = validate_settings(ChatSettings(temperature=math.nan))
        assert result.temperature == DEFAULT_TEMPERATURE

    def test_unknown_model_replaced(self):
        result = validate_settings(ChatSettings(model="gpt-4"))
        assert result.model == DEFAULT_MODEL

    def test_known_model_kept(self):
        for model in AVAILABLE_MODELS:
            assert validate_settings(ChatSettings(model=model)).model == model

    def test_idempotent(self):
        once = validate_settings(ChatSettings(temperature=7, max_tokens=3, model="nope"))
        assert validate_settings(once) == once

    def test_input_not_mutated(self):
        original = ChatSettings(temperature=5)
        validate_settings(original)
        assert original.temperature == 5

    def test_other_fields_preserved(self):
        original = ChatSettings(system_prompt="Be brief", compact_mode=True)
        result = validate_settings(original)
        assert result.system_prompt == "Be brief"
        assert result.compact_mode is True
