"""Tests for generation request and result models"""

import pytest
from pydantic import ValidationError

from src.models.generation import (
    AUTO,
    GenerationRequest,
    GenerationResult,
    ProviderId,
    PROVIDER_PREFERENCE_ORDER,
)


class TestGenerationRequest:

    def test_defaults(self):
        request = GenerationRequest(prompt="Write")

        assert request.provider == AUTO
        assert request.model == AUTO
        assert request.api_key == ""
        assert request.max_tokens == 2000
        assert request.temperature == 0.7
        assert request.is_auto_provider

    def test_provider_normalized(self):
        request = GenerationRequest(prompt="Write", provider=" OpenAI ")

        assert request.provider == ProviderId.OPENAI
        assert request.provider_id == "openai"
        assert not request.is_auto_provider

    def test_unknown_provider(self):
        with pytest.raises(ValidationError, match="Unsupported provider: mistral"):
            GenerationRequest(prompt="Write", provider="mistral")

    def test_blank_model_means_auto(self):
        assert GenerationRequest(prompt="Write", model="  ").model == AUTO

    @pytest.mark.parametrize("field,value", [
        ("temperature", -0.1),
        ("temperature", 1.01),
        ("max_tokens", 0),
    ])
    def test_bounds(self, field, value):
        with pytest.raises(ValidationError):
            GenerationRequest(prompt="Write", **{field: value})

    def test_immutable(self):
        request = GenerationRequest(prompt="Write")

        with pytest.raises(ValidationError):
            request.prompt = "Other"


class TestGenerationResult:

    def test_model_must_be_concrete(self):
        with pytest.raises(ValidationError):
            GenerationResult(content="x", provider=ProviderId.OPENAI, model=AUTO)

    def test_defaults(self):
        result = GenerationResult(content="x", provider="google", model="gemini-1.5-pro")

        assert result.provider == ProviderId.GOOGLE
        assert result.cached is False
        assert result.tokens_used is None


def test_preference_order_covers_every_provider():
    assert PROVIDER_PREFERENCE_ORDER[0] == ProviderId.OPENAI
    assert PROVIDER_PREFERENCE_ORDER[-1] == ProviderId.DEEPSEEK
    assert set(PROVIDER_PREFERENCE_ORDER) == set(ProviderId)
