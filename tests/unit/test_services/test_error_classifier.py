"""Tests for provider error classification"""

import pytest

from src.services.generation.error_classifier import (
    ErrorCategory,
    PERMANENT_ERROR_KEYWORDS,
    TRANSIENT_ERROR_KEYWORDS,
    classify,
    classify_exception,
    is_permanent,
    is_transient,
)
from src.services.generation.exceptions import ProviderError


class TestKeywordSets:

    def test_sets_are_disjoint(self):
        assert not TRANSIENT_ERROR_KEYWORDS & PERMANENT_ERROR_KEYWORDS

    @pytest.mark.parametrize("keyword", sorted(TRANSIENT_ERROR_KEYWORDS))
    def test_each_transient_keyword_classifies_transient(self, keyword):
        assert classify(f"upstream said: {keyword}") == ErrorCategory.TRANSIENT

    @pytest.mark.parametrize("keyword", sorted(PERMANENT_ERROR_KEYWORDS))
    def test_each_permanent_keyword_classifies_permanent(self, keyword):
        assert classify(f"upstream said: {keyword}") == ErrorCategory.PERMANENT


class TestClassify:

    def test_case_insensitive(self):
        assert classify("Rate Limit Exceeded") == ErrorCategory.TRANSIENT
        assert classify("UNAUTHORIZED") == ErrorCategory.PERMANENT

    def test_permanent_wins_over_transient(self):
        message = "401 Unauthorized after timeout"
        assert classify(message) == ErrorCategory.PERMANENT
        assert is_permanent(message)
        assert not is_transient(message)

    def test_unmatched_is_unknown_and_not_transient(self):
        assert classify("model produced nothing useful") == ErrorCategory.UNKNOWN
        assert not is_transient("model produced nothing useful")
        assert not is_permanent("model produced nothing useful")

    @pytest.mark.parametrize("message", [
        "max_tokens is too large: 5000. This model supports at most 4096 completion tokens",
        "prompt exceeds 1500 characters",
        "request id 45029 rejected",
        "field 4010 is invalid",
    ])
    def test_status_codes_only_match_as_whole_numbers(self, message):
        assert classify(message) == ErrorCategory.UNKNOWN
        assert not is_transient(message)

    def test_status_code_in_parentheses_still_matches(self):
        assert classify("Google API error (503): backend busy") == ErrorCategory.TRANSIENT
        assert classify("OpenAI API error (400): 429 quota") == ErrorCategory.TRANSIENT

    def test_empty_message(self):
        assert classify("") == ErrorCategory.UNKNOWN
        assert classify(None) == ErrorCategory.UNKNOWN

    def test_classify_exception_uses_message(self):
        error = ProviderError("anthropic", "Anthropic API error (529): Overloaded", 529)
        assert classify_exception(error) == ErrorCategory.TRANSIENT

    def test_provider_error_keeps_vendor_text(self):
        error = ProviderError("openai", "OpenAI API error (401): Incorrect API key provided", 401)
        assert str(error) == "openai: OpenAI API error (401): Incorrect API key provided"
        assert error.status_code == 401
        assert classify_exception(error) == ErrorCategory.PERMANENT
