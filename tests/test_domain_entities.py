"""
Behavioral tests for domain entities and exceptions.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError

import pytest

from inference_gateway.domain.entities import (
    ConversationMessage,
    InferenceFailure,
    InferenceSuccess,
    Model,
    RateWindow,
    ReasoningEffort,
    TruncationOutcome,
)
from inference_gateway.domain.exceptions import (
    DomainError,
    InvalidRequestError,
    RateLimitExceededError,
    UpstreamError,
)


class TestConversationMessage:
    @pytest.mark.parametrize("role", ["user", "assistant", "system"])
    def test_valid_roles(self, role):
        assert ConversationMessage(role=role, content="hi").role == role

    def test_invalid_role(self):
        with pytest.raises(ValueError, match="Invalid role 'tool'"):
            ConversationMessage(role="tool", content="hi")

    def test_empty_content_allowed(self):
        assert ConversationMessage(role="user", content="").content == ""

    def test_frozen(self):
        message = ConversationMessage(role="user", content="hi")
        with pytest.raises(FrozenInstanceError):
            message.content = "changed"  # type: ignore[misc]


class TestRateWindow:
    def test_fresh_window(self):
        assert RateWindow.fresh(1_000, 60_000) == RateWindow(1, 1_000, 61_000)

    def test_expiry_is_half_open(self):
        window = RateWindow(1, 0, 1_000)

        assert window.is_expired(999) is False
        assert window.is_expired(1_000) is True

    def test_incremented_returns_copy(self):
        window = RateWindow(1, 0, 1_000)

        assert window.incremented() == RateWindow(2, 0, 1_000)
        assert window.request_count == 1


class TestInferenceResult:
    def test_tags(self):
        assert InferenceSuccess(text="x").ok is True
        assert InferenceFailure(reason="boom").ok is False

    def test_pattern_matching(self):
        match InferenceFailure(reason="boom"):
            case InferenceSuccess():
                branch = "success"
            case InferenceFailure(reason=reason):
                branch = reason
        assert branch == "boom"


class TestEnumsAndDefaults:
    def test_model_values(self):
        assert Model.GPT_OSS_120B == "@cf/openai/gpt-oss-120b"
        assert Model.GPT_OSS_20B == "@cf/openai/gpt-oss-20b"

    def test_reasoning_effort(self):
        assert str(ReasoningEffort.HIGH) == "high"

    def test_truncation_outcome_defaults(self):
        outcome = TruncationOutcome()
        assert outcome.retained_messages == ()
        assert outcome.was_truncated is False


class TestExceptions:
    def test_hierarchy(self):
        assert issubclass(InvalidRequestError, DomainError)
        assert issubclass(UpstreamError, DomainError)
        assert issubclass(RateLimitExceededError, DomainError)

    def test_invalid_request_carries_param(self):
        exc = InvalidRequestError("bad temperature", param="temperature")
        assert exc.param == "temperature"
        assert str(exc) == "bad temperature"

    @pytest.mark.parametrize(
        ("window_seconds", "unit"),
        [(3600, "hour"), (60, "minute"), (86400, "day"), (90, "90 seconds")],
    )
    def test_rate_limit_message(self, window_seconds, unit):
        exc = RateLimitExceededError(100, 30, window_seconds)

        assert str(exc) == f"Rate limit exceeded. Maximum 100 requests per {unit} allowed."
        assert exc.reset_seconds == 30
