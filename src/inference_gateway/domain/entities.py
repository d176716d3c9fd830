"""Domain entities for the Inference Gateway.

This module defines pure domain models with no framework or infrastructure
dependencies. All entities are frozen dataclasses; validation happens in
``__post_init__``.

Key Entities:
    - ConversationMessage: One chronological turn of a conversation
    - TruncationOutcome: Result of fitting a history into a character budget
    - RateWindow: Per-client fixed-window counter record
    - RateLimitAllowed / RateLimitRejected: Tagged rate limit decision
    - RateLimitStatus: Read-only quota figures for response headers
    - InferenceSuccess / InferenceFailure: Tagged inference result
    - GenerationResult: Text, usage and truncation returned to API callers
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

VALID_ROLES = frozenset({"user", "assistant", "system"})
"""Roles accepted in conversation history."""


class Model(StrEnum):
    """Model identifiers known to the gateway.

    Attributes:
        GPT_OSS_120B: 120B parameter open-weight model, 128k token window.
        GPT_OSS_20B: 20B parameter open-weight model, 128k token window.
    """

    GPT_OSS_120B = "@cf/openai/gpt-oss-120b"
    GPT_OSS_20B = "@cf/openai/gpt-oss-20b"


class ReasoningEffort(StrEnum):
    """Reasoning effort hint forwarded to reasoning-capable models."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(slots=True, frozen=True)
class ConversationMessage:
    """A single message in a conversation.

    Attributes:
        role: One of "user", "assistant" or "system".
        content: Message text. May be empty.

    Raises:
        ValueError: If role is not a valid conversation role.
    """

    role: str
    content: str

    def __post_init__(self) -> None:
        if self.role not in VALID_ROLES:
            raise ValueError(
                f"Invalid role '{self.role}'. Must be one of: {', '.join(sorted(VALID_ROLES))}"
            )


@dataclass(slots=True, frozen=True)
class TruncationOutcome:
    """History retained after applying a character budget.

    Attributes:
        retained_messages: Messages kept, oldest first. Begins with the
            truncation marker when was_truncated is True.
        was_truncated: Whether older messages were dropped.
        original_count: Number of messages supplied.
        retained_count: Number of messages kept, including the marker.
    """

    retained_messages: tuple[ConversationMessage, ...] = ()
    was_truncated: bool = False
    original_count: int = 0
    retained_count: int = 0


@dataclass(slots=True, frozen=True)
class RateWindow:
    """Fixed-window request counter for one client.

    Timestamps are epoch milliseconds. The window is half-open:
    ``[window_start_ms, window_end_ms)``.
    """

    request_count: int
    window_start_ms: int
    window_end_ms: int

    def is_expired(self, now_ms: int) -> bool:
        """Return True when now_ms falls at or after the window end."""
        return now_ms >= self.window_end_ms

    def incremented(self) -> RateWindow:
        """Return a copy of this window with one more request counted."""
        return RateWindow(self.request_count + 1, self.window_start_ms, self.window_end_ms)

    @classmethod
    def fresh(cls, now_ms: int, window_length_ms: int) -> RateWindow:
        """Open a new window at now_ms holding a single request."""
        return cls(1, now_ms, now_ms + window_length_ms)


@dataclass(slots=True, frozen=True)
class RateLimitAllowed:
    """Request admitted.

    Attributes:
        limit: Requests allowed per window.
        remaining: Requests left in the current window.
        reset_seconds: Seconds until the window resets.
        fail_open: True when the store was unreachable and the request was
            admitted without consulting it.
    """

    limit: int
    remaining: int
    reset_seconds: int
    fail_open: bool = False


@dataclass(slots=True, frozen=True)
class RateLimitRejected:
    """Request rejected because the window's quota is exhausted."""

    limit: int
    reset_seconds: int


RateLimitDecision = RateLimitAllowed | RateLimitRejected


@dataclass(slots=True, frozen=True)
class RateLimitStatus:
    """Quota figures reported in X-RateLimit-* response headers."""

    limit: int
    remaining: int
    reset_seconds: int


@dataclass(slots=True, frozen=True)
class InferenceUsage:
    """Token usage reported by the inference service."""

    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None


@dataclass(slots=True, frozen=True)
class InferenceSuccess:
    """Inference call that produced text.

    Attributes:
        text: Generated text. Never empty.
        usage: Token usage if the service reported it.
        raw: Decoded upstream payload, kept for pass-through responses.
    """

    text: str
    usage: InferenceUsage | None = None
    raw: dict[str, Any] = field(default_factory=dict)
    ok: bool = field(default=True, init=False)


@dataclass(slots=True, frozen=True)
class InferenceFailure:
    """Inference call that failed or returned no usable text."""

    reason: str
    ok: bool = field(default=False, init=False)


InferenceResult = InferenceSuccess | InferenceFailure


@dataclass(slots=True, frozen=True)
class GenerationResult:
    """Outcome of a gateway generation request.

    Attributes:
        text: Generated text.
        model: Model that produced it.
        usage: Token usage, reported or estimated.
        truncation: History truncation applied, None for requests without
            conversation history.
        raw: Decoded upstream payload.
    """

    text: str
    model: str
    usage: InferenceUsage
    truncation: TruncationOutcome | None = None
    raw: dict[str, Any] = field(default_factory=dict)
