"""Domain layer for the Inference Gateway.

This package contains pure domain models and business rules with no
dependencies on frameworks, infrastructure, or external libraries.
"""

from inference_gateway.domain.entities import (
    ConversationMessage,
    GenerationResult,
    InferenceFailure,
    InferenceResult,
    InferenceSuccess,
    InferenceUsage,
    Model,
    RateLimitAllowed,
    RateLimitDecision,
    RateLimitRejected,
    RateLimitStatus,
    RateWindow,
    ReasoningEffort,
    TruncationOutcome,
)
from inference_gateway.domain.exceptions import (
    AuthenticationError,
    DomainError,
    InvalidRequestError,
    RateLimitExceededError,
    ServerConfigurationError,
    UpstreamError,
)

__all__ = [
    "AuthenticationError",
    "ConversationMessage",
    "DomainError",
    "GenerationResult",
    "InferenceFailure",
    "InferenceResult",
    "InferenceSuccess",
    "InferenceUsage",
    "InvalidRequestError",
    "Model",
    "RateLimitAllowed",
    "RateLimitDecision",
    "RateLimitExceededError",
    "RateLimitRejected",
    "RateLimitStatus",
    "RateWindow",
    "ReasoningEffort",
    "ServerConfigurationError",
    "TruncationOutcome",
    "UpstreamError",
]
