"""Application layer for the Inference Gateway.

This package contains the rate limiter, conversation context assembly and
use cases. It depends only on the domain layer and defines interfaces
(protocols) for infrastructure dependencies.
"""

from inference_gateway.application.context import (
    TRUNCATION_MARKER,
    build_instructions,
    character_limit_for_model,
    truncate_history,
)
from inference_gateway.application.interfaces import (
    InferenceClientInterface,
    KeyValueStoreInterface,
    MetricsCollectorInterface,
    RequestLoggerInterface,
)
from inference_gateway.application.rate_limiter import RateLimiter
from inference_gateway.application.use_cases import (
    ChatCompletionsUseCase,
    ChatUseCase,
    CodeUseCase,
    CompletionUseCase,
)

__all__ = [
    "TRUNCATION_MARKER",
    "ChatCompletionsUseCase",
    "ChatUseCase",
    "CodeUseCase",
    "CompletionUseCase",
    "InferenceClientInterface",
    "KeyValueStoreInterface",
    "MetricsCollectorInterface",
    "RateLimiter",
    "RequestLoggerInterface",
    "build_instructions",
    "character_limit_for_model",
    "truncate_history",
]
