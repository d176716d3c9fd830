"""Dependency injection for FastAPI endpoints.

Infrastructure components are created during lifespan startup and stored
here through set_dependencies(); route handlers reach them through the
get_*() functions, wired with FastAPI's Depends().

Dependency Flow:
    1. Lifespan startup builds the store, inference client, limiter and adapters
    2. set_dependencies() stores the instances
    3. get_*() functions return them (503 if startup has not run)
    4. get_*_use_case() functions construct use cases with injected dependencies
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Annotated, TypeVar

from fastapi import Depends, HTTPException, Request, status
from pydantic import BaseModel, ValidationError

from inference_gateway.api.auth import get_client_address
from inference_gateway.api.http_errors import invalid_request_error, request_too_large_error
from inference_gateway.api.limits import MAX_REQUEST_BODY_BYTES
from inference_gateway.api.models import RequestContext
from inference_gateway.application.interfaces import (
    InferenceClientInterface,
    KeyValueStoreInterface,
)
from inference_gateway.application.rate_limiter import RateLimiter
from inference_gateway.application.use_cases import (
    ChatCompletionsUseCase,
    ChatUseCase,
    CodeUseCase,
    CompletionUseCase,
)
from inference_gateway.core.config import settings
from inference_gateway.infrastructure.adapters import (
    MetricsCollectorAdapter,
    RequestLoggerAdapter,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

# Global instances (initialized in lifespan)
_inference_client: InferenceClientInterface | None = None
_store: KeyValueStoreInterface | None = None
_rate_limiter: RateLimiter | None = None
_logger_adapter: RequestLoggerAdapter | None = None
_metrics_adapter: MetricsCollectorAdapter | None = None


def validate_dependencies() -> dict[str, bool]:
    """Report which dependencies have been initialized."""
    return {
        "inference_client": _inference_client is not None,
        "store": _store is not None,
        "rate_limiter": _rate_limiter is not None,
        "logger_adapter": _logger_adapter is not None,
        "metrics_adapter": _metrics_adapter is not None,
    }


def set_dependencies(
    inference_client: InferenceClientInterface | None,
    store: KeyValueStoreInterface | None,
    rate_limiter: RateLimiter | None,
    logger_adapter: RequestLoggerAdapter | None,
    metrics_adapter: MetricsCollectorAdapter | None,
) -> None:
    """Set global dependencies (called during lifespan startup and shutdown).

    Passing None for every argument clears them, after which the get_*()
    functions answer 503 again.
    """
    global _inference_client, _store, _rate_limiter, _logger_adapter, _metrics_adapter
    _inference_client = inference_client
    _store = store
    _rate_limiter = rate_limiter
    _logger_adapter = logger_adapter
    _metrics_adapter = metrics_adapter


def _not_initialized(name: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={
            "message": f"{name} not initialized",
            "type": "server_error",
            "code": "service_unavailable",
        },
    )


def get_inference_client() -> InferenceClientInterface:
    """Get the inference client.

    Raises:
        HTTPException: 503 if the client is not initialized.
    """
    if _inference_client is None:
        raise _not_initialized("Inference client")
    return _inference_client


def get_store() -> KeyValueStoreInterface:
    """Get the key-value store.

    Raises:
        HTTPException: 503 if the store is not initialized.
    """
    if _store is None:
        raise _not_initialized("Key-value store")
    return _store


def get_rate_limiter() -> RateLimiter | None:
    """Get the rate limiter, or None before startup."""
    return _rate_limiter


def get_logger_adapter() -> RequestLoggerAdapter:
    if _logger_adapter is None:
        raise _not_initialized("Request logger adapter")
    return _logger_adapter


def get_metrics_adapter() -> MetricsCollectorAdapter:
    if _metrics_adapter is None:
        raise _not_initialized("Metrics collector adapter")
    return _metrics_adapter


def get_request_context(request: Request) -> RequestContext:
    """Extract (or reuse) the request context.

    The context is cached in request.state so middleware, the gatekeeper
    and route handlers all share one request_id. Honours an incoming
    X-Request-ID header.
    """
    ctx: RequestContext | None = getattr(request.state, "request_context", None)
    if ctx is None:
        peer = request.client.host if request.client else None
        ctx = RequestContext(
            request_id=request.headers.get("x-request-id") or str(uuid.uuid4()),
            client_ip=get_client_address(request.headers, peer) or "unknown",
            user_agent=request.headers.get("user-agent"),
        )
        request.state.request_context = ctx
    return ctx


def get_chat_use_case(
    client: Annotated[InferenceClientInterface, Depends(get_inference_client)],
    logger_adapter: Annotated[RequestLoggerAdapter, Depends(get_logger_adapter)],
    metrics_adapter: Annotated[MetricsCollectorAdapter, Depends(get_metrics_adapter)],
) -> ChatUseCase:
    """Get ChatUseCase instance configured from CONTEXT_* and INFERENCE_* settings."""
    return ChatUseCase(
        client=client,
        logger=logger_adapter,
        metrics=metrics_adapter,
        default_model=settings.inference.default_model,
        char_budgets=settings.context.model_char_budgets,
        default_char_budget=settings.context.default_char_budget,
    )


def get_chat_completions_use_case(
    chat: Annotated[ChatUseCase, Depends(get_chat_use_case)],
) -> ChatCompletionsUseCase:
    return ChatCompletionsUseCase(chat)


def get_code_use_case(
    chat: Annotated[ChatUseCase, Depends(get_chat_use_case)],
) -> CodeUseCase:
    return CodeUseCase(chat)


def get_completion_use_case(
    client: Annotated[InferenceClientInterface, Depends(get_inference_client)],
    logger_adapter: Annotated[RequestLoggerAdapter, Depends(get_logger_adapter)],
    metrics_adapter: Annotated[MetricsCollectorAdapter, Depends(get_metrics_adapter)],
) -> CompletionUseCase:
    return CompletionUseCase(
        client=client,
        logger=logger_adapter,
        metrics=metrics_adapter,
        default_model=settings.inference.default_model,
        default_max_tokens=settings.inference.default_max_tokens,
        default_temperature=settings.inference.default_temperature,
        extra_models=settings.context.model_char_budgets,
    )


def _error_location(loc: tuple[int | str, ...]) -> str | None:
    parts = [str(part) for part in loc if part not in ("body", "__root__")]
    return ".".join(parts) or None


async def parse_request_json(request: Request, model_cls: type[T]) -> T:
    """Parse and validate a JSON request body.

    Args:
        request: FastAPI Request object containing JSON body.
        model_cls: Pydantic model class to validate against.

    Returns:
        Validated Pydantic model instance.

    Raises:
        HTTPException: 413 if the body exceeds MAX_REQUEST_BODY_BYTES; 400
            for a missing body, malformed JSON or a failed validation, with
            ``param`` naming the offending field.
    """
    body_bytes = await request.body()

    if not body_bytes:
        raise invalid_request_error("Request body is required.")

    if len(body_bytes) > MAX_REQUEST_BODY_BYTES:
        raise request_too_large_error(len(body_bytes))

    try:
        body = json.loads(body_bytes)
    except ValueError as exc:
        raise invalid_request_error(f"Invalid JSON in request body: {exc!s}") from exc

    if not isinstance(body, dict):
        raise invalid_request_error("Request body must be a JSON object.")

    try:
        return model_cls.model_validate(body)
    except ValidationError as exc:
        first = exc.errors()[0]
        param = _error_location(first.get("loc", ()))
        message = first.get("msg", "Invalid value").removeprefix("Value error, ")
        if param:
            message = f"Invalid value for '{param}': {message}"
        raise invalid_request_error(message, param=param) from exc


__all__ = [
    "get_chat_completions_use_case",
    "get_chat_use_case",
    "get_code_use_case",
    "get_completion_use_case",
    "get_inference_client",
    "get_logger_adapter",
    "get_metrics_adapter",
    "get_rate_limiter",
    "get_request_context",
    "get_store",
    "parse_request_json",
    "set_dependencies",
    "validate_dependencies",
]
