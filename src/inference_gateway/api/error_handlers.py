"""Shared error handling for route handlers.

Converts exceptions raised while serving a route into HTTPExceptions with
the standard error body, logging each one.

Error Handling Strategy:
    - HTTPException: re-raised unchanged
    - InvalidRequestError, ValueError -> 400 invalid_request_error
    - UpstreamError -> 502 upstream_error
    - Anything else -> 500 with a generic message and the request id
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import NoReturn

from fastapi import HTTPException, status

from inference_gateway.api.http_errors import (
    internal_error,
    invalid_request_error,
    upstream_error,
)
from inference_gateway.api.models import RequestContext
from inference_gateway.domain.exceptions import InvalidRequestError, UpstreamError
from inference_gateway.telemetry.structured_logging import log_request_event

logger = logging.getLogger(__name__)


def handle_route_errors(
    ctx: RequestContext,
    operation_name: str,
    *,
    start_time: float | None = None,
    event_builder: Callable[[], dict[str, object]] | None = None,
) -> Callable[[Exception], NoReturn]:
    """Create an error handler function for a route handler.

    Args:
        ctx: Request context with request_id for logging.
        operation_name: Operation name (e.g., "chat", "completions").
        start_time: perf_counter() value at request start, for latency.
        event_builder: Returns extra fields for the logged event.

    Returns:
        Function that takes an exception and raises HTTPException.

    Example:
        >>> handle_error = handle_route_errors(ctx, "chat")
        >>> try:
        ...     result = await use_case.execute(...)
        ... except Exception as exc:
        ...     handle_error(exc)
    """

    def _build_event(**extra: object) -> dict[str, object]:
        event: dict[str, object] = {
            "event": "api_request",
            "operation": operation_name,
            "status": "error",
            "request_id": ctx.request_id,
            "client_id": ctx.client_id,
        }
        if start_time is not None:
            event["latency_ms"] = round((time.perf_counter() - start_time) * 1000, 3)
        if event_builder:
            event.update({k: v for k, v in (event_builder() or {}).items() if v is not None})
        event.update({k: v for k, v in extra.items() if v is not None})
        return event

    def handle_error(exc: Exception) -> NoReturn:
        match exc:
            case HTTPException():
                raise exc

            case InvalidRequestError() | ValueError():
                logger.warning(
                    "%s_validation_error: request_id=%s, error=%s",
                    operation_name,
                    ctx.request_id,
                    exc,
                )
                log_request_event(
                    _build_event(
                        error_type=type(exc).__name__,
                        error_message=str(exc),
                        http_status=status.HTTP_400_BAD_REQUEST,
                    )
                )
                raise invalid_request_error(str(exc), param=getattr(exc, "param", None)) from exc

            case UpstreamError():
                # use case already logged the upstream reason
                raise upstream_error(str(exc)) from exc

            case _:
                logger.exception(
                    "unexpected_error_%s: request_id=%s, error_type=%s",
                    operation_name,
                    ctx.request_id,
                    type(exc).__name__,
                )
                log_request_event(
                    _build_event(
                        error_type=type(exc).__name__,
                        error_message=str(exc),
                        http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    )
                )
                raise internal_error(ctx.request_id) from exc

    return handle_error


__all__ = ["handle_route_errors"]
