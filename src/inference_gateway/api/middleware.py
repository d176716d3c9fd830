"""Middleware and error handlers for the API.

Middleware Stack (outermost first):
    1. CORSMiddleware: Handles cross-origin requests and preflights
    2. StructuredLoggingMiddleware: Logs every HTTP request, including
       requests the gatekeeper rejects
    3. GatekeeperMiddleware: Authentication and rate limiting for /api/v1

Global exception handlers render every error as
``{"error": {"message", "type", "code", "param"?}}``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from fastapi import HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from inference_gateway.api.dependencies import get_request_context
from inference_gateway.api.gatekeeper import GatekeeperMiddleware
from inference_gateway.api.http_errors import (
    error_kind_for_status,
    error_response,
    unexpected_error_response,
)
from inference_gateway.core.config import settings
from inference_gateway.telemetry.structured_logging import log_request_event

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware that emits a structured log event for every HTTP request.

    The event is written in a finally block so failed requests are logged
    too; exceptions still propagate.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        start_time = time.perf_counter()
        status_code: int | None = None
        error_type: str | None = None
        error_message: str | None = None
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        except Exception as exc:
            status_code = getattr(exc, "status_code", status.HTTP_500_INTERNAL_SERVER_ERROR)
            error_type = type(exc).__name__
            error_message = str(exc)
            raise
        finally:
            ctx = get_request_context(request)
            event: dict[str, object] = {
                "event": "http_request",
                "request_id": ctx.request_id,
                "client_ip": ctx.client_ip,
                "client_id": ctx.client_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": status_code,
                "latency_ms": round((time.perf_counter() - start_time) * 1000, 3),
            }
            if error_type:
                event["error_type"] = error_type
                event["error_message"] = error_message
            log_request_event(event)


def setup_middleware(app: FastAPI) -> None:
    """Configure middleware for the FastAPI application.

    Starlette wraps each added middleware around the previous ones, so the
    gatekeeper is added first to sit innermost.
    """
    app.add_middleware(GatekeeperMiddleware, protected_prefix=settings.api.protected_prefix)
    app.add_middleware(StructuredLoggingMiddleware)

    cors_origins = settings.api.cors_origins
    allow_origins = (
        [origin.strip() for origin in cors_origins.split(",")] if cors_origins != "*" else ["*"]
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=allow_origins != ["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
        ],
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure global exception handlers.

    Registers handlers for:
    - HTTPException (status preserved, dict details rendered as the error body)
    - RequestValidationError (400 invalid_request_error)
    - Exception (500, generic message)
    """

    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        ctx = get_request_context(request)
        error_type, code = error_kind_for_status(exc.status_code)
        param: str | None = None
        match exc.detail:
            case {"message": str() as message, **rest}:
                error_type = rest.get("type", error_type)
                code = rest.get("code", code)
                param = rest.get("param")
            case str() as message:
                pass
            case _:
                message = str(exc.detail)
        return error_response(
            exc.status_code,
            message,
            error_type,
            code,
            param=param,
            request_id=ctx.request_id,
            headers=getattr(exc, "headers", None),
        )

    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        ctx = get_request_context(request)
        error_details = exc.errors()
        logger.warning("validation_error: request_id=%s, errors=%s", ctx.request_id, error_details)
        param: str | None = None
        message = "Invalid request parameters"
        if error_details:
            first_error = error_details[0]
            loc = [str(part) for part in first_error.get("loc", ()) if part != "body"]
            param = ".".join(loc) or None
            message = f"Invalid value for '{param}': {first_error.get('msg', 'Invalid value')}"
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            message,
            "invalid_request_error",
            "invalid_request",
            param=param,
            request_id=ctx.request_id,
        )

    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        ctx = get_request_context(request)
        logger.exception(
            "unhandled_exception: request_id=%s, error_type=%s, error=%s",
            ctx.request_id,
            type(exc).__name__,
            str(exc),
        )
        return unexpected_error_response(ctx.request_id)

    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(RequestValidationError)(validation_exception_handler)
    app.exception_handler(Exception)(global_exception_handler)


__all__ = ["StructuredLoggingMiddleware", "setup_exception_handlers", "setup_middleware"]
