"""Authentication and rate limiting for protected routes.

Every request under the protected prefix (``/api/v1`` by default) moves
through::

    Received -> Authenticated -> RateChecked -> Handled -> Annotated -> Sent

with early exits:

    - 401 when the bearer token is missing or wrong
    - 500 when the server has no token configured
    - 429 with Retry-After when the client's window is exhausted

Authentication always runs before the limiter so unauthenticated traffic
never consumes quota. After the handler runs, the response is annotated
with X-RateLimit-Limit / -Remaining / -Reset read back from the store.
Exceptions escaping the handler become a 500 here so that response is
annotated too.

The gatekeeper runs as Starlette middleware, outside FastAPI's exception
handlers, so it builds its error responses itself.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import TYPE_CHECKING

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from inference_gateway.api.auth import authenticate, get_client_identifier
from inference_gateway.api.dependencies import get_request_context
from inference_gateway.api.http_errors import (
    AUTHENTICATE_HEADERS,
    error_response,
    unexpected_error_response,
)
from inference_gateway.api.limits import (
    RATE_LIMIT_LIMIT_HEADER,
    RATE_LIMIT_REMAINING_HEADER,
    RATE_LIMIT_RESET_HEADER,
    RETRY_AFTER_HEADER,
)
from inference_gateway.domain.entities import RateLimitAllowed, RateLimitRejected, RateLimitStatus
from inference_gateway.domain.exceptions import (
    AuthenticationError,
    RateLimitExceededError,
    ServerConfigurationError,
)
from inference_gateway.telemetry.structured_logging import log_request_event

if TYPE_CHECKING:
    from inference_gateway.application.rate_limiter import RateLimiter
    from inference_gateway.core.config import AuthConfig

logger = logging.getLogger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]


def rate_limit_headers(limit: int, remaining: int, reset_seconds: int) -> dict[str, str]:
    return {
        RATE_LIMIT_LIMIT_HEADER: str(limit),
        RATE_LIMIT_REMAINING_HEADER: str(remaining),
        RATE_LIMIT_RESET_HEADER: str(reset_seconds),
    }


class Gatekeeper:
    """Composes authentication and the rate limiter around a handler.

    Attributes:
        limiter: Rate limiter consulted for every authenticated request.
        auth_config: Source of the server's expected bearer token.
    """

    def __init__(self, limiter: RateLimiter, auth_config: AuthConfig) -> None:
        self.limiter = limiter
        self.auth_config = auth_config

    async def handle(self, request: Request, call_next: CallNext) -> Response:
        """Gate one protected request.

        Args:
            request: Incoming request.
            call_next: Invokes the route handler.

        Returns:
            The handler's response annotated with rate limit headers, or an
            error response when authentication or the quota check fails.
        """
        ctx = get_request_context(request)

        try:
            token = authenticate(request.headers.get("authorization"), self.auth_config)
        except AuthenticationError as exc:
            logger.warning(
                "authentication_failed: request_id=%s, client_ip=%s, reason=%s",
                ctx.request_id,
                ctx.client_ip,
                exc,
            )
            return error_response(
                status.HTTP_401_UNAUTHORIZED,
                str(exc),
                "authentication_error",
                "invalid_api_key",
                headers=AUTHENTICATE_HEADERS,
            )
        except ServerConfigurationError as exc:
            return error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                str(exc),
                "server_error",
                "internal_error",
            )

        client_id = get_client_identifier(request, token)
        ctx = replace(ctx, client_id=client_id)
        request.state.request_context = ctx

        decision = await self.limiter.admit(client_id)
        match decision:
            case RateLimitRejected(limit=limit, reset_seconds=reset_seconds):
                retry_after = max(1, reset_seconds)
                exc = RateLimitExceededError(limit, retry_after, self.limiter.window_seconds)
                log_request_event(
                    {
                        "event": "rate_limit_rejected",
                        "request_id": ctx.request_id,
                        "client_id": client_id,
                        "path": request.url.path,
                        "limit": limit,
                        "reset_seconds": retry_after,
                    }
                )
                return error_response(
                    status.HTTP_429_TOO_MANY_REQUESTS,
                    str(exc),
                    "rate_limit_exceeded",
                    "rate_limit_exceeded",
                    headers={
                        **rate_limit_headers(limit, 0, retry_after),
                        RETRY_AFTER_HEADER: str(retry_after),
                    },
                )
            case RateLimitAllowed(fail_open=True):
                log_request_event(
                    {
                        "event": "rate_limit_fail_open",
                        "request_id": ctx.request_id,
                        "client_id": client_id,
                        "path": request.url.path,
                    }
                )

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.exception(
                "unhandled_exception: request_id=%s, path=%s, error_type=%s, error=%s",
                ctx.request_id,
                request.url.path,
                type(exc).__name__,
                exc,
            )
            response = unexpected_error_response(ctx.request_id)

        quota: RateLimitStatus = await self.limiter.peek(client_id)
        response.headers.update(
            rate_limit_headers(quota.limit, quota.remaining, quota.reset_seconds)
        )
        return response


class GatekeeperMiddleware(BaseHTTPMiddleware):
    """Runs the app's Gatekeeper for paths under the protected prefix.

    The Gatekeeper is read from ``app.state.gatekeeper``, which the lifespan
    sets at startup.
    """

    def __init__(self, app: ASGIApp, protected_prefix: str = "/api/v1") -> None:
        super().__init__(app)
        self.protected_prefix = protected_prefix.rstrip("/")

    def is_protected(self, path: str) -> bool:
        return path == self.protected_prefix or path.startswith(self.protected_prefix + "/")

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        if request.method == "OPTIONS" or not self.is_protected(request.url.path):
            return await call_next(request)

        gatekeeper: Gatekeeper | None = getattr(request.app.state, "gatekeeper", None)
        if gatekeeper is None:
            logger.error("gatekeeper_not_initialized: path=%s", request.url.path)
            return error_response(
                status.HTTP_503_SERVICE_UNAVAILABLE,
                "Service is starting up. Please retry shortly.",
                "server_error",
                "service_unavailable",
            )
        return await gatekeeper.handle(request, call_next)


__all__ = ["Gatekeeper", "GatekeeperMiddleware", "rate_limit_headers"]
