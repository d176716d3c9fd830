"""Error payloads and HTTPException builders.

Every error leaving the gateway has the shape::

    {"error": {"message": str, "type": str, "code": str, "param": str?}}

Route handlers raise the HTTPExceptions built here; the gatekeeper, which
runs as middleware outside FastAPI's exception handling, returns the
JSONResponses built by error_response() directly.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from fastapi import HTTPException, status
from fastapi.responses import JSONResponse

from inference_gateway.api.limits import MAX_REQUEST_BODY_BYTES

AUTHENTICATE_HEADERS = {"WWW-Authenticate": 'Bearer realm="API"'}

# Fallback (type, code) for HTTPExceptions raised with a plain string detail
_STATUS_ERROR_KINDS: dict[int, tuple[str, str]] = {
    status.HTTP_400_BAD_REQUEST: ("invalid_request_error", "invalid_request"),
    status.HTTP_401_UNAUTHORIZED: ("authentication_error", "invalid_api_key"),
    status.HTTP_404_NOT_FOUND: ("invalid_request_error", "not_found"),
    status.HTTP_405_METHOD_NOT_ALLOWED: ("invalid_request_error", "method_not_allowed"),
    status.HTTP_413_REQUEST_ENTITY_TOO_LARGE: ("invalid_request_error", "request_too_large"),
    status.HTTP_429_TOO_MANY_REQUESTS: ("rate_limit_exceeded", "rate_limit_exceeded"),
    status.HTTP_502_BAD_GATEWAY: ("upstream_error", "upstream_error"),
    status.HTTP_503_SERVICE_UNAVAILABLE: ("server_error", "service_unavailable"),
}


def error_kind_for_status(status_code: int) -> tuple[str, str]:
    """(type, code) used for a status when the raiser supplied none."""
    if status_code in _STATUS_ERROR_KINDS:
        return _STATUS_ERROR_KINDS[status_code]
    if status_code >= 500:
        return "server_error", "internal_error"
    return "invalid_request_error", "invalid_request"


def error_payload(
    message: str,
    error_type: str,
    code: str,
    param: str | None = None,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Build the standard ``{"error": {...}}`` body, omitting empty fields."""
    error: dict[str, Any] = {"message": message, "type": error_type, "code": code}
    if param is not None:
        error["param"] = param
    if request_id is not None:
        error["request_id"] = request_id
    return {"error": error}


def error_response(
    status_code: int,
    message: str,
    error_type: str,
    code: str,
    *,
    param: str | None = None,
    request_id: str | None = None,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    """JSONResponse carrying the standard error body."""
    return JSONResponse(
        status_code=status_code,
        content=error_payload(message, error_type, code, param=param, request_id=request_id),
        headers=dict(headers) if headers else None,
    )


def invalid_request_error(message: str, param: str | None = None) -> HTTPException:
    """Return a 400 HTTPException for a malformed or out-of-range field."""

    detail: dict[str, Any] = {
        "message": message,
        "type": "invalid_request_error",
        "code": "invalid_request",
    }
    if param is not None:
        detail["param"] = param
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def request_too_large_error(actual_bytes: int) -> HTTPException:
    """Return a 413 HTTPException for an oversized body."""

    return HTTPException(
        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        detail={
            "message": (
                f"Request body is {actual_bytes:,} bytes but the limit is "
                f"{MAX_REQUEST_BODY_BYTES:,} bytes."
            ),
            "type": "invalid_request_error",
            "code": "request_too_large",
        },
    )


def upstream_error(message: str) -> HTTPException:
    """Return a 502 HTTPException for a failed inference call."""

    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"message": message, "type": "upstream_error", "code": "upstream_error"},
    )


def internal_error(request_id: str) -> HTTPException:
    """Return a generic 500 HTTPException that exposes no internals."""

    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "message": (
                f"An internal error occurred (request_id: {request_id}). "
                "Please try again later or contact support."
            ),
            "type": "server_error",
            "code": "internal_error",
        },
    )


def unexpected_error_response(request_id: str) -> JSONResponse:
    """500 response for an exception no handler recognised."""
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        f"An unexpected error occurred (request_id: {request_id}). Please try again later.",
        "server_error",
        "internal_error",
        request_id=request_id,
    )


__all__ = [
    "AUTHENTICATE_HEADERS",
    "error_kind_for_status",
    "error_payload",
    "error_response",
    "internal_error",
    "invalid_request_error",
    "request_too_large_error",
    "unexpected_error_response",
    "upstream_error",
]
