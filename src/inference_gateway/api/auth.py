"""Bearer token authentication and client identification.

Callers authenticate with ``Authorization: Bearer <token>``. The expected
token comes from AUTH_API_KEY, or from the file named by AUTH_API_KEY_FILE
when the former is unset. Tokens are compared in constant time.
"""

from __future__ import annotations

import hmac
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from inference_gateway.domain.exceptions import AuthenticationError, ServerConfigurationError

if TYPE_CHECKING:
    from starlette.requests import Request

    from inference_gateway.core.config import AuthConfig

logger = logging.getLogger(__name__)

ANONYMOUS_CLIENT = "anonymous"
TOKEN_ID_PREFIX_LENGTH = 8


def load_server_api_key(config: AuthConfig) -> str | None:
    """Return the configured server token, or None if there is none.

    The key file is re-read on every call so a rotated secret applies
    without a restart.
    """
    if config.api_key is not None and config.api_key.get_secret_value():
        return config.api_key.get_secret_value()
    if config.api_key_file is not None:
        try:
            key = config.api_key_file.read_text(encoding="utf-8").strip()
        except OSError as exc:
            logger.error("api_key_file_unreadable: path=%s, error=%s", config.api_key_file, exc)
            return None
        return key or None
    return None


def extract_bearer_token(authorization: str | None) -> str:
    """Pull the token out of an Authorization header value.

    Raises:
        AuthenticationError: If the header is missing, uses another scheme,
            or carries no token.
    """
    if not authorization:
        raise AuthenticationError("Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer":
        raise AuthenticationError("Invalid authorization scheme. Use Bearer token")
    token = token.strip()
    if not token:
        raise AuthenticationError("Missing API token")
    return token


def authenticate(authorization: str | None, config: AuthConfig) -> str:
    """Validate the caller's bearer token.

    Args:
        authorization: Raw Authorization header value.
        config: AUTH_* settings.

    Returns:
        The validated token.

    Raises:
        AuthenticationError: If the token is missing or does not match.
        ServerConfigurationError: If no server token is configured.
    """
    token = extract_bearer_token(authorization)
    expected = load_server_api_key(config)
    if expected is None:
        logger.error("auth_not_configured: set AUTH_API_KEY or AUTH_API_KEY_FILE")
        raise ServerConfigurationError("Server configuration error")
    if not hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        raise AuthenticationError("Invalid API token")
    return token


def get_client_address(headers: Mapping[str, str], peer: str | None = None) -> str | None:
    """Best-known client IP: CF-Connecting-IP, then X-Forwarded-For, then the peer."""
    if cf_ip := headers.get("cf-connecting-ip", "").strip():
        return cf_ip
    if forwarded := headers.get("x-forwarded-for", ""):
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return peer or None


def get_client_identifier(request: Request, token: str | None = None) -> str:
    """Rate limit identifier for a request.

    ``token:`` plus the first 8 characters of the bearer token when one is
    known, else ``ip:`` plus the client address, else ``anonymous``.
    """
    if token:
        return f"token:{token[:TOKEN_ID_PREFIX_LENGTH]}"
    peer = request.client.host if request.client else None
    address = get_client_address(request.headers, peer)
    return f"ip:{address}" if address else ANONYMOUS_CLIENT


__all__ = [
    "ANONYMOUS_CLIENT",
    "authenticate",
    "extract_bearer_token",
    "get_client_address",
    "get_client_identifier",
    "load_server_api_key",
]
