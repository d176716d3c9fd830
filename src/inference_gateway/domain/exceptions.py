"""Domain exceptions for the Inference Gateway.

This module defines pure domain exceptions with no framework dependencies.
The API layer maps each of them to an HTTP status and error body.

Exception Hierarchy:
    - DomainError: Base exception for all domain errors
    - InvalidRequestError: Malformed or out-of-range request fields (400)
    - AuthenticationError: Missing or invalid bearer token (401)
    - ServerConfigurationError: Server credential not configured (500)
    - RateLimitExceededError: Client quota exhausted (429)
    - UpstreamError: Inference call failed or returned an unusable shape (502)
"""


class DomainError(Exception):
    """Base exception for all domain errors.

    This exception should not be raised directly. Use specific subclasses
    like InvalidRequestError or UpstreamError instead.
    """


class InvalidRequestError(DomainError):
    """Raised when a request field is missing, malformed or out of range.

    Attributes:
        param: Name of the offending field, when one can be named.
    """

    def __init__(self, message: str, param: str | None = None) -> None:
        super().__init__(message)
        self.param = param


class AuthenticationError(DomainError):
    """Raised when the caller's bearer token is missing or invalid."""


class ServerConfigurationError(DomainError):
    """Raised when the gateway's own credential is not configured."""


class RateLimitExceededError(DomainError):
    """Raised when a client has exhausted its quota for the current window.

    Attributes:
        limit: Requests allowed per window.
        reset_seconds: Seconds until the window resets.
        window_seconds: Window length in seconds.
    """

    def __init__(self, limit: int, reset_seconds: int, window_seconds: int = 3600) -> None:
        super().__init__(
            f"Rate limit exceeded. Maximum {limit} requests per {_describe_window(window_seconds)} allowed."
        )
        self.limit = limit
        self.reset_seconds = reset_seconds
        self.window_seconds = window_seconds


def _describe_window(seconds: int) -> str:
    match seconds:
        case 3600:
            return "hour"
        case 60:
            return "minute"
        case 86400:
            return "day"
        case _:
            return f"{seconds} seconds"


class UpstreamError(DomainError):
    """Raised when the inference service fails or answers with no usable text."""
