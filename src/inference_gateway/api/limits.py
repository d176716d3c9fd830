"""Shared API guardrail constants."""

from __future__ import annotations

# Request payload limits
MAX_REQUEST_BODY_BYTES = 1_500_000  # ~1.43 MiB, leaves headroom for headers

# Generation parameter bounds
MIN_MAX_TOKENS = 1
MAX_MAX_TOKENS = 4096
MIN_TEMPERATURE = 0.0
MAX_TEMPERATURE = 2.0

# Rate limit response headers
RATE_LIMIT_LIMIT_HEADER = "X-RateLimit-Limit"
RATE_LIMIT_REMAINING_HEADER = "X-RateLimit-Remaining"
RATE_LIMIT_RESET_HEADER = "X-RateLimit-Reset"
RETRY_AFTER_HEADER = "Retry-After"

__all__ = [
    "MAX_MAX_TOKENS",
    "MAX_REQUEST_BODY_BYTES",
    "MAX_TEMPERATURE",
    "MIN_MAX_TOKENS",
    "MIN_TEMPERATURE",
    "RATE_LIMIT_LIMIT_HEADER",
    "RATE_LIMIT_REMAINING_HEADER",
    "RATE_LIMIT_RESET_HEADER",
    "RETRY_AFTER_HEADER",
]
