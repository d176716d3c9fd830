"""Interfaces (Protocols) for application layer dependencies.

This module defines Protocol-based interfaces that infrastructure
implementations must satisfy. The application layer depends on these
interfaces, not concrete implementations, enabling dependency inversion
and testability.

Key Interfaces:
    - KeyValueStoreInterface: Shared TTL-capable store for rate limit counters
    - InferenceClientInterface: Remote model inference capability
    - RequestLoggerInterface: Structured request logging
    - MetricsCollectorInterface: Request and gateway metrics

Note:
    Implementations don't need to explicitly inherit from these protocols;
    they just need to implement the required methods.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from inference_gateway.domain.entities import InferenceResult


class KeyValueStoreInterface(Protocol):
    """Protocol for the shared key-value store.

    The store is eventually consistent and offers no transactional
    primitive; callers must tolerate read-modify-write races.
    """

    async def get(self, key: str) -> str | None:
        """Return the value stored under key, or None if absent or expired.

        Raises:
            Exception: Any transport or backend failure.
        """
        ...

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store value under key, expiring after ttl_seconds.

        Raises:
            Exception: Any transport or backend failure.
        """
        ...

    async def delete(self, key: str) -> None:
        """Remove key if present."""
        ...

    async def close(self) -> None:
        """Release connections held by the store."""
        ...


class InferenceClientInterface(Protocol):
    """Protocol for the remote inference capability.

    The call is opaque and has no latency bound. Implementations return a
    tagged InferenceResult instead of raising for upstream failures, so
    callers must handle the failure branch explicitly.
    """

    async def run(self, model: str, params: dict[str, Any]) -> InferenceResult:
        """Run a model.

        Args:
            model: Model identifier (e.g. "@cf/openai/gpt-oss-120b").
            params: Model inputs. Carries either "input" or "messages" plus
                optional "instructions", "reasoning", "max_tokens" and
                "temperature".

        Returns:
            InferenceSuccess with generated text, or InferenceFailure with
            a human-readable reason.
        """
        ...

    async def close(self) -> None:
        """Release connections held by the client."""
        ...


class RequestLoggerInterface(Protocol):
    """Protocol for structured request logging."""

    def log_request(self, data: dict[str, Any]) -> None:
        """Emit a structured request event.

        Args:
            data: Event payload. Should include "event" and "operation".
        """
        ...


class MetricsCollectorInterface(Protocol):
    """Protocol for metrics collection."""

    def record_request(
        self,
        model: str,
        operation: str,
        latency_ms: float,
        success: bool,
        error: str | None = None,
    ) -> None:
        """Record a completed request."""
        ...

    def record_event(self, name: str) -> None:
        """Increment a named gateway counter (e.g. "rate_limit_rejected")."""
        ...
