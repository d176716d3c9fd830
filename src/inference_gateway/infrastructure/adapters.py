"""Infrastructure adapters implementing application layer interfaces.

Key Adapters:
    - RequestLoggerAdapter: Wraps structured logging for RequestLoggerInterface
    - MetricsCollectorAdapter: Wraps MetricsCollector for MetricsCollectorInterface

Note:
    The key-value stores and the inference client satisfy their protocols
    directly and need no adapter.
"""

from __future__ import annotations

from typing import Any

from inference_gateway.telemetry.metrics import MetricsCollector
from inference_gateway.telemetry.structured_logging import log_request_event


class RequestLoggerAdapter:
    """Adapter that wraps structured logging to implement RequestLoggerInterface.

    Stateless; every call delegates to log_request_event.
    """

    @staticmethod
    def log_request(data: dict[str, Any]) -> None:
        """Log a request event with structured data.

        Args:
            data: Event payload. Expected keys: event, status, request_id,
                operation. Optional keys include model, client_id,
                latency_ms, error_type, error_message and the history
                truncation counts.
        """
        log_request_event(data)


class MetricsCollectorAdapter:
    """Adapter that wraps MetricsCollector to implement MetricsCollectorInterface.

    Stateless; every call delegates to the class-level MetricsCollector.
    """

    @staticmethod
    def record_request(
        model: str,
        operation: str,
        latency_ms: float,
        success: bool,
        error: str | None = None,
    ) -> None:
        """Record a request metric.

        Args:
            model: Model identifier.
            operation: Operation name ("chat", "chat_completions",
                "completions", "code").
            latency_ms: Upstream latency in milliseconds.
            success: Whether the request succeeded.
            error: Error type name if the request failed.
        """
        MetricsCollector.record_request(
            model=model,
            operation=operation,
            latency_ms=latency_ms,
            success=success,
            error=error,
        )

    @staticmethod
    def record_event(name: str) -> None:
        """Increment a gateway counter such as "rate_limit_rejected"."""
        MetricsCollector.record_event(name)


__all__ = ["MetricsCollectorAdapter", "RequestLoggerAdapter"]
