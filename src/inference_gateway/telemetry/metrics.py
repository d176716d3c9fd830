"""Metrics collection for the Inference Gateway.

In-memory request metrics plus named gateway counters (rate limit
rejections, fail-open admissions, truncated histories). Metrics live for
the lifetime of the process and are per instance; they are not shared
between gateway replicas.

Memory management:
    - Request metrics are capped at 10,000 entries; the oldest are dropped
    - Counters are plain integers keyed by event name
"""

from __future__ import annotations

import logging
import statistics
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, ClassVar, Self

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RequestMetrics:
    """Metrics for a single request.

    Attributes:
        model: Model name used for the request.
        operation: Operation name (e.g., "chat", "completions", "code").
        latency_ms: Upstream latency in milliseconds.
        success: Whether the request succeeded.
        error: Error type if the request failed.
        timestamp: Request timestamp in UTC.
    """

    model: str
    operation: str
    latency_ms: float
    success: bool
    error: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(slots=True)
class ServiceMetrics:
    """Aggregated request metrics over a time window."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    requests_by_model: dict[str, int] = field(default_factory=dict)
    requests_by_operation: dict[str, int] = field(default_factory=dict)
    average_latency_ms: float = 0.0
    p50_latency_ms: float = 0.0
    p95_latency_ms: float = 0.0
    p99_latency_ms: float = 0.0
    errors_by_type: dict[str, int] = field(default_factory=dict)
    last_request_time: datetime | None = None
    first_request_time: datetime | None = None


class MetricsCollector:
    """Class-level metrics storage.

    Not thread-safe; the gateway records from a single event loop.
    """

    _metrics: ClassVar[list[RequestMetrics]] = []
    _events: ClassVar[Counter[str]] = Counter()
    _max_metrics: ClassVar[int] = 10_000

    @classmethod
    def record_request(
        cls,
        model: str,
        operation: str,
        latency_ms: float,
        success: bool,
        error: str | None = None,
    ) -> None:
        """Record a request metric, trimming the oldest past the cap."""
        cls._metrics.append(
            RequestMetrics(
                model=model,
                operation=operation,
                latency_ms=latency_ms,
                success=success,
                error=error,
            )
        )
        if len(cls._metrics) > cls._max_metrics:
            cls._metrics = cls._metrics[-cls._max_metrics :]

        logger.debug("Recorded metric: %s on %s - %.2fms", operation, model, latency_ms)

    @classmethod
    def record_event(cls, name: str) -> None:
        """Increment the counter for a gateway event."""
        cls._events[name] += 1

    @classmethod
    def get_events(cls) -> dict[str, int]:
        return dict(cls._events)

    @classmethod
    def get_metrics(cls, window_minutes: int | None = None) -> ServiceMetrics:
        """Aggregate request metrics.

        Args:
            window_minutes: Only include requests from the last N minutes.
                None aggregates everything retained.

        Returns:
            ServiceMetrics; empty when no request falls in the window.
        """
        match window_minutes:
            case None:
                metrics = cls._metrics
            case minutes if minutes > 0:
                cutoff = datetime.now(UTC) - timedelta(minutes=minutes)
                metrics = [m for m in cls._metrics if m.timestamp >= cutoff]
            case _:
                metrics = []

        if not metrics:
            return ServiceMetrics()

        latencies = sorted(m.latency_ms for m in metrics)
        successful = sum(1 for m in metrics if m.success)

        match len(latencies):
            case n if n >= 2:
                quantiles = statistics.quantiles(latencies, n=100)
                p50, p95, p99 = quantiles[49], quantiles[94], quantiles[98]
            case _:
                p50 = p95 = p99 = latencies[0]

        return ServiceMetrics(
            total_requests=len(metrics),
            successful_requests=successful,
            failed_requests=len(metrics) - successful,
            requests_by_model=dict(Counter(m.model for m in metrics)),
            requests_by_operation=dict(Counter(m.operation for m in metrics)),
            average_latency_ms=sum(latencies) / len(latencies),
            p50_latency_ms=p50,
            p95_latency_ms=p95,
            p99_latency_ms=p99,
            errors_by_type=dict(Counter(m.error for m in metrics if m.error)),
            last_request_time=max(m.timestamp for m in metrics),
            first_request_time=min(m.timestamp for m in metrics),
        )

    @classmethod
    def get_metrics_json(cls, window_minutes: int | None = None) -> dict[str, Any]:
        """Aggregated metrics and gateway counters as a JSON-ready dict."""
        metrics = cls.get_metrics(window_minutes)
        return {
            "total_requests": metrics.total_requests,
            "successful_requests": metrics.successful_requests,
            "failed_requests": metrics.failed_requests,
            "requests_by_model": metrics.requests_by_model,
            "requests_by_operation": metrics.requests_by_operation,
            "average_latency_ms": round(metrics.average_latency_ms, 2),
            "p50_latency_ms": round(metrics.p50_latency_ms, 2),
            "p95_latency_ms": round(metrics.p95_latency_ms, 2),
            "p99_latency_ms": round(metrics.p99_latency_ms, 2),
            "errors_by_type": metrics.errors_by_type,
            "events": cls.get_events(),
            "last_request_time": metrics.last_request_time.isoformat() if metrics.last_request_time else None,
            "first_request_time": metrics.first_request_time.isoformat() if metrics.first_request_time else None,
        }

    @classmethod
    def reset(cls) -> Self:
        """Clear all request metrics and counters."""
        cls._metrics = []
        cls._events = Counter()
        return cls


__all__ = ["MetricsCollector", "RequestMetrics", "ServiceMetrics"]
