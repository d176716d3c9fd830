"""Telemetry utilities (metrics, structured logging)."""

from inference_gateway.telemetry.metrics import MetricsCollector, ServiceMetrics
from inference_gateway.telemetry.structured_logging import log_request_event

__all__ = [
    "MetricsCollector",
    "ServiceMetrics",
    "log_request_event",
]
