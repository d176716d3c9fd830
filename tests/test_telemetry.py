"""
Behavioral tests for telemetry modules.

No mocks: tests use the real collector and the real request log file.
"""

import json
from datetime import UTC, datetime, timedelta

from inference_gateway.telemetry import MetricsCollector, log_request_event
from inference_gateway.telemetry.structured_logging import LOGS_DIR


class TestMetricsCollector:
    """Behavioral tests for MetricsCollector."""

    def test_record_request_stores_metric(self):
        MetricsCollector.record_request(
            model="@cf/openai/gpt-oss-120b",
            operation="chat",
            latency_ms=123.45,
            success=True,
        )

        metrics = MetricsCollector.get_metrics()
        assert metrics.total_requests == 1
        assert metrics.successful_requests == 1
        assert metrics.failed_requests == 0
        assert metrics.p50_latency_ms == 123.45

    def test_failures_grouped_by_error_type(self):
        MetricsCollector.record_request("m", "chat", 10.0, False, error="UpstreamError")
        MetricsCollector.record_request("m", "code", 20.0, False, error="UpstreamError")
        MetricsCollector.record_request("m", "chat", 30.0, True)

        metrics = MetricsCollector.get_metrics()
        assert metrics.failed_requests == 2
        assert metrics.errors_by_type == {"UpstreamError": 2}
        assert metrics.requests_by_operation == {"chat": 2, "code": 1}
        assert metrics.average_latency_ms == 20.0

    def test_percentiles_ordered(self):
        for latency in range(1, 101):
            MetricsCollector.record_request("m", "chat", float(latency), True)

        metrics = MetricsCollector.get_metrics()
        assert metrics.p50_latency_ms <= metrics.p95_latency_ms <= metrics.p99_latency_ms
        assert 49.0 <= metrics.p50_latency_ms <= 51.0

    def test_empty_metrics(self):
        metrics = MetricsCollector.get_metrics()

        assert metrics.total_requests == 0
        assert metrics.last_request_time is None

    def test_window_excludes_old_requests(self):
        MetricsCollector.record_request("m", "chat", 5.0, True)
        MetricsCollector._metrics[0].timestamp = datetime.now(UTC) - timedelta(hours=2)
        MetricsCollector.record_request("m", "chat", 7.0, True)

        assert MetricsCollector.get_metrics(window_minutes=60).total_requests == 1
        assert MetricsCollector.get_metrics().total_requests == 2

    def test_events_counted(self):
        MetricsCollector.record_event("rate_limit_rejected")
        MetricsCollector.record_event("rate_limit_rejected")
        MetricsCollector.record_event("rate_limit_fail_open")

        assert MetricsCollector.get_events() == {"rate_limit_rejected": 2, "rate_limit_fail_open": 1}

    def test_metrics_json_shape(self):
        MetricsCollector.record_request("m", "completions", 12.345, True)
        MetricsCollector.record_event("history_truncated")

        data = MetricsCollector.get_metrics_json()

        assert data["total_requests"] == 1
        assert data["average_latency_ms"] == 12.35
        assert data["events"] == {"history_truncated": 1}
        assert data["last_request_time"] is not None
        json.dumps(data)

    def test_reset_clears_everything(self):
        MetricsCollector.record_request("m", "chat", 1.0, True)
        MetricsCollector.record_event("history_truncated")

        MetricsCollector.reset()

        assert MetricsCollector.get_metrics().total_requests == 0
        assert MetricsCollector.get_events() == {}


class TestStructuredLogging:
    """Tests for log_request_event()."""

    def _last_event(self) -> dict:
        lines = (LOGS_DIR / "requests.jsonl").read_text(encoding="utf-8").splitlines()
        return json.loads(lines[-1])

    def test_writes_json_line_with_timestamp(self):
        log_request_event({"event": "api_request", "operation": "chat", "request_id": "req-log-1"})

        event = self._last_event()
        assert event["event"] == "api_request"
        assert event["request_id"] == "req-log-1"
        assert datetime.fromisoformat(event["timestamp"].replace("Z", "+00:00")).tzinfo is not None

    def test_keeps_supplied_timestamp_and_serializes_datetimes(self):
        stamp = datetime(2025, 1, 2, 3, 4, 5, tzinfo=UTC)

        log_request_event({"event": "rate_limit_rejected", "timestamp": stamp, "reset_seconds": 30})

        event = self._last_event()
        assert event["timestamp"].startswith("2025-01-02T03:04:05")
        assert event["reset_seconds"] == 30
