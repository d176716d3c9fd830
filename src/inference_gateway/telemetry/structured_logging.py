"""Structured logging utilities for the Inference Gateway.

This module provides JSON-based structured logging for request/response
events. All events are written in JSON Lines (JSONL) format to a log file
for easy parsing and analysis.

Key Features:
    - JSON Lines Format: One JSON object per line
    - Automatic Timestamps: Injected if not present in event data
    - Custom Serialization: Handles datetime and Path objects correctly
    - Isolation: Non-propagating logger to avoid duplicate logs

Log File Configuration:
    - Location: ``API_LOGS_DIR`` if set, else ``logs/`` under the project root
    - File: ``requests.jsonl``
    - Rotation: Not implemented

Event Schema:
    All events should include:
        - event: Event type identifier (e.g., "api_request", "http_request",
          "rate_limit_rejected")
        - timestamp: ISO 8601 timestamp (auto-injected if missing)
        - Additional fields: request_id, client_id, model, latency_ms, status, ...
"""

from __future__ import annotations

import functools
import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter

from inference_gateway.core.config import settings


@functools.cache
def _get_logs_dir() -> Path:
    """Resolve and create the logs directory.

    Returns:
        Path to logs directory.
    """
    logs_dir = settings.api.logs_dir or Path(__file__).resolve().parents[3] / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir


LOGS_DIR = _get_logs_dir()

REQUEST_LOGGER = logging.getLogger("gateway.requests")
if not REQUEST_LOGGER.handlers:
    REQUEST_LOGGER.setLevel(logging.INFO)
    handler = logging.FileHandler(LOGS_DIR / "requests.jsonl")
    handler.setFormatter(logging.Formatter("%(message)s"))
    REQUEST_LOGGER.addHandler(handler)
    REQUEST_LOGGER.propagate = False

_DATETIME_ADAPTER = TypeAdapter(datetime)


def _json_default(value: Any) -> Any:
    """Fallback serializer for values json cannot encode natively."""
    match value:
        case datetime():
            return _DATETIME_ADAPTER.dump_python(value, mode="json")
        case Path():
            return str(value)
        case _:
            return str(value)


def log_request_event(event: dict[str, Any]) -> None:
    """Emit a structured request event.

    Writes one JSON line to requests.jsonl, adding a UTC ``timestamp`` when
    the event has none (the input dict is mutated).

    Args:
        event: Event payload. Should contain ``event`` and, for API calls,
            ``operation``, ``status``, ``request_id`` and ``latency_ms``.

    Example:
        >>> log_request_event({
        ...     "event": "api_request",
        ...     "operation": "chat",
        ...     "status": "success",
        ...     "model": "@cf/openai/gpt-oss-120b",
        ...     "latency_ms": 1234.56,
        ... })
    """
    event.setdefault("timestamp", datetime.now(UTC))
    REQUEST_LOGGER.info(json.dumps(event, default=_json_default))


__all__ = ["LOGS_DIR", "log_request_event"]
