"""Reusable test utilities for Inference Gateway tests."""

from __future__ import annotations

import asyncio
from typing import Any

from httpx import Response

from inference_gateway.domain.entities import (
    InferenceResult,
    InferenceSuccess,
    InferenceUsage,
)

TEST_API_KEY = "test-api-key-0123456789"


class FakeInferenceClient:
    """InferenceClientInterface double that records every call."""

    def __init__(self, result: InferenceResult | None = None) -> None:
        self.result = result or InferenceSuccess(
            text="Hello from the model",
            usage=InferenceUsage(prompt_tokens=12, completion_tokens=5, total_tokens=17),
        )
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.closed = False

    async def run(self, model: str, params: dict[str, Any]) -> InferenceResult:
        self.calls.append((model, params))
        return self.result

    async def close(self) -> None:
        self.closed = True

    @property
    def last_params(self) -> dict[str, Any]:
        return self.calls[-1][1]


class FailingStore:
    """Key-value store whose every call fails, as when Redis is down."""

    def __init__(self, exc: Exception | None = None) -> None:
        self.exc = exc or ConnectionError("store unreachable")

    async def get(self, key: str) -> str | None:
        raise self.exc

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        raise self.exc

    async def delete(self, key: str) -> None:
        raise self.exc

    async def close(self) -> None:
        return None


class WriteFailingStore(FailingStore):
    """Reads succeed (always empty); writes fail."""

    async def get(self, key: str) -> str | None:
        return None


class SlowStore(FailingStore):
    """Store that never answers within a short timeout."""

    def __init__(self, delay: float = 1.0) -> None:
        super().__init__()
        self.delay = delay

    async def get(self, key: str) -> str | None:
        await asyncio.sleep(self.delay)
        return None


class RecordingStore:
    """In-memory store without expiry that records put() TTLs."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: list[int] = []

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        self.data[key] = value
        self.ttls.append(ttl_seconds)

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)

    async def close(self) -> None:
        return None


def assert_error_response(
    response: Response,
    expected_status: int,
    expected_type: str,
    expected_code: str | None = None,
) -> dict[str, Any]:
    """Assert response carries the standard error body and return its ``error`` member."""
    assert response.status_code == expected_status, response.text
    body = response.json()
    assert "error" in body
    error = body["error"]
    assert error["type"] == expected_type
    assert isinstance(error["message"], str) and error["message"]
    if expected_code is not None:
        assert error["code"] == expected_code
    return error
