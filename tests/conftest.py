"""
Pytest configuration and fixtures for Inference Gateway tests.
"""

import os
import sys
import tempfile
from pathlib import Path

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

# Settings are read at import time; keep request logs out of the source tree
os.environ.setdefault("API_LOGS_DIR", tempfile.mkdtemp(prefix="gateway-logs-"))

import pytest
from fastapi.testclient import TestClient
from pydantic import SecretStr

from inference_gateway.api.server import app
from inference_gateway.application.rate_limiter import RateLimiter
from inference_gateway.core.config import settings
from inference_gateway.infrastructure.adapters import MetricsCollectorAdapter
from inference_gateway.infrastructure.kv_store import InMemoryKeyValueStore
from inference_gateway.telemetry.metrics import MetricsCollector

from tests.helpers import TEST_API_KEY, FakeInferenceClient


@pytest.fixture(autouse=True)
def reset_metrics():
    """Start every test with empty metrics."""
    MetricsCollector.reset()
    yield
    MetricsCollector.reset()


@pytest.fixture
def api_key(monkeypatch):
    """Configure the server credential checked by the gatekeeper."""
    monkeypatch.setattr(settings.auth, "api_key", SecretStr(TEST_API_KEY))
    monkeypatch.setattr(settings.auth, "api_key_file", None)
    return TEST_API_KEY


@pytest.fixture
def auth_headers(api_key):
    return {"Authorization": f"Bearer {api_key}"}


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def fake_inference():
    return FakeInferenceClient()


@pytest.fixture
def rate_limiter(store):
    return RateLimiter(
        store,
        max_requests=5,
        window_seconds=3600,
        metrics=MetricsCollectorAdapter(),
    )


@pytest.fixture
def gateway(api_key, store, fake_inference, rate_limiter):
    """Run the app with an in-memory store, a fake inference service and a small quota."""
    app.state.store = store
    app.state.inference_client = fake_inference
    app.state.rate_limiter = rate_limiter
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.state.store = None
        app.state.inference_client = None
        app.state.rate_limiter = None
