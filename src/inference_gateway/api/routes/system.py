"""System routes for service info, health, models and metrics.

Endpoints:
    GET /
        - Service name, version and documentation links (public)
    GET /health
        - HealthResponse: store reachability and auth configuration (public)
    GET /api/v1/models
        - ModelsResponse: served models with context windows and history budgets
    GET /api/v1/metrics
        - MetricsResponse: in-process request metrics and gateway counters
        - Query Params: window_minutes (optional, default: all time)
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Query

from inference_gateway.api.auth import load_server_api_key
from inference_gateway.api.dependencies import get_store, validate_dependencies
from inference_gateway.api.models import HealthResponse, MetricsResponse, ModelInfo, ModelsResponse
from inference_gateway.application.context import (
    CHARS_PER_TOKEN,
    MODEL_TOKEN_LIMITS,
    character_limit_for_model,
    supported_models,
)
from inference_gateway.core.config import settings
from inference_gateway.telemetry.metrics import MetricsCollector

logger = logging.getLogger(__name__)

public_router = APIRouter()
router = APIRouter()

MODEL_RELEASE_TIMESTAMP = 1722902400
HEALTH_PROBE_KEY = "health:probe"


@public_router.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Service information and documentation links."""
    return {
        "service": settings.api.title,
        "version": settings.api.version,
        "docs": "/api/docs",
        "health": "/health",
    }


@public_router.get("/health", tags=["Health"], response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Report whether the gateway can serve traffic.

    The store is probed with a single read bounded by STORE_TIMEOUT_SECONDS.
    An unreachable store reports "degraded": the limiter fails open, so
    requests are still served.
    """
    store_available = False
    if validate_dependencies()["store"]:
        try:
            async with asyncio.timeout(settings.store.timeout_seconds):
                await get_store().get(HEALTH_PROBE_KEY)
            store_available = True
        except Exception as exc:
            logger.warning("health_store_probe_failed: error_type=%s, error=%s", type(exc).__name__, exc)

    auth_configured = load_server_api_key(settings.auth) is not None
    return HealthResponse(
        status="healthy" if store_available and auth_configured else "degraded",
        version=settings.api.version,
        store_backend=settings.store.backend,
        store_available=store_available,
        auth_configured=auth_configured,
        timestamp=datetime.now(UTC).isoformat(),
    )


@router.get("/models", tags=["Models"], response_model=ModelsResponse)
async def list_models() -> ModelsResponse:
    """List models with their context windows and history character budgets."""
    overrides = settings.context.model_char_budgets
    model_ids = supported_models(overrides)
    data = []
    for model_id in model_ids:
        budget = character_limit_for_model(
            model_id, overrides, settings.context.default_char_budget
        )
        data.append(
            ModelInfo(
                id=model_id,
                created=MODEL_RELEASE_TIMESTAMP,
                owned_by=model_id.split("/")[1] if model_id.count("/") >= 2 else "unknown",
                context_window=MODEL_TOKEN_LIMITS.get(model_id, max(1, budget // CHARS_PER_TOKEN)),
                history_char_budget=budget,
            )
        )
    return ModelsResponse(data=data)


@router.get("/metrics", tags=["Metrics"], response_model=MetricsResponse)
async def get_metrics(
    window_minutes: int | None = Query(None, ge=1, description="Only count the last N minutes"),
) -> MetricsResponse:
    """Request metrics and gateway counters for this instance."""
    return MetricsResponse(**MetricsCollector.get_metrics_json(window_minutes))


__all__ = ["public_router", "router"]
