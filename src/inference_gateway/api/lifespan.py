"""Application lifespan management.

Lifespan Responsibilities:
    - Startup:
        1. Create the key-value store selected by STORE_BACKEND
        2. Create the Workers AI inference client
        3. Build the rate limiter and the gatekeeper
        4. Initialize logging and metrics adapters
        5. Register everything for dependency injection
    - Shutdown:
        1. Close the inference client's connection pool
        2. Close the store
        3. Clear registered dependencies

Components already present on ``app.state`` (``store``, ``inference_client``,
``rate_limiter``) are used as given instead of being built, and are not
closed at shutdown; tests inject fakes this way.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from inference_gateway.api.auth import load_server_api_key
from inference_gateway.api.dependencies import set_dependencies
from inference_gateway.api.gatekeeper import Gatekeeper
from inference_gateway.application.rate_limiter import RateLimiter
from inference_gateway.core.config import settings
from inference_gateway.infrastructure.adapters import (
    MetricsCollectorAdapter,
    RequestLoggerAdapter,
)
from inference_gateway.infrastructure.inference_client import WorkersAIClient
from inference_gateway.infrastructure.kv_store import build_store

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan_context(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan (startup and shutdown).

    Args:
        app: FastAPI application instance. Components are stored on app.state.

    Yields:
        None. Control is yielded to the application for request handling.
    """
    logger.info("LIFESPAN: Starting Inference Gateway API")

    injected = {
        name
        for name in ("store", "inference_client", "rate_limiter")
        if getattr(app.state, name, None) is not None
    }
    owned = []

    store = getattr(app.state, "store", None)
    if store is None:
        store = build_store(settings.store)
        owned.append(store)

    inference_client = getattr(app.state, "inference_client", None)
    if inference_client is None:
        if not settings.inference.account_id or settings.inference.api_token is None:
            logger.warning(
                "LIFESPAN: INFERENCE_ACCOUNT_ID or INFERENCE_API_TOKEN not set; "
                "inference calls will fail"
            )
        inference_client = WorkersAIClient(settings.inference)
        owned.append(inference_client)

    metrics_adapter = MetricsCollectorAdapter()
    logger_adapter = RequestLoggerAdapter()

    rate_limiter = getattr(app.state, "rate_limiter", None)
    if rate_limiter is None:
        rate_limiter = RateLimiter.from_settings(
            store, settings.rate_limit, settings.store, metrics=metrics_adapter
        )
    logger.info(
        "LIFESPAN: Rate limiter ready (max_requests=%d, window_seconds=%d, backend=%s)",
        rate_limiter.max_requests,
        rate_limiter.window_seconds,
        settings.store.backend,
    )

    if load_server_api_key(settings.auth) is None:
        logger.error(
            "LIFESPAN: No API key configured (AUTH_API_KEY / AUTH_API_KEY_FILE); "
            "protected routes will answer 500"
        )

    app.state.store = store
    app.state.inference_client = inference_client
    app.state.rate_limiter = rate_limiter
    app.state.gatekeeper = Gatekeeper(rate_limiter, settings.auth)

    set_dependencies(inference_client, store, rate_limiter, logger_adapter, metrics_adapter)
    logger.info("LIFESPAN: Dependencies initialized for dependency injection")

    try:
        yield
    finally:
        logger.info("Shutting down Inference Gateway API")
        set_dependencies(None, None, None, None, None)
        for component in owned:
            try:
                await component.close()
            except Exception as exc:
                logger.warning("Error closing %s: %s", type(component).__name__, exc)
        app.state.gatekeeper = None
        for name in ("store", "inference_client", "rate_limiter"):
            if name not in injected:
                setattr(app.state, name, None)


__all__ = ["lifespan_context"]
