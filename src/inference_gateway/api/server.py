"""FastAPI application for the Inference Gateway.

Architecture:
    - FastAPI application with lifespan management
    - Gatekeeper middleware: bearer authentication and a fixed-window rate
      limit per client in front of every /api/v1 route
    - Use cases forward admitted requests to the remote inference service,
      fitting conversation history into the model's context window

Endpoints:
    - GET  /                         - Service information (public)
    - GET  /health                   - Health check (public)
    - GET  /api/v1/models            - Served models and history budgets
    - GET  /api/v1/metrics           - In-process metrics
    - POST /api/v1/chat              - Responses-style chat with history
    - POST /api/v1/chat/completions  - OpenAI-style chat completions
    - POST /api/v1/code              - Code-interpreter style chat
    - POST /api/v1/completions       - Single-prompt text completion
"""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI

from inference_gateway.api.lifespan import lifespan_context
from inference_gateway.api.middleware import setup_exception_handlers, setup_middleware
from inference_gateway.api.routes import (
    chat_router,
    completions_router,
    public_router,
    system_router,
)
from inference_gateway.core.config import settings

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Build the FastAPI application with middleware, handlers and routers."""
    application = FastAPI(
        title=settings.api.title,
        description="Authenticated, rate-limited gateway in front of a remote inference service",
        version=settings.api.version,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan_context,
    )

    setup_middleware(application)
    setup_exception_handlers(application)

    prefix = settings.api.protected_prefix
    application.include_router(public_router)
    application.include_router(system_router, prefix=prefix)
    application.include_router(chat_router, prefix=prefix)
    application.include_router(completions_router, prefix=prefix)
    return application


app = create_app()


def main() -> None:
    """Run the gateway with uvicorn using API_* settings."""
    logging.basicConfig(
        level=settings.api.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("Starting %s on %s:%d", settings.api.title, settings.api.host, settings.api.port)
    uvicorn.run(
        "inference_gateway.api.server:app",
        host=settings.api.host,
        port=settings.api.port,
        log_level=settings.api.log_level,
    )


if __name__ == "__main__":
    main()
