"""API routes for the Inference Gateway.

Modular route definitions organized by functionality.
"""

from inference_gateway.api.routes.chat import router as chat_router
from inference_gateway.api.routes.completions import router as completions_router
from inference_gateway.api.routes.system import public_router
from inference_gateway.api.routes.system import router as system_router

__all__ = [
    "chat_router",
    "completions_router",
    "public_router",
    "system_router",
]
