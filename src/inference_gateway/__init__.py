"""Inference Gateway - authenticated, rate-limited access to a remote inference service."""

from inference_gateway.core.config import Settings, settings

__version__ = "1.0.0"

__all__ = ["Settings", "__version__", "settings"]
