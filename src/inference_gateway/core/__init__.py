"""Core configuration for the Inference Gateway."""

from inference_gateway.core.config import Settings, settings

__all__ = ["Settings", "settings"]
