"""Infrastructure layer for the Inference Gateway.

Concrete implementations of the application interfaces:
- Key-value stores (in-memory, Redis)
- Workers AI inference client
- Logging and metrics adapters
"""

from inference_gateway.infrastructure.adapters import (
    MetricsCollectorAdapter,
    RequestLoggerAdapter,
)
from inference_gateway.infrastructure.inference_client import WorkersAIClient
from inference_gateway.infrastructure.kv_store import (
    InMemoryKeyValueStore,
    RedisKeyValueStore,
    build_store,
)

__all__ = [
    "InMemoryKeyValueStore",
    "MetricsCollectorAdapter",
    "RedisKeyValueStore",
    "RequestLoggerAdapter",
    "WorkersAIClient",
    "build_store",
]
