"""Distributed fixed-window rate limiter.

Counts requests per client identifier in a shared key-value store so that
every gateway instance enforces the same quota. Each client owns one
RateWindow record, stored as JSON with a TTL matching the time left in the
window; records are never deleted explicitly.

Algorithm (per request):
    1. Read the client's window from the store.
    2. Absent or expired (now >= window end) -> open a fresh window at now.
    3. Otherwise count one more request in the existing window.
    4. Over the limit -> reject without writing anything.
    5. Otherwise persist the window and admit.

Concurrency:
    The read and the write are two independent store calls. Concurrent
    requests from one client may both read the same count and overshoot the
    limit slightly; that approximation is accepted because the store offers
    no atomic increment.

Failure policy:
    Store errors and timeouts fail open. The request is admitted, the error
    is logged and the decision is flagged with fail_open=True.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from inference_gateway.domain.entities import (
    RateLimitAllowed,
    RateLimitDecision,
    RateLimitRejected,
    RateLimitStatus,
    RateWindow,
)

if TYPE_CHECKING:
    from inference_gateway.application.interfaces import (
        KeyValueStoreInterface,
        MetricsCollectorInterface,
    )
    from inference_gateway.core.config import RateLimitConfig, StoreConfig

logger = logging.getLogger(__name__)


def encode_window(window: RateWindow) -> str:
    """Serialize a window to its stored JSON form."""
    return json.dumps(
        {
            "requests": window.request_count,
            "windowStart": window.window_start_ms,
            "windowEnd": window.window_end_ms,
        }
    )


def decode_window(raw: str | bytes) -> RateWindow:
    """Parse a stored window.

    Raises:
        ValueError: If the payload is not a valid window record.
    """
    try:
        data = json.loads(raw)
        window = RateWindow(
            request_count=int(data["requests"]),
            window_start_ms=int(data["windowStart"]),
            window_end_ms=int(data["windowEnd"]),
        )
    except (TypeError, KeyError, ValueError, OverflowError) as exc:
        raise ValueError(f"Malformed rate window record: {raw!r}") from exc
    if window.request_count < 0 or window.window_end_ms < window.window_start_ms:
        raise ValueError(f"Inconsistent rate window record: {raw!r}")
    return window


def seconds_until(end_ms: int, now_ms: int) -> int:
    """Whole seconds from now_ms to end_ms, rounded up, never negative."""
    return max(0, math.ceil((end_ms - now_ms) / 1000))


class RateLimiter:
    """Fixed-window rate limiter backed by a shared key-value store.

    Attributes:
        max_requests: Requests admitted per window.
        window_seconds: Window length in seconds.

    Example:
        >>> limiter = RateLimiter(InMemoryKeyValueStore(), max_requests=2, window_seconds=60)
        >>> await limiter.admit("token:abcd1234")
        RateLimitAllowed(limit=2, remaining=1, reset_seconds=60, fail_open=False)
    """

    def __init__(
        self,
        store: KeyValueStoreInterface,
        max_requests: int = 100,
        window_seconds: int = 3600,
        *,
        key_prefix: str = "rate_limit",
        store_timeout: float = 0.5,
        clock: Callable[[], float] = time.time,
        metrics: MetricsCollectorInterface | None = None,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Shared key-value store holding the windows.
            max_requests: Requests admitted per window. Must be >= 1.
            window_seconds: Window length in seconds. Must be >= 1.
            key_prefix: Prefix for store keys.
            store_timeout: Upper bound in seconds on each store call.
            clock: Returns the current epoch time in seconds.
            metrics: Optional collector for rejection and fail-open counters.

        Raises:
            ValueError: If max_requests or window_seconds is below 1.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be at least 1")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._store = store
        self._key_prefix = key_prefix
        self._store_timeout = store_timeout
        self._clock = clock
        self._metrics = metrics

    @classmethod
    def from_settings(
        cls,
        store: KeyValueStoreInterface,
        rate_limit: RateLimitConfig,
        store_config: StoreConfig,
        metrics: MetricsCollectorInterface | None = None,
    ) -> RateLimiter:
        """Build a limiter from the RATE_LIMIT_* and STORE_* settings."""
        return cls(
            store,
            max_requests=rate_limit.max_requests,
            window_seconds=rate_limit.window_seconds,
            key_prefix=rate_limit.key_prefix,
            store_timeout=store_config.timeout_seconds,
            metrics=metrics,
        )

    @property
    def window_length_ms(self) -> int:
        return self.window_seconds * 1000

    def key_for(self, identifier: str) -> str:
        """Store key holding identifier's window."""
        return f"{self._key_prefix}:{identifier}"

    async def admit(self, identifier: str, now_ms: int | None = None) -> RateLimitDecision:
        """Count one request for identifier and decide whether to admit it.

        Args:
            identifier: Client identifier (rate limit partition key).
            now_ms: Current epoch time in milliseconds. Defaults to the clock.

        Returns:
            RateLimitAllowed with the remaining quota, or RateLimitRejected
            when the request would exceed max_requests in the current window.
            Never raises for store failures.
        """
        now = self._now_ms() if now_ms is None else now_ms
        key = self.key_for(identifier)

        try:
            stored = await self._read_window(key)
        except Exception as exc:
            return self._fail_open("read", identifier, exc)

        if stored is None or stored.is_expired(now):
            window = RateWindow.fresh(now, self.window_length_ms)
        else:
            window = stored.incremented()

        reset_seconds = seconds_until(window.window_end_ms, now)

        if window.request_count > self.max_requests:
            logger.warning(
                "rate_limit_exceeded: identifier=%s, count=%s, limit=%s, reset_seconds=%s",
                identifier,
                window.request_count,
                self.max_requests,
                reset_seconds,
            )
            self._record("rate_limit_rejected")
            return RateLimitRejected(limit=self.max_requests, reset_seconds=reset_seconds)

        remaining = max(0, self.max_requests - window.request_count)
        try:
            async with asyncio.timeout(self._store_timeout):
                await self._store.put(key, encode_window(window), max(1, reset_seconds))
        except Exception as exc:
            logger.error(
                "rate_limit_store_error: operation=write, identifier=%s, error_type=%s, error=%s",
                identifier,
                type(exc).__name__,
                exc,
            )
            self._record("rate_limit_fail_open")
            return RateLimitAllowed(
                limit=self.max_requests,
                remaining=remaining,
                reset_seconds=reset_seconds,
                fail_open=True,
            )

        return RateLimitAllowed(
            limit=self.max_requests,
            remaining=remaining,
            reset_seconds=reset_seconds,
        )

    async def peek(self, identifier: str, now_ms: int | None = None) -> RateLimitStatus:
        """Report identifier's quota without counting a request.

        Used to annotate responses after the handler has run. Store failures
        report the full configured limit so header annotation never blocks
        response delivery.
        """
        now = self._now_ms() if now_ms is None else now_ms
        try:
            window = await self._read_window(self.key_for(identifier))
        except Exception as exc:
            logger.warning(
                "rate_limit_store_error: operation=peek, identifier=%s, error_type=%s, error=%s",
                identifier,
                type(exc).__name__,
                exc,
            )
            window = None

        if window is None or window.is_expired(now):
            return RateLimitStatus(
                limit=self.max_requests,
                remaining=self.max_requests,
                reset_seconds=self.window_seconds,
            )
        return RateLimitStatus(
            limit=self.max_requests,
            remaining=max(0, self.max_requests - window.request_count),
            reset_seconds=seconds_until(window.window_end_ms, now),
        )

    async def _read_window(self, key: str) -> RateWindow | None:
        async with asyncio.timeout(self._store_timeout):
            raw = await self._store.get(key)
        if raw is None:
            return None
        try:
            return decode_window(raw)
        except ValueError:
            # Unreadable record: start over rather than block the client
            logger.warning("rate_limit_record_discarded: key=%s", key)
            return None

    def _fail_open(self, operation: str, identifier: str, exc: Exception) -> RateLimitAllowed:
        logger.error(
            "rate_limit_store_error: operation=%s, identifier=%s, error_type=%s, error=%s",
            operation,
            identifier,
            type(exc).__name__,
            exc,
        )
        self._record("rate_limit_fail_open")
        return RateLimitAllowed(
            limit=self.max_requests,
            remaining=self.max_requests,
            reset_seconds=self.window_seconds,
            fail_open=True,
        )

    def _record(self, event: str) -> None:
        if self._metrics is not None:
            self._metrics.record_event(event)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)


__all__ = ["RateLimiter", "decode_window", "encode_window", "seconds_until"]
