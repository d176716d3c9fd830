"""HTTP client for the Cloudflare Workers AI REST API.

Implements InferenceClientInterface on top of httpx.AsyncClient:

    POST {base_url}/accounts/{account_id}/ai/run/{model}
    Authorization: Bearer <api token>

Responses arrive wrapped in the Cloudflare envelope
``{"success": bool, "result": {...}, "errors": [...]}``. The result carries
generated text in one of several shapes depending on the model family:

    - ``{"response": "..."}`` for classic text-generation models
    - ``{"output": [{"type": "message", "content": [{"type": "output_text",
      "text": "..."}]}]}`` for Responses-API models (gpt-oss)
    - ``{"choices": [{"message": {"content": "..."}}]}`` for OpenAI-style output

Upstream failures never raise; run() returns InferenceFailure with a reason
so callers handle both branches explicitly. No retries are attempted.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

import httpx

from inference_gateway.domain.entities import (
    InferenceFailure,
    InferenceResult,
    InferenceSuccess,
    InferenceUsage,
)

if TYPE_CHECKING:
    from inference_gateway.core.config import InferenceConfig

logger = logging.getLogger(__name__)


def extract_text(result: Any) -> str | None:
    """Pull generated text out of a model result, or None if there is none."""
    match result:
        case str() if result:
            return result
        case {"response": str() as text} if text:
            return text
        case {"output_text": str() as text} if text:
            return text
        case {"output": list() as items}:
            parts = [
                part["text"]
                for item in items
                if isinstance(item, dict) and item.get("type") == "message"
                for part in item.get("content") or []
                if isinstance(part, dict)
                and part.get("type") == "output_text"
                and isinstance(part.get("text"), str)
            ]
            return "".join(parts) or None
        case {"choices": [{"message": {"content": str() as text}}, *_]} if text:
            return text
        case {"choices": [{"text": str() as text}, *_]} if text:
            return text
        case _:
            return None


def extract_usage(result: Any) -> InferenceUsage | None:
    """Token usage from a model result, accepting both naming schemes."""
    if not isinstance(result, dict) or not isinstance(result.get("usage"), dict):
        return None
    usage = result["usage"]
    prompt = usage.get("prompt_tokens", usage.get("input_tokens"))
    completion = usage.get("completion_tokens", usage.get("output_tokens"))
    total = usage.get("total_tokens")
    if total is None and prompt is not None and completion is not None:
        total = prompt + completion
    return InferenceUsage(prompt_tokens=prompt, completion_tokens=completion, total_tokens=total)


def _error_reason(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    errors = payload.get("errors") or []
    messages = [e.get("message", str(e)) if isinstance(e, dict) else str(e) for e in errors]
    return f"AI model error: {', '.join(messages)}" if messages else None


class WorkersAIClient:
    """Async Workers AI client.

    The underlying httpx.AsyncClient is created on first use and reused for
    the lifetime of the process; call close() at shutdown.

    Attributes:
        config: Inference service configuration.
        client: httpx.AsyncClient instance (initialized lazily).
    """

    def __init__(
        self,
        config: InferenceConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: INFERENCE_* settings.
            transport: Optional httpx transport, e.g. httpx.MockTransport in tests.
        """
        self.config = config
        self.client: httpx.AsyncClient | None = None
        self._transport = transport

    async def __aenter__(self) -> WorkersAIClient:
        self._ensure_client()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self.client is None:
            headers = {"Content-Type": "application/json"}
            if self.config.api_token is not None:
                headers["Authorization"] = f"Bearer {self.config.api_token.get_secret_value()}"
            self.client = httpx.AsyncClient(
                base_url=self.config.base_url,
                headers=headers,
                timeout=httpx.Timeout(connect=5.0, read=self.config.timeout, write=5.0, pool=5.0),
                transport=self._transport,
            )
        return self.client

    async def close(self) -> None:
        """Close the connection pool. Safe to call more than once."""
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    def run_path(self, model: str) -> str:
        return f"/accounts/{self.config.account_id}/ai/run/{model}"

    async def run(self, model: str, params: dict[str, Any]) -> InferenceResult:
        """Run a model and return its text.

        Args:
            model: Model identifier, e.g. "@cf/openai/gpt-oss-120b".
            params: Request body forwarded as JSON.

        Returns:
            InferenceSuccess, or InferenceFailure on transport errors,
            non-2xx statuses, unsuccessful envelopes and results with no text.
        """
        client = self._ensure_client()
        start_time = time.perf_counter()
        try:
            response = await client.post(self.run_path(model), json=params)
        except httpx.HTTPError as exc:
            logger.error(
                "inference_transport_error: model=%s, error_type=%s, error=%s",
                model,
                type(exc).__name__,
                exc,
            )
            return InferenceFailure(reason=f"{type(exc).__name__}: {exc}")

        latency_ms = (time.perf_counter() - start_time) * 1000
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.is_error:
            reason = _error_reason(payload) or f"HTTP {response.status_code}"
            logger.error(
                "inference_http_error: model=%s, status=%s, latency_ms=%.2f, reason=%s",
                model,
                response.status_code,
                latency_ms,
                reason,
            )
            return InferenceFailure(reason=reason)

        if not isinstance(payload, dict):
            logger.error("inference_bad_payload: model=%s, status=%s", model, response.status_code)
            return InferenceFailure(reason="Upstream returned a non-JSON body")

        if payload.get("success") is False:
            reason = _error_reason(payload) or "Upstream reported failure"
            logger.error("inference_unsuccessful: model=%s, reason=%s", model, reason)
            return InferenceFailure(reason=reason)

        result = payload.get("result", payload)
        text = extract_text(result)
        if text is None:
            logger.error("inference_empty_result: model=%s", model)
            return InferenceFailure(reason="Upstream result contained no text")

        logger.info("inference_completed: model=%s, latency_ms=%.2f", model, latency_ms)
        return InferenceSuccess(
            text=text,
            usage=extract_usage(result),
            raw=result if isinstance(result, dict) else {"response": result},
        )


__all__ = ["WorkersAIClient", "extract_text", "extract_usage"]
