"""Use cases for the Inference Gateway.

This module defines application use cases that orchestrate domain logic and
coordinate between domain entities and infrastructure adapters. Use cases
contain application-specific business rules but no framework or infrastructure
dependencies.

Design Principles:
    - Dependency Inversion: Depend on interfaces (Protocols), not implementations
    - Single Responsibility: Each use case handles one business operation
    - Orchestration: Coordinate context assembly, logging, metrics, and client calls
    - Framework-agnostic: No FastAPI, Pydantic, or other framework dependencies

Key Use Cases:
    - ChatUseCase: Responses-style conversation with history truncation
    - ChatCompletionsUseCase: OpenAI-style message list, split into
      instructions, history and current input
    - CompletionUseCase: Single-prompt text completion
    - CodeUseCase: Code-interpreter style request with high reasoning effort
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from inference_gateway.application.context import (
    DEFAULT_CHARACTER_LIMIT,
    build_instructions,
    character_limit_for_model,
    supported_models,
    truncate_history,
)
from inference_gateway.domain.entities import (
    ConversationMessage,
    GenerationResult,
    InferenceFailure,
    InferenceSuccess,
    InferenceUsage,
    Model,
    ReasoningEffort,
    TruncationOutcome,
)
from inference_gateway.domain.exceptions import InvalidRequestError, UpstreamError

if TYPE_CHECKING:
    from inference_gateway.application.interfaces import (
        InferenceClientInterface,
        MetricsCollectorInterface,
        RequestLoggerInterface,
    )

logger = logging.getLogger(__name__)

CODE_INTERPRETER_INSTRUCTIONS = (
    "You are a helpful AI assistant with code interpreter capabilities. "
    "Use code execution when needed to solve mathematical problems, data analysis, "
    "or programming tasks."
)

UPSTREAM_FAILURE_MESSAGE = "Failed to generate response from AI model"


def estimate_tokens(text: str) -> int:
    """Rough token count used when the upstream reports no usage."""
    return math.ceil(len(text) / 4)


def _input_text(value: str | Sequence[Mapping[str, Any]]) -> str:
    if isinstance(value, str):
        return value
    return "\n".join(str(item.get("content", "")) for item in value)


def _complete_usage(usage: InferenceUsage | None, prompt: str, text: str) -> InferenceUsage:
    if usage is not None and usage.total_tokens is not None:
        return usage
    prompt_tokens = estimate_tokens(prompt)
    completion_tokens = estimate_tokens(text)
    return InferenceUsage(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=prompt_tokens + completion_tokens,
    )


class _InferenceUseCase:
    """Shared plumbing for use cases that make one inference call.

    Attributes:
        _client: Inference client adapter implementing InferenceClientInterface.
        _logger: Request logger adapter implementing RequestLoggerInterface.
        _metrics: Metrics collector adapter implementing MetricsCollectorInterface.
        _default_model: Model used when the request names none.
        _models: Model identifiers a request may name.
    """

    def __init__(
        self,
        client: InferenceClientInterface,
        logger: RequestLoggerInterface,
        metrics: MetricsCollectorInterface,
        default_model: str = Model.GPT_OSS_120B.value,
        extra_models: Mapping[str, int] | None = None,
    ) -> None:
        self._client = client
        self._logger = logger
        self._metrics = metrics
        self._default_model = default_model
        self._models = frozenset([*supported_models(extra_models), default_model])

    def resolve_model(self, model: str | None) -> str:
        """Model to run for a request.

        Raises:
            InvalidRequestError: If model is not one the gateway serves.
        """
        if not model:
            return self._default_model
        if model not in self._models:
            raise InvalidRequestError(
                f"Invalid model. Supported models: {', '.join(sorted(self._models))}",
                param="model",
            )
        return model

    async def _invoke(
        self,
        *,
        operation: str,
        model: str,
        params: dict[str, Any],
        prompt_text: str,
        request_id: str,
        client_id: str | None,
        truncation: TruncationOutcome | None = None,
    ) -> GenerationResult:
        """Run the model and record the outcome.

        Raises:
            UpstreamError: If the inference call failed or produced no text.
        """
        start_time = time.perf_counter()
        result = await self._client.run(model, params)
        latency_ms = (time.perf_counter() - start_time) * 1000

        match result:
            case InferenceSuccess(text=text, usage=usage, raw=raw):
                self._record(
                    operation=operation,
                    model=model,
                    latency_ms=latency_ms,
                    request_id=request_id,
                    client_id=client_id,
                    truncation=truncation,
                )
                return GenerationResult(
                    text=text,
                    model=model,
                    usage=_complete_usage(usage, prompt_text, text),
                    truncation=truncation,
                    raw=raw,
                )
            case InferenceFailure(reason=reason):
                logger.error(
                    "inference_failed: operation=%s, model=%s, request_id=%s, reason=%s",
                    operation,
                    model,
                    request_id,
                    reason,
                )
                self._record(
                    operation=operation,
                    model=model,
                    latency_ms=latency_ms,
                    request_id=request_id,
                    client_id=client_id,
                    truncation=truncation,
                    error=reason,
                )
                raise UpstreamError(UPSTREAM_FAILURE_MESSAGE)

        raise TypeError(f"Unexpected inference result: {type(result).__name__}")

    def _record(
        self,
        *,
        operation: str,
        model: str,
        latency_ms: float,
        request_id: str,
        client_id: str | None,
        truncation: TruncationOutcome | None,
        error: str | None = None,
    ) -> None:
        event: dict[str, Any] = {
            "event": "api_request",
            "client_type": "rest_api",
            "operation": operation,
            "status": "success" if error is None else "error",
            "model": model,
            "request_id": request_id,
            "client_id": client_id,
            "latency_ms": round(latency_ms, 3),
        }
        if truncation is not None:
            event["history_original"] = truncation.original_count
            event["history_retained"] = truncation.retained_count
            event["history_truncated"] = truncation.was_truncated
        if error is not None:
            event["error_type"] = "UpstreamError"
            event["error_message"] = error
        self._logger.log_request(event)

        self._metrics.record_request(
            model=model,
            operation=operation,
            latency_ms=latency_ms,
            success=error is None,
            error=None if error is None else "UpstreamError",
        )


class ChatUseCase(_InferenceUseCase):
    """Conversation with history truncation and prompt assembly.

    The caller's history is fitted into the model's character budget, the
    retained turns are rendered into the instructions, and the current input
    is sent alongside them.
    """

    def __init__(
        self,
        client: InferenceClientInterface,
        logger: RequestLoggerInterface,
        metrics: MetricsCollectorInterface,
        default_model: str = Model.GPT_OSS_120B.value,
        char_budgets: Mapping[str, int] | None = None,
        default_char_budget: int = DEFAULT_CHARACTER_LIMIT,
    ) -> None:
        """Initialize the chat use case.

        Args:
            client: Inference client adapter.
            logger: Request logger for recording request events.
            metrics: Metrics collector for tracking performance and usage.
            default_model: Model used when the request names none.
            char_budgets: Per-model history budgets merged over the built-in table.
            default_char_budget: Budget for models in neither table.
        """
        super().__init__(client, logger, metrics, default_model, char_budgets)
        self._char_budgets = dict(char_budgets or {})
        self._default_char_budget = default_char_budget

    def budget_for(self, model: str) -> int:
        return character_limit_for_model(model, self._char_budgets, self._default_char_budget)

    async def execute(
        self,
        input: str | Sequence[Mapping[str, Any]],
        request_id: str,
        *,
        history: Sequence[ConversationMessage] | None = None,
        instructions: str | None = None,
        model: str | None = None,
        reasoning: ReasoningEffort | str = ReasoningEffort.MEDIUM,
        max_tokens: int | None = None,
        temperature: float | None = None,
        client_id: str | None = None,
        operation: str = "chat",
    ) -> GenerationResult:
        """Execute a chat request.

        Args:
            input: Current user input, as text or a list of message dicts.
            request_id: Unique request identifier for tracing and logging.
            history: Earlier turns, oldest first.
            instructions: Base system instructions.
            model: Model identifier. Defaults to the configured model.
            reasoning: Reasoning effort hint.
            max_tokens: Generation cap forwarded to the model.
            temperature: Sampling temperature forwarded to the model.
            client_id: Rate limit identifier of the caller, for logging.
            operation: Operation name used in logs and metrics.

        Returns:
            GenerationResult carrying the truncation outcome.

        Raises:
            InvalidRequestError: If input is empty or model is unsupported.
            UpstreamError: If the inference call failed.
        """
        if not input:
            raise InvalidRequestError("Missing required field: input", param="input")

        model_name = self.resolve_model(model)
        truncation = truncate_history(history, self.budget_for(model_name))
        if truncation.was_truncated:
            self._metrics.record_event("history_truncated")

        params: dict[str, Any] = {
            "input": input if isinstance(input, str) else [dict(item) for item in input],
            "instructions": build_instructions(instructions, truncation.retained_messages),
            "reasoning": {"effort": str(reasoning)},
        }
        if max_tokens is not None:
            params["max_tokens"] = max_tokens
        if temperature is not None:
            params["temperature"] = temperature

        return await self._invoke(
            operation=operation,
            model=model_name,
            params=params,
            prompt_text=_input_text(input),
            request_id=request_id,
            client_id=client_id,
            truncation=truncation,
        )


def split_chat_messages(
    messages: Sequence[ConversationMessage],
) -> tuple[str | None, list[ConversationMessage], str]:
    """Split an OpenAI-style message list for the chat path.

    The first system message becomes the base instructions. A trailing user
    message is the current input; every other user or assistant turn is
    history. Later system messages are dropped. When the list does not end
    with a user message, the last user or assistant turn is used as input
    and stays in the history.

    Returns:
        (instructions, history, current_input)
    """
    instructions: str | None = None
    history: list[ConversationMessage] = []
    current = ""
    last_index = len(messages) - 1
    for index, message in enumerate(messages):
        if message.role == "system":
            if instructions is None:
                instructions = message.content
            continue
        if index == last_index and message.role == "user":
            current = message.content
        else:
            history.append(message)
    if not current and history:
        current = history[-1].content
    return instructions, history, current


class ChatCompletionsUseCase:
    """OpenAI-style chat completion on top of ChatUseCase."""

    def __init__(self, chat: ChatUseCase) -> None:
        self._chat = chat

    async def execute(
        self,
        messages: Sequence[ConversationMessage],
        request_id: str,
        *,
        model: str | None = None,
        reasoning: ReasoningEffort | str = ReasoningEffort.MEDIUM,
        max_tokens: int | None = None,
        temperature: float | None = None,
        client_id: str | None = None,
    ) -> GenerationResult:
        """Execute a chat completion.

        Raises:
            InvalidRequestError: If messages is empty or carries no input text.
            UpstreamError: If the inference call failed.
        """
        if not messages:
            raise InvalidRequestError("messages must be a non-empty array", param="messages")
        instructions, history, current = split_chat_messages(messages)
        if not current:
            raise InvalidRequestError("Last message must have content", param="messages")
        return await self._chat.execute(
            current,
            request_id,
            history=history,
            instructions=instructions,
            model=model,
            reasoning=reasoning,
            max_tokens=max_tokens,
            temperature=temperature,
            client_id=client_id,
            operation="chat_completions",
        )


class CodeUseCase:
    """Code-interpreter style request: high reasoning effort, dedicated instructions."""

    def __init__(self, chat: ChatUseCase) -> None:
        self._chat = chat

    async def execute(
        self,
        input: str | Sequence[Mapping[str, Any]],
        request_id: str,
        *,
        instructions: str | None = None,
        history: Sequence[ConversationMessage] | None = None,
        model: str | None = None,
        client_id: str | None = None,
    ) -> GenerationResult:
        return await self._chat.execute(
            input,
            request_id,
            history=history,
            instructions=instructions or CODE_INTERPRETER_INSTRUCTIONS,
            model=model,
            reasoning=ReasoningEffort.HIGH,
            client_id=client_id,
            operation="code",
        )


class CompletionUseCase(_InferenceUseCase):
    """Single-prompt text completion."""

    def __init__(
        self,
        client: InferenceClientInterface,
        logger: RequestLoggerInterface,
        metrics: MetricsCollectorInterface,
        default_model: str = Model.GPT_OSS_120B.value,
        default_max_tokens: int = 1024,
        default_temperature: float = 0.7,
        extra_models: Mapping[str, int] | None = None,
    ) -> None:
        super().__init__(client, logger, metrics, default_model, extra_models)
        self._default_max_tokens = default_max_tokens
        self._default_temperature = default_temperature

    async def execute(
        self,
        prompt: str,
        request_id: str,
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        client_id: str | None = None,
    ) -> GenerationResult:
        """Execute a text completion.

        Raises:
            InvalidRequestError: If prompt is empty or model is unsupported.
            UpstreamError: If the inference call failed.
        """
        if not prompt:
            raise InvalidRequestError("prompt cannot be empty", param="prompt")
        model_name = self.resolve_model(model)
        params: dict[str, Any] = {
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens if max_tokens is not None else self._default_max_tokens,
            "temperature": temperature if temperature is not None else self._default_temperature,
        }
        return await self._invoke(
            operation="completions",
            model=model_name,
            params=params,
            prompt_text=prompt,
            request_id=request_id,
            client_id=client_id,
        )


__all__ = [
    "CODE_INTERPRETER_INSTRUCTIONS",
    "ChatCompletionsUseCase",
    "ChatUseCase",
    "CodeUseCase",
    "CompletionUseCase",
    "UPSTREAM_FAILURE_MESSAGE",
    "estimate_tokens",
    "split_chat_messages",
]
