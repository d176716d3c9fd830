"""Helpers for turning use case results into API responses."""

from __future__ import annotations

import time
import uuid

from fastapi.responses import JSONResponse
from pydantic import BaseModel

from inference_gateway.api.models import (
    ChatCompletionChoice,
    ChatCompletionMessage,
    ChatCompletionResponse,
    CompletionChoice,
    CompletionResponse,
    HistoryInfo,
    OutputMessage,
    OutputText,
    RequestContext,
    ResponsesChatResponse,
    Usage,
)
from inference_gateway.domain.entities import GenerationResult, TruncationOutcome

TRUNCATION_WARNING = (
    "Conversation history was truncated to fit the model's context window: "
    "kept the {kept} most recent of {original} messages."
)


def _generate_id(prefix: str) -> str:
    return f"{prefix}{uuid.uuid4().hex[:24]}"


def _usage(result: GenerationResult) -> Usage:
    return Usage(
        prompt_tokens=result.usage.prompt_tokens,
        completion_tokens=result.usage.completion_tokens,
        total_tokens=result.usage.total_tokens,
    )


def build_history_info(truncation: TruncationOutcome | None) -> HistoryInfo:
    if truncation is None:
        return HistoryInfo(original_count=0, retained_count=0)
    return HistoryInfo(
        original_count=truncation.original_count,
        retained_count=truncation.retained_count,
        truncated=truncation.was_truncated,
    )


def truncation_warning(truncation: TruncationOutcome | None) -> str | None:
    """Warning text for a truncated history, None when nothing was dropped."""
    if truncation is None or not truncation.was_truncated:
        return None
    # retained_count includes the marker message
    return TRUNCATION_WARNING.format(
        kept=truncation.retained_count - 1, original=truncation.original_count
    )


def build_responses_chat_response(
    result: GenerationResult, ctx: RequestContext
) -> ResponsesChatResponse:
    """Build a Responses-style payload for /chat and /code."""
    return ResponsesChatResponse(
        id=_generate_id("resp_"),
        created=int(time.time()),
        model=result.model,
        output=[OutputMessage(content=[OutputText(text=result.text)])],
        output_text=result.text,
        usage=_usage(result),
        history=build_history_info(result.truncation),
        warning=truncation_warning(result.truncation),
        request_id=ctx.request_id,
    )


def build_chat_completion_response(result: GenerationResult) -> ChatCompletionResponse:
    """Build an OpenAI chat.completion payload."""
    return ChatCompletionResponse(
        id=_generate_id("chatcmpl-"),
        created=int(time.time()),
        model=result.model,
        choices=[ChatCompletionChoice(message=ChatCompletionMessage(content=result.text))],
        usage=_usage(result),
        history=build_history_info(result.truncation),
        warning=truncation_warning(result.truncation),
    )


def build_completion_response(result: GenerationResult) -> CompletionResponse:
    """Build an OpenAI text_completion payload."""
    return CompletionResponse(
        id=_generate_id("cmpl-"),
        created=int(time.time()),
        model=result.model,
        choices=[CompletionChoice(text=result.text)],
        usage=_usage(result),
    )


def json_response(model: BaseModel) -> JSONResponse:
    """Create JSONResponse from a response model, dropping unset optional fields."""
    return JSONResponse(content=model.model_dump(mode="json", exclude_none=True))


__all__ = [
    "build_chat_completion_response",
    "build_completion_response",
    "build_history_info",
    "build_responses_chat_response",
    "json_response",
    "truncation_warning",
]
