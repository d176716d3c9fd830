"""Conversational routes.

Endpoints:
    POST /api/v1/chat
        Responses-style request (input, instructions, conversationHistory,
        model, reasoning). History is fitted into the model's character
        budget and rendered into the instructions.
    POST /api/v1/chat/completions
        OpenAI-style messages list. The first system message becomes the
        instructions, the trailing user message the input, and the turns
        in between the history.
    POST /api/v1/code
        Code-interpreter style request: high reasoning effort and code
        execution oriented default instructions.

Authentication and rate limiting happen in the gatekeeper before these
handlers run.
"""

from __future__ import annotations

import logging
import time
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response

from inference_gateway.api.dependencies import (
    get_chat_completions_use_case,
    get_chat_use_case,
    get_code_use_case,
    get_request_context,
    parse_request_json,
)
from inference_gateway.api.error_handlers import handle_route_errors
from inference_gateway.api.models import ChatCompletionsRequest, CodeRequest, ResponsesChatRequest
from inference_gateway.api.response_builders import (
    build_chat_completion_response,
    build_responses_chat_response,
    json_response,
)
from inference_gateway.application.use_cases import (
    ChatCompletionsUseCase,
    ChatUseCase,
    CodeUseCase,
)

logger = logging.getLogger(__name__)

router = APIRouter()

ChatUseCaseDep = Annotated[ChatUseCase, Depends(get_chat_use_case)]
ChatCompletionsUseCaseDep = Annotated[ChatCompletionsUseCase, Depends(get_chat_completions_use_case)]
CodeUseCaseDep = Annotated[CodeUseCase, Depends(get_code_use_case)]


@router.post("/chat", tags=["Chat"], response_model=None)
async def chat(request: Request, use_case: ChatUseCaseDep) -> Response:
    """Responses-style chat with conversation history.

    Returns:
        ResponsesChatResponse JSON. ``warning`` is present when older
        history was dropped to fit the model's context window.

    Raises:
        HTTPException: 400 invalid request, 413 body too large,
            502 upstream failure, 500 internal error.
    """
    ctx = get_request_context(request)
    start_time = time.perf_counter()
    api_req = await parse_request_json(request, ResponsesChatRequest)
    handle_error = handle_route_errors(
        ctx,
        "chat",
        start_time=start_time,
        event_builder=lambda: {"model": api_req.model},
    )

    try:
        result = await use_case.execute(
            api_req.input_payload(),
            ctx.request_id,
            history=api_req.history(),
            instructions=api_req.instructions,
            model=api_req.model,
            reasoning=api_req.reasoning.effort,
            max_tokens=api_req.max_tokens,
            temperature=api_req.temperature,
            client_id=ctx.client_id,
        )
    except HTTPException:
        raise
    except Exception as exc:
        handle_error(exc)

    if result.truncation is not None and result.truncation.was_truncated:
        logger.info(
            "chat_history_truncated: request_id=%s, original=%s, retained=%s",
            ctx.request_id,
            result.truncation.original_count,
            result.truncation.retained_count,
        )
    return json_response(build_responses_chat_response(result, ctx))


@router.post("/chat/completions", tags=["Chat"], response_model=None)
async def chat_completions(request: Request, use_case: ChatCompletionsUseCaseDep) -> Response:
    """OpenAI-compatible chat completions.

    Returns:
        ChatCompletionResponse JSON.
    """
    ctx = get_request_context(request)
    start_time = time.perf_counter()
    api_req = await parse_request_json(request, ChatCompletionsRequest)
    handle_error = handle_route_errors(
        ctx,
        "chat_completions",
        start_time=start_time,
        event_builder=lambda: {"model": api_req.model, "messages": len(api_req.messages)},
    )

    try:
        result = await use_case.execute(
            api_req.domain_messages(),
            ctx.request_id,
            model=api_req.model,
            reasoning=api_req.reasoning_effort,
            max_tokens=api_req.max_tokens,
            temperature=api_req.temperature,
            client_id=ctx.client_id,
        )
    except HTTPException:
        raise
    except Exception as exc:
        handle_error(exc)

    return json_response(build_chat_completion_response(result))


@router.post("/code", tags=["Chat"], response_model=None)
async def code(request: Request, use_case: CodeUseCaseDep) -> Response:
    """Code-interpreter style request.

    Returns:
        ResponsesChatResponse JSON.
    """
    ctx = get_request_context(request)
    start_time = time.perf_counter()
    api_req = await parse_request_json(request, CodeRequest)
    handle_error = handle_route_errors(
        ctx,
        "code",
        start_time=start_time,
        event_builder=lambda: {"model": api_req.model},
    )

    try:
        result = await use_case.execute(
            api_req.input_payload(),
            ctx.request_id,
            instructions=api_req.instructions,
            history=api_req.history(),
            model=api_req.model,
            client_id=ctx.client_id,
        )
    except HTTPException:
        raise
    except Exception as exc:
        handle_error(exc)

    return json_response(build_responses_chat_response(result, ctx))


__all__ = ["router"]
