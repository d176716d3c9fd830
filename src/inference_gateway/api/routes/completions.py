"""Text completion route.

Endpoint:
    POST /api/v1/completions
        - Request: CompletionRequest (prompt, model, max_tokens, temperature)
        - Response: CompletionResponse (OpenAI text_completion shape)
"""

from __future__ import annotations

import time
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response

from inference_gateway.api.dependencies import (
    get_completion_use_case,
    get_request_context,
    parse_request_json,
)
from inference_gateway.api.error_handlers import handle_route_errors
from inference_gateway.api.models import CompletionRequest
from inference_gateway.api.response_builders import build_completion_response, json_response
from inference_gateway.application.use_cases import CompletionUseCase

router = APIRouter()

UseCaseDep = Annotated[CompletionUseCase, Depends(get_completion_use_case)]


@router.post("/completions", tags=["Completions"], response_model=None)
async def completions(request: Request, use_case: UseCaseDep) -> Response:
    """Single-prompt text completion.

    Raises:
        HTTPException: 400 invalid request, 502 upstream failure,
            500 internal error.
    """
    ctx = get_request_context(request)
    start_time = time.perf_counter()
    api_req = await parse_request_json(request, CompletionRequest)
    handle_error = handle_route_errors(
        ctx,
        "completions",
        start_time=start_time,
        event_builder=lambda: {"model": api_req.model},
    )

    try:
        result = await use_case.execute(
            api_req.prompt,
            ctx.request_id,
            model=api_req.model,
            max_tokens=api_req.max_tokens,
            temperature=api_req.temperature,
            client_id=ctx.client_id,
        )
    except HTTPException:
        raise
    except Exception as exc:
        handle_error(exc)

    return json_response(build_completion_response(result))


__all__ = ["router"]
