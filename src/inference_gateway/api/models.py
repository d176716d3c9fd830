"""Request and response models for the REST API.

Pydantic v2 models for every request body and response payload. Request
models ignore unknown fields so clients written against the OpenAI or
Responses APIs can send their usual extras; response models forbid them.

Validation Rules:
    - Message roles: "system", "user" or "assistant"
    - Message content: at most CONTEXT_MAX_MESSAGE_CHARS characters
    - max_tokens: 1..4096
    - temperature: 0..2
    - reasoning effort: "low", "medium" or "high"

Key Models:
    - Request Models: ResponsesChatRequest, ChatCompletionsRequest,
      CompletionRequest, CodeRequest
    - Response Models: ResponsesChatResponse, ChatCompletionResponse,
      CompletionResponse, ModelsResponse, HealthResponse, MetricsResponse
    - Error Models: ErrorDetail, ErrorResponse
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from inference_gateway.api.limits import (
    MAX_MAX_TOKENS,
    MAX_TEMPERATURE,
    MIN_MAX_TOKENS,
    MIN_TEMPERATURE,
)
from inference_gateway.core.config import settings
from inference_gateway.domain.entities import ConversationMessage

Role = Literal["system", "user", "assistant"]
Effort = Literal["low", "medium", "high"]

# ============================================================================
# Shared request pieces
# ============================================================================


class Message(BaseModel):
    """A single conversation message.

    Attributes:
        role: Message author.
        content: Message text. Bounded by CONTEXT_MAX_MESSAGE_CHARS.
    """

    model_config = ConfigDict(extra="ignore")

    role: Role = Field(..., description="Message role")
    content: str = Field(..., description="Message content")

    @field_validator("content")
    @classmethod
    def validate_content_length(cls, v: str) -> str:
        limit = settings.context.max_message_chars
        if len(v) > limit:
            raise ValueError(f"content is too long (max {limit} characters)")
        return v

    def to_domain(self) -> ConversationMessage:
        return ConversationMessage(role=self.role, content=self.content)


class ReasoningOptions(BaseModel):
    """Reasoning configuration forwarded to reasoning-capable models."""

    model_config = ConfigDict(extra="ignore")

    effort: Effort = Field("medium", description="Reasoning effort")


class GenerationParams(BaseModel):
    """Sampling parameters shared by generation requests."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    model: str | None = Field(None, min_length=1, description="Model identifier")
    max_tokens: int | None = Field(
        None, ge=MIN_MAX_TOKENS, le=MAX_MAX_TOKENS, description="Maximum tokens to generate"
    )
    temperature: float | None = Field(
        None, ge=MIN_TEMPERATURE, le=MAX_TEMPERATURE, description="Sampling temperature"
    )


# ============================================================================
# Request models
# ============================================================================


class ResponsesChatRequest(GenerationParams):
    """Responses-style chat request for /api/v1/chat.

    ``reasoning`` accepts either ``{"effort": "high"}`` or the bare string.
    """

    input: str | list[Message] = Field(..., description="Current input text or message list")
    instructions: str | None = Field(None, description="Base system instructions")
    conversation_history: list[Message] | None = Field(
        None, alias="conversationHistory", description="Earlier turns, oldest first"
    )
    reasoning: ReasoningOptions = Field(default_factory=ReasoningOptions)

    @field_validator("reasoning", mode="before")
    @classmethod
    def coerce_reasoning(cls, v: Any) -> Any:
        if isinstance(v, str):
            return {"effort": v}
        return {} if v is None else v

    @field_validator("input")
    @classmethod
    def validate_input(cls, v: str | list[Message]) -> str | list[Message]:
        if not v:
            raise ValueError("input cannot be empty")
        if isinstance(v, str) and len(v) > settings.context.max_message_chars:
            raise ValueError(
                f"input is too long (max {settings.context.max_message_chars} characters)"
            )
        return v

    def history(self) -> list[ConversationMessage]:
        return [m.to_domain() for m in self.conversation_history or []]

    def input_payload(self) -> str | list[dict[str, str]]:
        if isinstance(self.input, str):
            return self.input
        return [m.model_dump() for m in self.input]


class ChatCompletionsRequest(GenerationParams):
    """OpenAI-style chat completion request for /api/v1/chat/completions."""

    messages: list[Message] = Field(..., min_length=1, description="Conversation messages")
    reasoning_effort: Effort = Field("medium", description="Reasoning effort")
    stream: bool = Field(False, description="Streaming is not supported")

    @model_validator(mode="after")
    def reject_streaming(self) -> ChatCompletionsRequest:
        if self.stream:
            raise ValueError("stream: streaming responses are not supported")
        return self

    def domain_messages(self) -> list[ConversationMessage]:
        return [m.to_domain() for m in self.messages]


class CompletionRequest(GenerationParams):
    """Text completion request for /api/v1/completions."""

    prompt: str = Field(..., min_length=1, description="Prompt text")

    @field_validator("prompt")
    @classmethod
    def validate_prompt_length(cls, v: str) -> str:
        limit = settings.context.max_message_chars
        if len(v) > limit:
            raise ValueError(f"prompt is too long (max {limit} characters)")
        return v


class CodeRequest(ResponsesChatRequest):
    """Code-interpreter style request for /api/v1/code.

    Reasoning effort is always "high"; any supplied value is ignored.
    """


# ============================================================================
# Response models
# ============================================================================


class Usage(BaseModel):
    """Token usage, reported by the model or estimated at 4 characters per token."""

    prompt_tokens: int | None = Field(None, ge=0)
    completion_tokens: int | None = Field(None, ge=0)
    total_tokens: int | None = Field(None, ge=0)


class HistoryInfo(BaseModel):
    """How much conversation history reached the model."""

    original_count: int = Field(..., ge=0)
    retained_count: int = Field(..., ge=0)
    truncated: bool = False


class OutputText(BaseModel):
    type: Literal["output_text"] = "output_text"
    text: str


class OutputMessage(BaseModel):
    type: Literal["message"] = "message"
    role: Literal["assistant"] = "assistant"
    content: list[OutputText]


class ResponsesChatResponse(BaseModel):
    """Responses-style chat result."""

    model_config = ConfigDict(extra="forbid")

    id: str
    object: Literal["response"] = "response"
    created: int
    model: str
    output: list[OutputMessage]
    output_text: str
    usage: Usage
    history: HistoryInfo
    warning: str | None = None
    request_id: str


class ChatCompletionMessage(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str


class ChatCompletionChoice(BaseModel):
    index: int = 0
    message: ChatCompletionMessage
    finish_reason: str = "stop"


class ChatCompletionResponse(BaseModel):
    """OpenAI-compatible chat completion."""

    model_config = ConfigDict(extra="forbid")

    id: str
    object: Literal["chat.completion"] = "chat.completion"
    created: int
    model: str
    choices: list[ChatCompletionChoice]
    usage: Usage
    history: HistoryInfo | None = None
    warning: str | None = None


class CompletionChoice(BaseModel):
    index: int = 0
    text: str
    finish_reason: str = "stop"


class CompletionResponse(BaseModel):
    """OpenAI-compatible text completion."""

    model_config = ConfigDict(extra="forbid")

    id: str
    object: Literal["text_completion"] = "text_completion"
    created: int
    model: str
    choices: list[CompletionChoice]
    usage: Usage


class ModelInfo(BaseModel):
    """A model served through the gateway."""

    id: str
    object: Literal["model"] = "model"
    created: int
    owned_by: str
    context_window: int = Field(..., ge=1, description="Context window in tokens")
    history_char_budget: int = Field(..., ge=0, description="History budget in characters")


class ModelsResponse(BaseModel):
    object: Literal["list"] = "list"
    data: list[ModelInfo]


class HealthResponse(BaseModel):
    """Health check result."""

    status: Literal["healthy", "degraded"]
    version: str
    store_backend: str
    store_available: bool
    auth_configured: bool
    timestamp: str


class MetricsResponse(BaseModel):
    """Structured response for /metrics endpoint."""

    model_config = ConfigDict(extra="forbid")

    total_requests: int = Field(..., ge=0)
    successful_requests: int = Field(..., ge=0)
    failed_requests: int = Field(..., ge=0)
    requests_by_model: dict[str, int] = Field(default_factory=dict)
    requests_by_operation: dict[str, int] = Field(default_factory=dict)
    average_latency_ms: float = Field(..., ge=0.0)
    p50_latency_ms: float = Field(..., ge=0.0)
    p95_latency_ms: float = Field(..., ge=0.0)
    p99_latency_ms: float = Field(..., ge=0.0)
    errors_by_type: dict[str, int] = Field(default_factory=dict)
    events: dict[str, int] = Field(default_factory=dict)
    last_request_time: str | None = None
    first_request_time: str | None = None


class ErrorDetail(BaseModel):
    """Body of the ``error`` member of every error response."""

    message: str
    type: str
    code: str
    param: str | None = None
    request_id: str | None = None


class ErrorResponse(BaseModel):
    """Standard error envelope: ``{"error": {...}}``."""

    error: ErrorDetail


@dataclass(slots=True, frozen=True)
class RequestContext:
    """Context for tracking API requests.

    Attributes:
        request_id: Unique request identifier (UUID string).
        client_ip: Best-known client address.
        user_agent: User-Agent header value, if any.
        client_id: Rate limit identifier, set once the caller is authenticated.
    """

    request_id: str
    client_ip: str
    user_agent: str | None = None
    client_id: str | None = None


__all__ = [
    "ChatCompletionChoice",
    "ChatCompletionMessage",
    "ChatCompletionResponse",
    "ChatCompletionsRequest",
    "CodeRequest",
    "CompletionChoice",
    "CompletionRequest",
    "CompletionResponse",
    "ErrorDetail",
    "ErrorResponse",
    "GenerationParams",
    "HealthResponse",
    "HistoryInfo",
    "Message",
    "MetricsResponse",
    "ModelInfo",
    "ModelsResponse",
    "OutputMessage",
    "OutputText",
    "ReasoningOptions",
    "RequestContext",
    "ResponsesChatRequest",
    "ResponsesChatResponse",
    "Usage",
]
