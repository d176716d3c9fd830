"""Conversation context assembly.

Keeps multi-turn conversation history inside a model's context window and
renders it into the instruction string handed to the inference call.

Budgets are measured in characters, not tokens; four characters per token
is the working estimate used to derive the per-model table.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from functools import reduce

from inference_gateway.domain.entities import ConversationMessage, Model, TruncationOutcome

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4

MODEL_TOKEN_LIMITS: dict[str, int] = {
    Model.GPT_OSS_120B.value: 128_000,
    Model.GPT_OSS_20B.value: 128_000,
}

MODEL_CHARACTER_LIMITS: dict[str, int] = {
    model: tokens * CHARS_PER_TOKEN for model, tokens in MODEL_TOKEN_LIMITS.items()
}

DEFAULT_CHARACTER_LIMIT = 400_000

DEFAULT_INSTRUCTIONS = "You are a helpful AI assistant."

TRUNCATION_MARKER = "[Earlier conversation history was truncated due to length]"

HISTORY_HEADER = (
    "=== CONVERSATION HISTORY ===",
    "IMPORTANT: You MUST remember and refer to the following conversation history.",
    "The user expects you to maintain context from previous messages.",
    "",
    "Previous messages in this conversation:",
)

HISTORY_FOOTER = (
    "\n=== END OF HISTORY ===",
    "",
    "CRITICAL INSTRUCTIONS:",
    "1. You MUST consider the above conversation history when responding",
    "2. If the user asks about something mentioned earlier, refer to it",
    "3. Maintain consistency with your previous responses",
    "4. If asked about previous messages, reference them accurately",
    "5. Remember any names, preferences, or facts shared by the user",
    "",
)


def character_limit_for_model(
    model: str,
    overrides: Mapping[str, int] | None = None,
    default: int | None = None,
) -> int:
    """Character budget for a model's conversation history.

    Args:
        model: Model identifier.
        overrides: Per-model budgets merged over the built-in table.
        default: Budget for models in neither table. Defaults to
            DEFAULT_CHARACTER_LIMIT.

    Returns:
        Maximum total characters of history content for the model.
    """
    table = {**MODEL_CHARACTER_LIMITS, **(overrides or {})}
    if model in table:
        return table[model]
    return DEFAULT_CHARACTER_LIMIT if default is None else default


def supported_models(overrides: Mapping[str, int] | None = None) -> list[str]:
    """Model identifiers the gateway accepts, built-in models first."""
    extra = [model for model in (overrides or {}) if model not in MODEL_TOKEN_LIMITS]
    return [*MODEL_TOKEN_LIMITS, *extra]


def truncate_history(
    history: Sequence[ConversationMessage] | None,
    max_characters: int,
) -> TruncationOutcome:
    """Keep the most recent messages whose content fits in max_characters.

    Walks from newest to oldest and stops at the first message that would
    push the running total over the budget; older messages are never
    considered after that point, even if they would fit. When anything was
    dropped, a system-role marker is placed in front of the kept messages.

    Args:
        history: Chronological conversation, oldest first. Not mutated.
        max_characters: Budget for the summed content length.

    Returns:
        TruncationOutcome with the retained messages in chronological order.
    """
    if not history:
        return TruncationOutcome()

    total = 0
    kept_from = len(history)
    for index in range(len(history) - 1, -1, -1):
        size = len(history[index].content)
        if total + size > max_characters:
            break
        total += size
        kept_from = index

    retained = tuple(history[kept_from:])
    was_truncated = kept_from > 0
    if was_truncated:
        retained = (ConversationMessage(role="system", content=TRUNCATION_MARKER), *retained)
        logger.info(
            "history_truncated: original=%s, retained=%s, characters=%s, budget=%s",
            len(history),
            len(retained),
            total,
            max_characters,
        )

    return TruncationOutcome(
        retained_messages=retained,
        was_truncated=was_truncated,
        original_count=len(history),
        retained_count=len(retained),
    )


def _render_message(
    state: tuple[int, list[str]], message: ConversationMessage
) -> tuple[int, list[str]]:
    number, lines = state
    match message.role:
        case "user":
            return number + 1, [*lines, f"\n[Message {number} - User]:", message.content]
        case "assistant":
            return number, [*lines, "[Your Previous Response]:", message.content]
        case _:
            return number, [*lines, message.content]


def format_history(messages: Sequence[ConversationMessage]) -> str:
    """Render messages as the transcript block, or "" when there are none."""
    if not messages:
        return ""
    _, body = reduce(_render_message, messages, (1, []))
    return "\n".join([*HISTORY_HEADER, *body, *HISTORY_FOOTER])


def build_instructions(
    base_instructions: str | None,
    retained_messages: Sequence[ConversationMessage],
) -> str:
    """Combine retained history and base instructions into one string.

    Pure function: the same inputs always produce the same output.

    Args:
        base_instructions: Caller's system instructions. Empty or None falls
            back to DEFAULT_INSTRUCTIONS.
        retained_messages: Output of truncate_history.

    Returns:
        The base instructions alone when there is no history, otherwise the
        transcript block followed by "System Instructions: " and the base.
    """
    instructions = base_instructions or DEFAULT_INSTRUCTIONS
    transcript = format_history(retained_messages)
    if not transcript:
        return instructions
    return f"{transcript}\n\nSystem Instructions: {instructions}"


__all__ = [
    "CHARS_PER_TOKEN",
    "DEFAULT_CHARACTER_LIMIT",
    "DEFAULT_INSTRUCTIONS",
    "MODEL_CHARACTER_LIMITS",
    "MODEL_TOKEN_LIMITS",
    "TRUNCATION_MARKER",
    "build_instructions",
    "character_limit_for_model",
    "format_history",
    "supported_models",
    "truncate_history",
]
