"""
Behavioral tests for history truncation and instruction assembly.
"""

from __future__ import annotations

import pytest

from inference_gateway.application.context import (
    DEFAULT_CHARACTER_LIMIT,
    DEFAULT_INSTRUCTIONS,
    HISTORY_FOOTER,
    HISTORY_HEADER,
    MODEL_CHARACTER_LIMITS,
    TRUNCATION_MARKER,
    build_instructions,
    character_limit_for_model,
    format_history,
    supported_models,
    truncate_history,
)
from inference_gateway.domain.entities import ConversationMessage, Model


def _msg(role: str, size: int, fill: str = "x") -> ConversationMessage:
    return ConversationMessage(role=role, content=fill * size)


def _conversation(count: int, size: int) -> list[ConversationMessage]:
    return [
        _msg("user" if i % 2 == 0 else "assistant", size, fill=chr(ord("a") + i))
        for i in range(count)
    ]


class TestTruncateHistory:
    """Tests for truncate_history()."""

    def test_five_long_messages_keep_three_plus_marker(self):
        history = _conversation(5, 30_000)

        outcome = truncate_history(history, 90_000)

        assert outcome.was_truncated is True
        assert outcome.original_count == 5
        assert outcome.retained_count == 4
        assert outcome.retained_messages[0] == ConversationMessage("system", TRUNCATION_MARKER)
        assert list(outcome.retained_messages[1:]) == history[2:]

    def test_history_within_budget_is_returned_unchanged(self):
        history = _conversation(4, 100)

        outcome = truncate_history(history, 400)

        assert outcome.was_truncated is False
        assert list(outcome.retained_messages) == history
        assert outcome.retained_count == outcome.original_count == 4

    @pytest.mark.parametrize("history", [None, []])
    def test_empty_history(self, history):
        outcome = truncate_history(history, 1000)

        assert outcome.retained_messages == ()
        assert outcome.was_truncated is False
        assert outcome.original_count == 0
        assert outcome.retained_count == 0

    @pytest.mark.parametrize("budget", [0, 7, 150, 299, 1_000])
    def test_retained_content_never_exceeds_budget(self, budget):
        history = [_msg("user", 50), _msg("assistant", 120), _msg("user", 30), _msg("assistant", 90)]

        outcome = truncate_history(history, budget)

        kept = [m for m in outcome.retained_messages if m.content != TRUNCATION_MARKER]
        assert sum(len(m.content) for m in kept) <= budget

    def test_retained_messages_are_a_contiguous_suffix(self):
        history = _conversation(10, 25)

        outcome = truncate_history(history, 110)

        kept = list(outcome.retained_messages[1:])
        assert kept == history[-len(kept):]
        assert len(kept) == 4

    def test_stops_at_first_message_that_does_not_fit(self):
        # The oldest message would fit on its own, but an earlier (newer)
        # message already overflowed the budget.
        history = [_msg("user", 5), _msg("assistant", 500), _msg("user", 10)]

        outcome = truncate_history(history, 100)

        assert [len(m.content) for m in outcome.retained_messages[1:]] == [10]
        assert outcome.retained_count == 2

    def test_newest_message_larger_than_budget_keeps_only_marker(self):
        history = [_msg("user", 10), _msg("assistant", 10), _msg("user", 200)]

        outcome = truncate_history(history, 100)

        assert outcome.was_truncated is True
        assert outcome.retained_messages == (ConversationMessage("system", TRUNCATION_MARKER),)
        assert outcome.retained_count == 1

    def test_exact_fit_is_not_truncated(self):
        history = [_msg("user", 60), _msg("assistant", 40)]

        outcome = truncate_history(history, 100)

        assert outcome.was_truncated is False

    def test_empty_messages_cost_nothing(self):
        history = [_msg("user", 0), _msg("assistant", 0), _msg("user", 0)]

        outcome = truncate_history(history, 0)

        assert outcome.was_truncated is False
        assert outcome.retained_count == 3

    def test_input_is_not_mutated(self):
        history = _conversation(6, 50)
        snapshot = list(history)

        truncate_history(history, 120)

        assert history == snapshot


class TestCharacterLimitForModel:
    """Tests for the per-model budget table."""

    def test_known_models_use_four_chars_per_token(self):
        assert character_limit_for_model(Model.GPT_OSS_120B) == 512_000
        assert MODEL_CHARACTER_LIMITS[Model.GPT_OSS_20B.value] == 512_000

    def test_unknown_model_falls_back_to_default(self):
        assert character_limit_for_model("@cf/meta/llama-3.1-8b-instruct") == DEFAULT_CHARACTER_LIMIT

    def test_overrides_take_precedence(self):
        overrides = {Model.GPT_OSS_120B.value: 1_000, "custom/model": 2_000}

        assert character_limit_for_model(Model.GPT_OSS_120B.value, overrides) == 1_000
        assert character_limit_for_model("custom/model", overrides) == 2_000

    def test_explicit_default(self):
        assert character_limit_for_model("unknown", default=42) == 42

    def test_supported_models_lists_built_ins_then_overrides(self):
        overrides = {Model.GPT_OSS_20B.value: 1_000, "custom/model": 2_000}

        assert supported_models() == [Model.GPT_OSS_120B.value, Model.GPT_OSS_20B.value]
        assert supported_models(overrides) == [
            Model.GPT_OSS_120B.value,
            Model.GPT_OSS_20B.value,
            "custom/model",
        ]


class TestBuildInstructions:
    """Tests for build_instructions() and format_history()."""

    def test_no_history_returns_base_instructions_unchanged(self):
        assert build_instructions("Be concise.", []) == "Be concise."

    @pytest.mark.parametrize("base", [None, ""])
    def test_missing_base_uses_default(self, base):
        assert build_instructions(base, []) == DEFAULT_INSTRUCTIONS

    def test_transcript_precedes_system_instructions(self):
        history = [
            ConversationMessage("user", "My name is Ada."),
            ConversationMessage("assistant", "Nice to meet you, Ada."),
            ConversationMessage("user", "I like tea."),
        ]

        result = build_instructions("Be concise.", history)

        assert result.startswith(HISTORY_HEADER[0])
        assert result.endswith("\n\nSystem Instructions: Be concise.")
        assert "\n[Message 1 - User]:\nMy name is Ada." in result
        assert "[Your Previous Response]:\nNice to meet you, Ada." in result
        assert "\n[Message 2 - User]:\nI like tea." in result
        assert "=== END OF HISTORY ===" in result

    def test_only_user_messages_are_numbered(self):
        history = [
            ConversationMessage("assistant", "Hi"),
            ConversationMessage("user", "one"),
            ConversationMessage("assistant", "ok"),
            ConversationMessage("user", "two"),
        ]

        transcript = format_history(history)

        assert "[Message 1 - User]:\none" in transcript
        assert "[Message 2 - User]:\ntwo" in transcript
        assert "[Message 3" not in transcript

    def test_marker_is_rendered_as_plain_line(self):
        outcome = truncate_history(_conversation(5, 30_000), 90_000)

        transcript = format_history(outcome.retained_messages)

        lines = transcript.split("\n")
        assert lines[len(HISTORY_HEADER)] == TRUNCATION_MARKER

    def test_transcript_layout(self):
        transcript = format_history([ConversationMessage("user", "hello")])

        expected = "\n".join(
            [*HISTORY_HEADER, "\n[Message 1 - User]:", "hello", *HISTORY_FOOTER]
        )
        assert transcript == expected

    def test_format_history_empty(self):
        assert format_history([]) == ""

    def test_assembly_is_deterministic(self):
        history = _conversation(6, 40)

        first = build_instructions("Answer in French.", history)
        second = build_instructions("Answer in French.", list(history))

        assert first == second
