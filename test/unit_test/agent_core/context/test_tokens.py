from __future__ import annotations

import pytest

from cowork_ai.agent_core.context.tokens import (
    DEFAULT_CONTEXT_LIMIT,
    base_model_id,
    context_limit,
    count_tokens,
    estimate_tokens,
)
from cowork_ai.agent_core.schemas.domain import ChatMessage, MessageRole


@pytest.mark.parametrize("text,expected", [("", 0), ("abc", 1), ("abcd", 1), ("abcde", 2), ("x" * 400, 100)])
def test_estimate_tokens(text: str, expected: int) -> None:
    assert estimate_tokens(text) == expected


def test_estimate_tokens_for_structured_content() -> None:
    content = [{"type": "text", "text": "hi"}]

    assert estimate_tokens(content) == estimate_tokens('[{"type": "text", "text": "hi"}]')
    assert estimate_tokens(None) == 0


@pytest.mark.parametrize(
    "model,expected",
    [
        ("anthropic/claude-sonnet-4", 200_000),
        ("anthropic/claude-sonnet-4:online", 200_000),
        ("openai/gpt-4o-mini", 128_000),
        ("google/gemini-2.0-flash-001", 1_000_000),
        ("some/unknown-model", DEFAULT_CONTEXT_LIMIT),
    ],
)
def test_context_limit(model: str, expected: int) -> None:
    assert context_limit(model) == expected


def test_context_limit_with_custom_table() -> None:
    assert context_limit("llama3.1:8b", default=8_000, limits={"llama3.1": 32_000}) == 32_000
    assert context_limit("mistral", default=8_000, limits={}) == 8_000


def test_base_model_id() -> None:
    assert base_model_id(" meta/llama-3:free ") == "meta/llama-3"
    assert base_model_id("openai/gpt-4o") == "openai/gpt-4o"


def test_count_tokens() -> None:
    messages = [
        ChatMessage(role=MessageRole.user, content="a" * 8),
        ChatMessage(role=MessageRole.assistant, content="b" * 5),
    ]

    assert count_tokens("s" * 4, messages) == 1 + 2 + 2
