"""Token estimation and per-model context limits.

Estimates use a fixed four-characters-per-token ratio. This deliberately
over-counts for English prose and is only meant to keep requests safely below
the provider's hard limit, not to reproduce its tokenizer.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Dict, Iterable, Optional

from ..schemas.domain import ChatMessage

CHARS_PER_TOKEN = 4
DEFAULT_CONTEXT_LIMIT = 100_000

MODEL_CONTEXT_LIMITS: Dict[str, int] = {
    "anthropic/claude-sonnet-4": 200_000,
    "anthropic/claude-3.5-sonnet": 200_000,
    "anthropic/claude-3-haiku": 200_000,
    "openai/gpt-4o": 128_000,
    "openai/gpt-4o-mini": 128_000,
    "google/gemini-2.0-flash-001": 1_000_000,
    "google/gemini-flash-1.5": 1_000_000,
}

# OpenRouter-style variant markers such as ":online" or ":free".
_MODEL_SUFFIX = re.compile(r":[A-Za-z0-9_-]+$")


def estimate_tokens(content: Any) -> int:
    """Estimate tokens for a text segment; non-text content is measured by its JSON form."""
    if content is None:
        return 0
    text = content if isinstance(content, str) else json.dumps(content, default=str)
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def base_model_id(model: str) -> str:
    """Strip a trailing ``:<modifier>`` variant marker from a model id."""
    return _MODEL_SUFFIX.sub("", model.strip())


def context_limit(model: str, *, default: int = DEFAULT_CONTEXT_LIMIT, limits: Optional[Dict[str, int]] = None) -> int:
    """Return the context ceiling for ``model``, falling back to ``default`` when unknown."""
    table = MODEL_CONTEXT_LIMITS if limits is None else limits
    return table.get(base_model_id(model), default)


def count_tokens(system_prompt: str, messages: Iterable[ChatMessage]) -> int:
    """Estimate tokens for a full request: system prompt plus every history entry."""
    return estimate_tokens(system_prompt) + sum(estimate_tokens(m.content) for m in messages)
