"""Conversation compaction.

Design goals
------------
- A turn's request (system prompt plus history) should stay below the model's
  context limit. When the estimate reaches the proactive threshold, older
  history is replaced by a model-written summary before the provider is called.
- Compaction never loses the user's latest message: if it would fall outside
  the kept window, the window widens to include it.
- A summarizer failure never fails the turn; a fixed placeholder summary is
  used instead.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence, runtime_checkable

from ..schemas.domain import ChatMessage, MessageRole
from .tokens import DEFAULT_CONTEXT_LIMIT, context_limit, count_tokens

logger = logging.getLogger(__name__)

PROACTIVE_THRESHOLD = 0.8
DEFAULT_KEEP_LAST = 6
EMERGENCY_KEEP_LAST = 4
MAX_RENDERED_CHARS = 1000

SUMMARY_PROMPT_TEMPLATE = """You are summarizing a conversation between a user and an AI assistant for context continuity. Create a concise summary that captures:
1. Key topics discussed
2. Important decisions made
3. Current task/goal status
4. Any relevant file paths, code snippets, or technical details mentioned

Preserve verbatim any safety constraints, tool restrictions, or security instructions the user gave. Never summarize away security boundaries.

Be thorough but concise. Focus on information that would help continue the conversation.

CONVERSATION TO SUMMARIZE:
{conversation}

Provide only the summary, no preamble."""


@runtime_checkable
class Summarizer(Protocol):
    """Produces a summary text for a fully rendered summarization prompt."""

    async def summarize(self, prompt: str) -> str: ...


@dataclass(frozen=True)
class CompactionResult:
    summary: str
    messages: List[ChatMessage] = field(default_factory=list)
    summarized_count: int = 0

    @property
    def compacted(self) -> bool:
        return bool(self.summary)


def fallback_summary(count: int) -> str:
    return f"[Earlier conversation contained {count} messages that were truncated to save context space.]"


def _content_text(content) -> str:
    if isinstance(content, str):
        return content
    texts = [part.get("text", "") for part in content if isinstance(part, dict) and part.get("type") == "text"]
    return "\n".join(texts) if texts else json.dumps(content, default=str)


def render_for_summary(messages: Sequence[ChatMessage]) -> str:
    """Render messages as ``ROLE: content`` blocks, each truncated to 1000 characters."""
    blocks = []
    for message in messages:
        text = _content_text(message.content)
        if len(text) > MAX_RENDERED_CHARS:
            text = text[:MAX_RENDERED_CHARS] + "..."
        blocks.append(f"{message.role.value.upper()}: {text}")
    return "\n\n".join(blocks)


def split_point(history: Sequence[ChatMessage], keep_last: int) -> int:
    """
    Return the index where the kept window starts.

    The window is the last ``keep_last`` entries, widened backwards when
    needed so that it contains the most recent user message.
    """
    start = max(len(history) - keep_last, 0)
    for index in range(len(history) - 1, -1, -1):
        if history[index].role == MessageRole.user:
            return min(start, index)
    return start


class ContextWindowManager:
    """Decides when to compact a conversation and performs the compaction."""

    def __init__(
        self,
        summarizer: Optional[Summarizer] = None,
        *,
        threshold: float = PROACTIVE_THRESHOLD,
        keep_last: int = DEFAULT_KEEP_LAST,
        emergency_keep_last: int = EMERGENCY_KEEP_LAST,
        default_limit: int = DEFAULT_CONTEXT_LIMIT,
        limits: Optional[Dict[str, int]] = None,
    ) -> None:
        self._summarizer = summarizer
        self._threshold = threshold
        self._keep_last = keep_last
        self._emergency_keep_last = emergency_keep_last
        self._default_limit = default_limit
        self._limits = limits

    @property
    def keep_last(self) -> int:
        return self._keep_last

    @property
    def emergency_keep_last(self) -> int:
        return self._emergency_keep_last

    def limit_for(self, model: str) -> int:
        return context_limit(model, default=self._default_limit, limits=self._limits)

    def needs_compaction(self, system_prompt: str, history: Sequence[ChatMessage], model: str) -> bool:
        """True when the estimated request size is at or above the proactive threshold."""
        used = count_tokens(system_prompt, history)
        limit = self.limit_for(model)
        return used >= self._threshold * limit

    async def compact(self, history: Sequence[ChatMessage], *, keep_last: Optional[int] = None) -> CompactionResult:
        """
        Summarize everything before the kept window.

        Args:
            history: Full conversation history, oldest first.
            keep_last: Number of trailing entries to keep verbatim.

        Returns:
            A CompactionResult. Its ``summary`` is empty when there was nothing
            to summarize, in which case ``messages`` is the unchanged history.
        """
        keep = self._keep_last if keep_last is None else keep_last
        if len(history) <= keep:
            logger.debug("Not enough messages to compact")
            return CompactionResult(summary="", messages=list(history))

        start = split_point(history, keep)
        to_summarize = list(history[:start])
        kept = list(history[start:])
        if not to_summarize:
            return CompactionResult(summary="", messages=kept)

        logger.info(f"Compacting conversation: summarizing {len(to_summarize)} messages, keeping {len(kept)}")
        summary = await self._summarize(to_summarize)
        return CompactionResult(summary=summary, messages=kept, summarized_count=len(to_summarize))

    async def compact_if_needed(
        self, system_prompt: str, history: Sequence[ChatMessage], model: str
    ) -> Optional[CompactionResult]:
        """Run a proactive compaction when the threshold is reached; otherwise return None."""
        if not self.needs_compaction(system_prompt, history, model):
            return None
        logger.info(f"Approaching context limit for {model}, compacting")
        return await self.compact(history)

    async def emergency_compact(self, history: Sequence[ChatMessage]) -> CompactionResult:
        """Aggressive compaction used after the provider rejected a request as too large."""
        return await self.compact(history, keep_last=self._emergency_keep_last)

    async def _summarize(self, messages: List[ChatMessage]) -> str:
        if self._summarizer is not None:
            prompt = SUMMARY_PROMPT_TEMPLATE.format(conversation=render_for_summary(messages))
            try:
                summary = (await self._summarizer.summarize(prompt)).strip()
                if summary:
                    logger.debug(f"Compaction summary length: {len(summary)} chars")
                    return summary
            except Exception as e:
                logger.warning(f"Summarizer failed, using truncation fallback: {e}")
        return fallback_summary(len(messages))
