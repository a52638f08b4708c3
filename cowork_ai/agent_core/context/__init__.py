"""Context window management: token budgets, compaction and the system prompt."""

from .compaction import CompactionResult, ContextWindowManager, Summarizer, fallback_summary
from .prompts import SystemPromptBuilder
from .tokens import MODEL_CONTEXT_LIMITS, context_limit, count_tokens, estimate_tokens

__all__ = [
    "CompactionResult",
    "ContextWindowManager",
    "MODEL_CONTEXT_LIMITS",
    "Summarizer",
    "SystemPromptBuilder",
    "context_limit",
    "count_tokens",
    "estimate_tokens",
    "fallback_summary",
]
