"""Persistence seam for conversations."""

from .interfaces import ConversationStore
from .memory import InMemoryConversationStore

__all__ = ["ConversationStore", "InMemoryConversationStore"]
