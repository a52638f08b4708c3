"""Streaming agent loop runtime.

The runtime drives one conversational turn at a time per conversation:

- ``AgentLoopController`` runs the model/tool loop, recovers once from a
  context overflow, and stores the result through ``LoopDeps.store``.
- ``RunStateRegistry`` tracks in-flight turns, owns their cancellation
  handles, and publishes ``RunStateSnapshot`` objects to observers.
- ``TurnDraft`` folds stream events into the assistant message shown while
  the turn is running.
"""

from .engine import AgentLoopController, build_history
from .events import ToolResultReceived, TurnDraft
from .models import ConversationRunState, LoopDeps, RunStateSnapshot, TurnResult
from .run_state import RunStateRegistry

__all__ = [
    "AgentLoopController",
    "ConversationRunState",
    "LoopDeps",
    "RunStateRegistry",
    "RunStateSnapshot",
    "ToolResultReceived",
    "TurnDraft",
    "TurnResult",
    "build_history",
]
