from __future__ import annotations

"""Runtime dependency bundle and run-state types.

The agent loop controller is dependency-injected.

- ``LoopDeps`` collects the store, endpoint, tools and context services the
  controller needs.
- ``ConversationRunState`` is the mutable per-conversation record kept by the
  run-state registry; ``RunStateSnapshot`` is the immutable view handed to
  observers.
- ``TurnResult`` is what a finished turn resolves to.
"""

from dataclasses import dataclass, field
from typing import Optional

from ..context import ContextWindowManager, SystemPromptBuilder
from ..providers.base import CancellationHandle, ChatStreamer
from ..repos import ConversationStore
from ..schemas.domain import DraftMessage, Message, PendingApproval, TurnOutcome
from ..tools.collaborators import ToolContext
from ..tools.registry import ToolRegistry


@dataclass(frozen=True)
class LoopDeps:
    """Dependency bundle for ``AgentLoopController``.

    ``tool_context`` holds the collaborators shared by every conversation;
    the controller stamps the conversation id onto a copy for each turn.
    """

    store: ConversationStore
    streamer: ChatStreamer
    tools: ToolRegistry
    context: ContextWindowManager
    prompts: SystemPromptBuilder
    tool_context: ToolContext = field(default_factory=ToolContext)


@dataclass
class ConversationRunState:
    conversation_id: str
    is_loading: bool = False
    draft: Optional[DraftMessage] = None
    error: Optional[str] = None
    handle: Optional[CancellationHandle] = None


@dataclass(frozen=True)
class RunStateSnapshot:
    """What an observer sees for one conversation at one instant."""

    conversation_id: str
    is_loading: bool
    draft: Optional[DraftMessage]
    error: Optional[str]
    pending_approval: Optional[PendingApproval] = None


@dataclass(frozen=True)
class TurnResult:
    conversation_id: str
    outcome: TurnOutcome
    message: Optional[Message] = None
    error: Optional[str] = None
    steps: int = 0
    compacted: bool = False
