"""Agent runtime: loop controller, tools, approvals and context management.

Design overview
---------------

A turn is driven by ``runtime.AgentLoopController``:

1. The user message is stored and the history is loaded.
2. ``context.ContextWindowManager`` compacts the history when it nears the
   model's context limit.
3. The model is streamed one step at a time through a ``providers.ChatStreamer``.
4. Tool calls run through ``tools.ToolRegistry``, which applies argument
   repair, the sensitive-path filter, the shell command guard and, for risky
   tools, the ``policy.ApprovalGateway``.
5. The assistant message and its tool calls are stored when the turn ends.

Typical usage
-------------

Most applications should use ``agent_core.service.CoworkService``, which wires
everything from ``cowork_ai.core.config.Settings``.
"""

from .runtime import AgentLoopController, LoopDeps, RunStateRegistry, RunStateSnapshot, TurnResult
from .service import CoworkService, CoworkServiceDeps

__all__ = [
    "AgentLoopController",
    "CoworkService",
    "CoworkServiceDeps",
    "LoopDeps",
    "RunStateRegistry",
    "RunStateSnapshot",
    "TurnResult",
]
