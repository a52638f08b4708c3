"""Turn events and the draft accumulator.

Model events (``TextDelta``, ``ToolCallRequested``) come from the streamer;
``ToolResultReceived`` is emitted by the controller after each tool runs.
``TurnDraft`` folds all three into the assistant message shown while the turn
is in flight.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List

from ..schemas.domain import DraftMessage, ToolCall, ToolCallStatus

CANCELLED_OUTPUT = json.dumps({"error": True, "message": "Cancelled by user"})


@dataclass(frozen=True)
class ToolResultReceived:
    id: str
    name: str
    result: Any


def is_error_result(result: Any) -> bool:
    """A tool result counts as an error only when it carries ``error: true``."""
    return isinstance(result, dict) and result.get("error") is True


def serialize(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


class TurnDraft:
    """Mutable accumulator for the assistant message of one turn."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._content = ""
        self._tool_calls: Dict[str, ToolCall] = {}
        self._needs_paragraph_break = False

    @property
    def content(self) -> str:
        return self._content

    @property
    def tool_calls(self) -> List[ToolCall]:
        return list(self._tool_calls.values())

    @property
    def is_empty(self) -> bool:
        return not self._content and not self._tool_calls

    def add_text(self, text: str) -> None:
        # Text that follows a tool result starts a new paragraph.
        if self._needs_paragraph_break and self._content and text.strip():
            self._content += "\n\n"
            self._needs_paragraph_break = False
        self._content += text

    def add_tool_call(self, call_id: str, tool_name: str, args: Any) -> ToolCall:
        call = ToolCall(id=call_id, tool_name=tool_name, input=serialize(args or {}))
        self._tool_calls[call_id] = call
        return call

    def add_tool_result(self, event: ToolResultReceived) -> None:
        existing = self._tool_calls.get(event.id)
        if existing is None or existing.status != ToolCallStatus.pending:
            return
        self._tool_calls[event.id] = existing.complete(serialize(event.result), error=is_error_result(event.result))
        self._needs_paragraph_break = True

    def cancel_pending(self) -> int:
        """Mark every still-pending call as failed by cancellation; returns how many."""
        count = 0
        for call_id, call in list(self._tool_calls.items()):
            if call.status == ToolCallStatus.pending:
                self._tool_calls[call_id] = call.complete(CANCELLED_OUTPUT, error=True)
                count += 1
        return count

    def snapshot(self) -> DraftMessage:
        return DraftMessage(content=self._content, tool_calls=self.tool_calls)
