"""Streaming model endpoint seam.

A ``ChatStreamer`` performs exactly one model step: given the conversation so
far (plus any tool exchanges already made this turn) it streams the model's
text and the tool calls it wants to make, then reports the step finished. The
agent loop controller owns the multi-step loop, runs the tools, and calls the
streamer again with the results.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol, Union, runtime_checkable

from ..errors import UserAbort
from ..schemas.domain import ChatMessage
from ..tools.definitions import ToolSchema


class CancellationHandle:
    """Cooperative cancellation token for one turn."""

    def __init__(self, conversation_id: Optional[str] = None) -> None:
        self.conversation_id = conversation_id
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        """Raise UserAbort when the handle has fired."""
        if self._event.is_set():
            raise UserAbort(self.conversation_id)


@dataclass(frozen=True)
class TextDelta:
    text: str


@dataclass(frozen=True)
class ToolCallRequested:
    """A tool call the model asked for; ``args`` is a mapping or raw JSON text."""

    id: str
    name: str
    args: Any = field(default_factory=dict)


@dataclass(frozen=True)
class StepFinished:
    finish_reason: Optional[str] = None


StreamEvent = Union[TextDelta, ToolCallRequested, StepFinished]


@dataclass(frozen=True)
class ToolExchange:
    """One tool call made earlier in the turn together with its result."""

    id: str
    name: str
    args: Dict[str, Any]
    result: Any


@dataclass(frozen=True)
class StepRecord:
    """What the model produced in a completed step and the results fed back."""

    text: str = ""
    exchanges: List[ToolExchange] = field(default_factory=list)


@dataclass(frozen=True)
class StreamRequest:
    system_prompt: str
    messages: List[ChatMessage]
    model: str
    tools: List[ToolSchema] = field(default_factory=list)
    max_steps: int = 15
    steps: List[StepRecord] = field(default_factory=list)


@runtime_checkable
class ChatStreamer(Protocol):
    """One model step as an async stream of events.

    Implementations should stop promptly once ``cancellation`` fires and may
    raise any exception for transport failures; the controller classifies it.
    """

    def stream(self, request: StreamRequest, cancellation: CancellationHandle) -> AsyncIterator[StreamEvent]: ...
