"""Model endpoint seams and their Pydantic AI implementations."""

from .base import (
    CancellationHandle,
    ChatStreamer,
    StepFinished,
    StepRecord,
    StreamEvent,
    StreamRequest,
    TextDelta,
    ToolCallRequested,
    ToolExchange,
)

__all__ = [
    "CancellationHandle",
    "ChatStreamer",
    "StepFinished",
    "StepRecord",
    "StreamEvent",
    "StreamRequest",
    "TextDelta",
    "ToolCallRequested",
    "ToolExchange",
]
