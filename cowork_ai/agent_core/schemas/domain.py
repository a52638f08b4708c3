from __future__ import annotations

import random
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from uuid import uuid4

from pydantic import Field

from .base import BaseSchema


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_approval_id() -> str:
    """Return an approval id of the form ``approval-<epoch_ms>-<random>``."""
    suffix = "".join(random.choices("abcdefghijklmnopqrstuvwxyz0123456789", k=7))
    return f"approval-{int(time.time() * 1000)}-{suffix}"


class MessageRole(str, Enum):
    user = "user"
    assistant = "assistant"
    system = "system"


class ToolCallStatus(str, Enum):
    pending = "pending"
    success = "success"
    error = "error"


class ToolTier(str, Enum):
    dangerous = "dangerous"
    moderate = "moderate"


class AttachmentKind(str, Enum):
    image = "image"
    file = "file"


class ApprovalResolution(str, Enum):
    approved = "approved"
    denied = "denied"
    timeout = "timeout"
    superseded = "superseded"
    session = "session"
    cancelled = "cancelled"


class TurnOutcome(str, Enum):
    completed = "completed"
    aborted = "aborted"
    failed = "failed"


class ToolCall(BaseSchema):
    """
    A single tool invocation requested by the model within one step.

    ``input`` and ``output`` hold JSON text so they can be persisted verbatim.
    Status only moves forward: ``pending`` to ``success`` or ``error``.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    message_id: Optional[str] = None
    tool_name: str
    input: str = "{}"
    output: Optional[str] = None
    status: ToolCallStatus = ToolCallStatus.pending

    def complete(self, output: str, *, error: bool) -> "ToolCall":
        """Return a copy of this call resolved with ``output``.

        Raises:
            ValueError: If the call has already left the ``pending`` state.
        """
        if self.status != ToolCallStatus.pending:
            raise ValueError(f"tool call {self.id} already resolved as {self.status.value}")
        status = ToolCallStatus.error if error else ToolCallStatus.success
        return self.model_copy(update={"output": output, "status": status})


class Message(BaseSchema):
    id: str = Field(default_factory=lambda: str(uuid4()))
    conversation_id: str
    role: MessageRole
    content: str = ""
    thinking: Optional[str] = None
    tool_calls: List[ToolCall] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utc_now)


class DraftMessage(BaseSchema):
    """The assistant message being accumulated while a turn streams."""

    role: MessageRole = MessageRole.assistant
    content: str = ""
    thinking: Optional[str] = None
    tool_calls: List[ToolCall] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.content and not self.tool_calls


class ChatMessage(BaseSchema):
    """A history entry as sent to the model: plain text or multi-part content."""

    role: MessageRole
    content: Union[str, List[Dict[str, Any]]]


class PendingApproval(BaseSchema):
    id: str = Field(default_factory=new_approval_id)
    tool_name: str
    args: Dict[str, Any] = Field(default_factory=dict)
    tier: ToolTier
    conversation_id: Optional[str] = None
    title: str = ""
    summary: str = ""
    requested_at: datetime = Field(default_factory=_utc_now)
    expires_at: Optional[datetime] = None


class Attachment(BaseSchema):
    name: str
    kind: AttachmentKind
    mime_type: str = "application/octet-stream"
    data: str = Field(..., description="Base64 data URL, e.g. 'data:text/plain;base64,SGVsbG8='")


class Skill(BaseSchema):
    name: str
    content: str
    description: Optional[str] = None
