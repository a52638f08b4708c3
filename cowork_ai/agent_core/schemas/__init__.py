"""Schemas and DTOs for the agent core."""

from .domain import (
    ApprovalResolution,
    Attachment,
    AttachmentKind,
    ChatMessage,
    DraftMessage,
    Message,
    MessageRole,
    PendingApproval,
    Skill,
    ToolCall,
    ToolCallStatus,
    ToolTier,
    TurnOutcome,
)

__all__ = [
    "ApprovalResolution",
    "Attachment",
    "AttachmentKind",
    "ChatMessage",
    "DraftMessage",
    "Message",
    "MessageRole",
    "PendingApproval",
    "Skill",
    "ToolCall",
    "ToolCallStatus",
    "ToolTier",
    "TurnOutcome",
]
