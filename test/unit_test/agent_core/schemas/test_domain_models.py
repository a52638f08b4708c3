from __future__ import annotations

import re

import pytest
from pydantic import ValidationError

from cowork_ai.agent_core.schemas.domain import (
    Attachment,
    AttachmentKind,
    ChatMessage,
    DraftMessage,
    Message,
    MessageRole,
    PendingApproval,
    ToolCall,
    ToolCallStatus,
    ToolTier,
    new_approval_id,
)


def test_tool_call_completes_once() -> None:
    call = ToolCall(id="t1", tool_name="readFile", input='{"path": "/tmp/a"}')
    assert call.status == ToolCallStatus.pending
    assert call.output is None

    done = call.complete('{"content": "hi"}', error=False)
    assert done.status == ToolCallStatus.success
    assert done.output == '{"content": "hi"}'
    # The original is untouched.
    assert call.status == ToolCallStatus.pending

    failed = call.complete('{"error": true}', error=True)
    assert failed.status == ToolCallStatus.error

    with pytest.raises(ValueError):
        done.complete("again", error=False)


def test_message_defaults() -> None:
    m = Message(conversation_id="c1", role=MessageRole.user, content="hello")

    assert m.id
    assert m.tool_calls == []
    assert m.created_at.tzinfo is not None


def test_schemas_forbid_unknown_fields() -> None:
    with pytest.raises(ValidationError):
        Message(conversation_id="c1", role="user", content="x", bogus=True)


def test_draft_message_is_empty() -> None:
    assert DraftMessage().is_empty
    assert not DraftMessage(content="x").is_empty
    assert not DraftMessage(tool_calls=[ToolCall(tool_name="glob")]).is_empty


def test_chat_message_accepts_multipart_content() -> None:
    m = ChatMessage(role=MessageRole.user, content=[{"type": "text", "text": "look"}])
    assert isinstance(m.content, list)


def test_approval_id_format() -> None:
    assert re.fullmatch(r"approval-\d+-[a-z0-9]{7}", new_approval_id())
    pending = PendingApproval(tool_name="bash", tier=ToolTier.dangerous)
    assert pending.id.startswith("approval-")
    assert pending.args == {}


def test_attachment_requires_data() -> None:
    with pytest.raises(ValidationError):
        Attachment(name="a.txt", kind=AttachmentKind.file)
