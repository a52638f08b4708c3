from __future__ import annotations

import pytest

from cowork_ai.agent_core.repos import ConversationStore, InMemoryConversationStore
from cowork_ai.agent_core.schemas.domain import Message, MessageRole, ToolCall, ToolCallStatus


@pytest.fixture
def store() -> InMemoryConversationStore:
    return InMemoryConversationStore()


def test_satisfies_store_protocol(store: InMemoryConversationStore) -> None:
    assert isinstance(store, ConversationStore)


@pytest.mark.asyncio
async def test_messages_are_kept_in_order_per_conversation(store: InMemoryConversationStore) -> None:
    await store.create_message(Message(conversation_id="c1", role=MessageRole.user, content="hi"))
    await store.create_message(Message(conversation_id="c2", role=MessageRole.user, content="other"))
    await store.create_message(Message(conversation_id="c1", role=MessageRole.assistant, content="hello"))

    messages = await store.get_messages("c1")

    assert [m.content for m in messages] == ["hi", "hello"]
    assert await store.get_messages("missing") == []


@pytest.mark.asyncio
async def test_tool_calls_attach_to_their_message(store: InMemoryConversationStore) -> None:
    assistant = await store.create_message(
        Message(conversation_id="c1", role=MessageRole.assistant, content="", tool_calls=[ToolCall(tool_name="x")])
    )
    # Tool calls are only stored through create_tool_call.
    assert assistant.tool_calls == []

    call = ToolCall(
        message_id=assistant.id, tool_name="readFile", input='{"path": "/a"}', output="{}", status=ToolCallStatus.success
    )
    await store.create_tool_call(call)

    (loaded,) = await store.get_messages("c1")
    assert loaded.tool_calls == [call]


@pytest.mark.asyncio
@pytest.mark.parametrize("message_id", [None, "nope"])
async def test_tool_call_requires_existing_message(store: InMemoryConversationStore, message_id) -> None:
    with pytest.raises(ValueError):
        await store.create_tool_call(ToolCall(message_id=message_id, tool_name="glob"))
