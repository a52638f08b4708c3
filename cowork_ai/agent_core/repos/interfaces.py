from __future__ import annotations

"""Conversation store contract.

The agent loop controller depends on this Protocol instead of a concrete
database.

Contract guidelines
-------------------

- All methods are async.
- Messages are returned oldest first.
- A tool call is always written after the message it belongs to.
"""

from typing import List, Protocol, runtime_checkable

from ..schemas.domain import Message, ToolCall


@runtime_checkable
class ConversationStore(Protocol):
    """Persist and query the messages of a conversation."""

    async def create_message(self, message: Message) -> Message:
        """
        Persist a new message.

        Args:
            message: The message to store. Its ``tool_calls`` are ignored;
                tool calls are written with ``create_tool_call``.

        Returns:
            The stored message.
        """
        ...

    async def get_messages(self, conversation_id: str) -> List[Message]:
        """
        Return all messages of a conversation, oldest first, with their tool calls.

        Args:
            conversation_id: The conversation identifier.
        """
        ...

    async def create_tool_call(self, tool_call: ToolCall) -> ToolCall:
        """
        Persist a tool call attached to an existing message.

        Args:
            tool_call: The call; ``message_id`` must reference a stored message.

        Returns:
            The stored tool call.
        """
        ...
