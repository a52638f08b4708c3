"""In-process conversation store."""

from __future__ import annotations

from collections import defaultdict
from typing import DefaultDict, Dict, List

from ..schemas.domain import Message, ToolCall


class InMemoryConversationStore:
    """``ConversationStore`` that keeps everything in dictionaries.

    Useful for tests and for hosts that persist conversations elsewhere.
    """

    def __init__(self) -> None:
        self._messages: DefaultDict[str, List[Message]] = defaultdict(list)
        self._by_id: Dict[str, Message] = {}
        self._tool_calls: DefaultDict[str, List[ToolCall]] = defaultdict(list)

    async def create_message(self, message: Message) -> Message:
        stored = message.model_copy(update={"tool_calls": []})
        self._messages[stored.conversation_id].append(stored)
        self._by_id[stored.id] = stored
        return stored

    async def get_messages(self, conversation_id: str) -> List[Message]:
        return [
            message.model_copy(update={"tool_calls": list(self._tool_calls.get(message.id, []))})
            for message in self._messages.get(conversation_id, [])
        ]

    async def create_tool_call(self, tool_call: ToolCall) -> ToolCall:
        if tool_call.message_id is None or tool_call.message_id not in self._by_id:
            raise ValueError(f"message not found: {tool_call.message_id}")
        self._tool_calls[tool_call.message_id].append(tool_call)
        return tool_call
