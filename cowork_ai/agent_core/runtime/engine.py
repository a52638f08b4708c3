from __future__ import annotations

"""Agent loop controller.

``AgentLoopController`` executes one conversational turn: it sends history and
tool schemas to the model, streams the reply into a draft, runs the tools the
model asks for, feeds the results back, and persists the final assistant
message.

Execution model
---------------

- A turn is a sequence of *steps*. Each step is one call to the
  ``ChatStreamer``; if the model requested tools, they run sequentially
  through ``ToolRegistry.execute`` and the next step starts with their
  results. A step without tool calls ends the turn.
- At most ``max_steps`` steps run. Hitting the bound ends the turn normally
  with whatever the draft holds.

Ordering
--------

- The user message is stored before the first model call.
- The assistant message and its tool calls are stored once, when the turn
  reaches a terminal state, and only if the draft is not empty.

Recovery and cancellation
-------------------------

- History at or above the proactive threshold is compacted before the first
  step. If the provider still rejects the request as too large and no
  compaction happened yet, the turn is retried once on an emergency-compacted
  history with a fresh draft.
- ``stop()`` fires the turn's ``CancellationHandle``. The handle is checked at
  every stream event and before each tool dispatch. A model stream waiting
  for its next event and an in-flight tool (including one waiting for
  approval) are both cancelled. Tool calls still pending
  at that point are stored as errors.
"""

import asyncio
import dataclasses
import logging
from typing import Awaitable, List, Optional, Sequence, Tuple, TypeVar

from ..errors import UserAbort, format_provider_error, is_context_overflow
from ..providers.base import (
    CancellationHandle,
    StepRecord,
    StreamRequest,
    TextDelta,
    ToolCallRequested,
    ToolExchange,
)
from ..schemas.domain import Attachment, ChatMessage, Message, MessageRole, TurnOutcome
from .attachments import inline_file_attachments, save_image_attachments
from .events import ToolResultReceived, TurnDraft
from .models import LoopDeps, TurnResult
from .run_state import RunStateRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 15

T = TypeVar("T")


def build_history(messages: Sequence[Message], image_references: Sequence[str] = ()) -> List[ChatMessage]:
    """Convert stored messages to model history, adding image references to the latest user entry."""
    history = [ChatMessage(role=m.role, content=m.content) for m in messages]
    if image_references and history and history[-1].role == MessageRole.user:
        last = history[-1]
        content = "\n".join(image_references) + (f"\n\n{last.content}" if last.content else "")
        history[-1] = ChatMessage(role=MessageRole.user, content=content)
    return history


class AgentLoopController:
    """Run conversational turns with tools, approvals and context management."""

    def __init__(
        self,
        *,
        deps: LoopDeps,
        run_states: Optional[RunStateRegistry] = None,
        max_steps: int = DEFAULT_MAX_STEPS,
    ) -> None:
        """
        Initialize the AgentLoopController.

        Args:
            deps: Store, model endpoint, tools and context services.
            run_states: Registry that tracks and publishes in-flight turns.
                Defaults to one bound to the tool registry's approval gateway.
            max_steps: Upper bound on model/tool round trips per turn.
        """
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        self._deps = deps
        self._run_states = run_states or RunStateRegistry(deps.tools.gateway)
        self._max_steps = max_steps

    @property
    def run_states(self) -> RunStateRegistry:
        return self._run_states

    @property
    def max_steps(self) -> int:
        return self._max_steps

    def stop(self, conversation_id: Optional[str] = None) -> int:
        """Abort the in-flight turn of ``conversation_id``, or every turn when None."""
        return self._run_states.stop(conversation_id)

    async def run_turn(
        self,
        conversation_id: str,
        user_content: str,
        model: str,
        attachments: Optional[Sequence[Attachment]] = None,
    ) -> TurnResult:
        """
        Execute one user turn to a terminal state.

        Args:
            conversation_id: The conversation to append to.
            user_content: The user's message text.
            model: Model id for the endpoint (e.g. ``anthropic/claude-sonnet-4``).
            attachments: Optional files and images sent with the message.

        Returns:
            TurnResult: ``completed``, ``aborted`` or ``failed``, with the
            stored assistant message when the draft was not empty.
        """
        if not conversation_id:
            logger.warning("Turn requested without a conversation id")
            return TurnResult(conversation_id="", outcome=TurnOutcome.failed, error="No active conversation")

        handle = self._run_states.start(conversation_id)
        draft = TurnDraft()
        outcome = TurnOutcome.completed
        error: Optional[str] = None
        steps = 0
        compacted = False
        message: Optional[Message] = None
        task_cancellation: Optional[asyncio.CancelledError] = None

        try:
            steps, compacted = await self._run(conversation_id, user_content, model, attachments, draft, handle)
        except UserAbort:
            outcome = TurnOutcome.aborted
        except asyncio.CancelledError as e:
            outcome = TurnOutcome.aborted
            task_cancellation = e
        except Exception as e:
            outcome = TurnOutcome.failed
            error = format_provider_error(e)
            logger.warning(f"Turn failed for conversation {conversation_id}: {e}")

        if outcome == TurnOutcome.aborted:
            cancelled = draft.cancel_pending()
            logger.info(f"Turn aborted for conversation {conversation_id}; {cancelled} pending tool call(s) cancelled")

        try:
            message = await self._persist(conversation_id, draft)
        except Exception as e:
            logger.exception(f"Failed to store assistant message for conversation {conversation_id}")
            if error is None:
                outcome = TurnOutcome.failed
                error = f"Failed to save the response: {e}"
        finally:
            self._run_states.finish(conversation_id, handle, error=error)

        if task_cancellation is not None:
            raise task_cancellation

        logger.info(
            f"Turn {outcome.value} for conversation {conversation_id}: steps={steps} "
            f"tool_calls={len(draft.tool_calls)} compacted={compacted}"
        )
        return TurnResult(
            conversation_id=conversation_id,
            outcome=outcome,
            message=message,
            error=error,
            steps=steps,
            compacted=compacted,
        )

    async def _run(
        self,
        conversation_id: str,
        user_content: str,
        model: str,
        attachments: Optional[Sequence[Attachment]],
        draft: TurnDraft,
        handle: CancellationHandle,
    ) -> Tuple[int, bool]:
        store = self._deps.store
        content = inline_file_attachments(user_content, attachments)
        await store.create_message(Message(conversation_id=conversation_id, role=MessageRole.user, content=content))

        stored = await store.get_messages(conversation_id)
        references = await save_image_attachments(conversation_id, attachments, self._deps.tool_context.images)
        history = build_history(stored, references)
        handle.raise_if_cancelled()

        prompts = self._deps.prompts
        context = self._deps.context
        system_prompt = prompts.build()
        effective = history
        compacted = False

        compaction = await context.compact_if_needed(system_prompt, history, model)
        if compaction is not None and compaction.compacted:
            compacted = True
            effective = compaction.messages
            system_prompt = prompts.build(compaction.summary)
            logger.info(f"Compacted conversation {conversation_id}: {len(history)} -> {len(effective)} messages")

        try:
            steps = await self._run_steps(conversation_id, system_prompt, effective, model, draft, handle)
        except Exception as e:
            if isinstance(e, UserAbort) or compacted or not is_context_overflow(e):
                raise
            logger.warning(f"Context overflow for conversation {conversation_id}, attempting emergency compaction")
            compacted = True
            compaction = await context.emergency_compact(history)
            if not compaction.compacted:
                raise
            draft.reset()
            self._publish(conversation_id, handle, draft)
            steps = await self._run_steps(
                conversation_id, prompts.build(compaction.summary), compaction.messages, model, draft, handle
            )
        return steps, compacted

    async def _run_steps(
        self,
        conversation_id: str,
        system_prompt: str,
        history: List[ChatMessage],
        model: str,
        draft: TurnDraft,
        handle: CancellationHandle,
    ) -> int:
        ctx = dataclasses.replace(self._deps.tool_context, conversation_id=conversation_id)
        tools = self._deps.tools.schemas()
        records: List[StepRecord] = []

        for step in range(1, self._max_steps + 1):
            handle.raise_if_cancelled()
            request = StreamRequest(
                system_prompt=system_prompt,
                messages=list(history),
                model=model,
                tools=tools,
                max_steps=self._max_steps,
                steps=list(records),
            )
            text, requested = await self._stream_step(conversation_id, request, draft, handle)
            logger.debug(f"Step {step} finished: text_length={len(text)} tool_calls={len(requested)}")
            if not requested:
                return step

            exchanges: List[ToolExchange] = []
            for call in requested:
                handle.raise_if_cancelled()
                result = await self._until_cancelled(handle, self._deps.tools.execute(call.name, call.args, ctx))
                draft.add_tool_result(ToolResultReceived(id=call.id, name=call.name, result=result))
                self._publish(conversation_id, handle, draft)
                exchanges.append(ToolExchange(id=call.id, name=call.name, args=call.args, result=result))
            records.append(StepRecord(text=text, exchanges=exchanges))

        logger.info(f"Step limit ({self._max_steps}) reached for conversation {conversation_id}")
        return self._max_steps

    async def _stream_step(
        self,
        conversation_id: str,
        request: StreamRequest,
        draft: TurnDraft,
        handle: CancellationHandle,
    ) -> Tuple[str, List[ToolCallRequested]]:
        # A stalled provider must not delay stop(): the handle aborts the step even between events.
        return await self._until_cancelled(handle, self._consume_stream(conversation_id, request, draft, handle))

    async def _consume_stream(
        self,
        conversation_id: str,
        request: StreamRequest,
        draft: TurnDraft,
        handle: CancellationHandle,
    ) -> Tuple[str, List[ToolCallRequested]]:
        text_parts: List[str] = []
        requested: List[ToolCallRequested] = []
        stream = self._deps.streamer.stream(request, handle)
        try:
            async for event in stream:
                handle.raise_if_cancelled()
                if isinstance(event, TextDelta):
                    text_parts.append(event.text)
                    draft.add_text(event.text)
                elif isinstance(event, ToolCallRequested):
                    requested.append(event)
                    draft.add_tool_call(event.id, event.name, event.args)
                else:
                    continue
                self._publish(conversation_id, handle, draft)
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
        return "".join(text_parts), requested

    async def _until_cancelled(self, handle: CancellationHandle, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the handle fires first, in which case cancel it and abort."""
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(handle.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            waiter.cancel()
            await asyncio.gather(task, waiter, return_exceptions=True)
            raise
        if task in done:
            waiter.cancel()
            return task.result()
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise UserAbort(handle.conversation_id)

    async def _persist(self, conversation_id: str, draft: TurnDraft) -> Optional[Message]:
        if draft.is_empty:
            return None
        store = self._deps.store
        message = await store.create_message(
            Message(conversation_id=conversation_id, role=MessageRole.assistant, content=draft.content)
        )
        calls = []
        for call in draft.tool_calls:
            calls.append(await store.create_tool_call(call.model_copy(update={"message_id": message.id})))
        return message.model_copy(update={"tool_calls": calls})

    def _publish(self, conversation_id: str, handle: CancellationHandle, draft: TurnDraft) -> None:
        self._run_states.update_draft(conversation_id, handle, draft.snapshot())
