"""Per-conversation run state and the observer boundary.

``RunStateRegistry`` holds one ``ConversationRunState`` per conversation id and
publishes a ``RunStateSnapshot`` to subscribers on every change. Each active
run owns a ``CancellationHandle``; starting a new run for a conversation
cancels the previous handle, and only the current handle may finish the run.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from ..policy.approval import ApprovalGateway
from ..providers.base import CancellationHandle
from ..schemas.domain import DraftMessage, PendingApproval
from .models import ConversationRunState, RunStateSnapshot

logger = logging.getLogger(__name__)

RunStateListener = Callable[[RunStateSnapshot], None]


class RunStateRegistry:
    """Explicit registry of in-flight turns keyed by conversation id."""

    def __init__(self, gateway: Optional[ApprovalGateway] = None) -> None:
        self._states: Dict[str, ConversationRunState] = {}
        self._listeners: List[RunStateListener] = []
        self._gateway = gateway
        self._approval_conversation: Optional[str] = None
        if gateway is not None:
            gateway.subscribe(self._on_approval_changed)

    def start(self, conversation_id: str) -> CancellationHandle:
        """Begin a run, superseding any run already active for the conversation."""
        state = self._states.get(conversation_id)
        if state is not None and state.handle is not None:
            logger.info(f"Superseding active run for conversation {conversation_id}")
            state.handle.cancel()
        handle = CancellationHandle(conversation_id)
        self._states[conversation_id] = ConversationRunState(
            conversation_id=conversation_id,
            is_loading=True,
            draft=DraftMessage(),
            error=None,
            handle=handle,
        )
        self._publish(conversation_id)
        return handle

    def update_draft(self, conversation_id: str, handle: CancellationHandle, draft: DraftMessage) -> None:
        state = self._states.get(conversation_id)
        if state is None or state.handle is not handle:
            return
        state.draft = draft
        self._publish(conversation_id)

    def finish(self, conversation_id: str, handle: CancellationHandle, *, error: Optional[str] = None) -> bool:
        """
        End a run if ``handle`` is still the current one.

        Returns:
            bool: False when a newer run has taken over the conversation.
        """
        state = self._states.get(conversation_id)
        if state is None or state.handle is not handle:
            logger.debug(f"Ignoring finish from superseded run for conversation {conversation_id}")
            return False
        state.is_loading = False
        state.draft = None
        state.error = error
        state.handle = None
        self._publish(conversation_id)
        return True

    def stop(self, conversation_id: Optional[str] = None) -> int:
        """Cancel the run of one conversation, or of every conversation when no id is given."""
        if conversation_id is not None:
            targets = [self._states.get(conversation_id)]
        else:
            targets = list(self._states.values())
        stopped = 0
        for state in targets:
            if state is not None and state.handle is not None and not state.handle.cancelled:
                state.handle.cancel()
                stopped += 1
        logger.info(f"Stop requested for {conversation_id or 'all conversations'}: {stopped} run(s) cancelled")
        return stopped

    def is_active(self, conversation_id: str) -> bool:
        state = self._states.get(conversation_id)
        return state is not None and state.handle is not None

    def any_loading(self) -> bool:
        return any(state.is_loading for state in self._states.values())

    def snapshot(self, conversation_id: str) -> RunStateSnapshot:
        state = self._states.get(conversation_id) or ConversationRunState(conversation_id=conversation_id)
        return RunStateSnapshot(
            conversation_id=conversation_id,
            is_loading=state.is_loading,
            draft=state.draft,
            error=state.error,
            pending_approval=self._pending_for(conversation_id),
        )

    def subscribe(self, listener: RunStateListener) -> Callable[[], None]:
        """Register ``listener`` for snapshots; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _pending_for(self, conversation_id: str) -> Optional[PendingApproval]:
        if self._gateway is None:
            return None
        pending = self._gateway.pending
        if pending is None or pending.conversation_id not in (None, conversation_id):
            return None
        return pending

    def _on_approval_changed(self, pending: Optional[PendingApproval]) -> None:
        previous = self._approval_conversation
        self._approval_conversation = pending.conversation_id if pending is not None else None
        for conversation_id in {previous, self._approval_conversation}:
            if conversation_id is not None:
                self._publish(conversation_id)

    def _publish(self, conversation_id: str) -> None:
        snapshot = self.snapshot(conversation_id)
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Run state listener failed")
