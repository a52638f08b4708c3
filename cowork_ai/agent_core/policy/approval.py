from __future__ import annotations

"""Human approval gateway for risk-tiered tools.

``ApprovalGateway`` is a single-owner state machine that the tool registry
awaits before executing a tiered tool. It is created once per process and
injected wherever approvals are requested or answered.

States
------

- **Idle**: no request is waiting.
- **Pending**: exactly one ``PendingApproval`` is shown to the user.
- **Resolved**: the waiting coroutine has received its answer and the gateway
  is Idle again.

Rules
-----

- A tier on the session allow-list is granted immediately without entering
  Pending.
- A new request supersedes (denies) the current one before taking its place.
- Every request carries a timer; on expiry it is denied. Timers are cancelled
  whenever a request resolves by any other route.
- ``approve``/``deny`` only act on the id currently pending, so a stale UI
  action cannot answer a newer request.
- ``allow_all_for_session(tier)`` also grants the current request when its
  tier matches.

The gateway is process-wide rather than per conversation: a request from one
conversation supersedes a pending request from another, so a human is never
asked two questions at once.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Tuple

from ..schemas.domain import ApprovalResolution, PendingApproval, ToolTier
from .models import ApprovalPolicy

logger = logging.getLogger(__name__)

ApprovalListener = Callable[[Optional[PendingApproval]], None]

_GRANTED = frozenset({ApprovalResolution.approved, ApprovalResolution.session})

_FRIENDLY_TOOL_NAMES = {
    "bash": "Run Shell Command",
    "writeFile": "Write File",
    "browserNavigate": "Open Webpage",
    "browserType": "Type in Browser",
    "browserClick": "Click in Browser",
    "browserPress": "Press Key in Browser",
    "installSkill": "Install Skill",
    "requestLogin": "Request Login",
}


def describe_tool_request(tool_name: str, args: Mapping[str, Any]) -> Tuple[str, str]:
    """Return a human-friendly ``(title, summary)`` for an approval prompt."""
    title = _FRIENDLY_TOOL_NAMES.get(tool_name, tool_name)
    if tool_name == "bash":
        summary = str(args.get("command", ""))
    elif tool_name == "writeFile":
        summary = str(args.get("path", ""))
    elif tool_name == "browserNavigate":
        summary = str(args.get("url", ""))
    elif tool_name == "browserType":
        summary = f'{args.get("selector", "")}: "{args.get("text", "")}"'
    elif tool_name == "browserClick":
        summary = str(args.get("selector", ""))
    elif tool_name == "browserPress":
        summary = str(args.get("key", ""))
    elif tool_name == "installSkill":
        summary = str(args.get("name") or args.get("skillId") or "")
    elif tool_name == "requestLogin":
        summary = f'{args.get("siteName", "")} ({args.get("url", "")})'
    else:
        summary = ", ".join(f"{k}={v!r}" for k, v in args.items())
    return title, summary


class ApprovalGateway:
    """Timeout-driven gate between the model and risky tools."""

    def __init__(self, policy: Optional[ApprovalPolicy] = None, *, timeout_seconds: Optional[float] = None) -> None:
        self._policy = policy or ApprovalPolicy()
        self._timeout = timeout_seconds if timeout_seconds is not None else self._policy.timeout_seconds
        self._pending: Optional[PendingApproval] = None
        self._futures: Dict[str, asyncio.Future[ApprovalResolution]] = {}
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._session_allowances: Set[ToolTier] = set()
        self._listeners: List[ApprovalListener] = []

    @property
    def pending(self) -> Optional[PendingApproval]:
        """The request currently awaiting a decision, if any."""
        return self._pending

    @property
    def session_allowances(self) -> frozenset[ToolTier]:
        return frozenset(self._session_allowances)

    @property
    def timeout_seconds(self) -> float:
        return self._timeout

    def subscribe(self, listener: ApprovalListener) -> Callable[[], None]:
        """Register ``listener`` for pending-approval changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def request_approval(
        self,
        tool_name: str,
        args: Mapping[str, Any],
        tier: ToolTier,
        *,
        conversation_id: Optional[str] = None,
    ) -> bool:
        """
        Ask the user whether ``tool_name`` may run with ``args``.

        Returns:
            bool: True when approved (explicitly or by session allowance).
        """
        resolution = await self.decide(tool_name, args, tier, conversation_id=conversation_id)
        return resolution in _GRANTED

    async def decide(
        self,
        tool_name: str,
        args: Mapping[str, Any],
        tier: ToolTier,
        *,
        conversation_id: Optional[str] = None,
    ) -> ApprovalResolution:
        """Like ``request_approval`` but reports how the request was resolved."""
        tier = ToolTier(tier)
        if tier in self._session_allowances:
            logger.debug(f"Tier {tier.value} allowed for session; granting {tool_name} without prompt")
            return ApprovalResolution.session

        if self._pending is not None:
            self._resolve(self._pending.id, ApprovalResolution.superseded)

        loop = asyncio.get_running_loop()
        title, summary = describe_tool_request(tool_name, args)
        now = datetime.now(timezone.utc)
        pending = PendingApproval(
            tool_name=tool_name,
            args=dict(args),
            tier=tier,
            conversation_id=conversation_id,
            title=title,
            summary=summary,
            requested_at=now,
            expires_at=now + timedelta(seconds=self._timeout),
        )
        future: asyncio.Future[ApprovalResolution] = loop.create_future()
        self._futures[pending.id] = future
        self._timers[pending.id] = loop.call_later(self._timeout, self._expire, pending.id)
        self._set_pending(pending)
        logger.info(f"Approval requested: id={pending.id} tool={tool_name} tier={tier.value}")

        try:
            return await future
        except asyncio.CancelledError:
            self._resolve(pending.id, ApprovalResolution.cancelled)
            raise

    def approve(self, approval_id: str) -> bool:
        """Grant the pending request if ``approval_id`` is the one pending."""
        return self._answer(approval_id, ApprovalResolution.approved)

    def deny(self, approval_id: str) -> bool:
        """Deny the pending request if ``approval_id`` is the one pending."""
        return self._answer(approval_id, ApprovalResolution.denied)

    def allow_all_for_session(self, tier: ToolTier) -> None:
        """Grant every request of ``tier`` until ``clear_session()``; includes the current one."""
        tier = ToolTier(tier)
        self._session_allowances.add(tier)
        logger.info(f"Tier {tier.value} allowed for the rest of the session")
        if self._pending is not None and self._pending.tier == tier:
            self._resolve(self._pending.id, ApprovalResolution.session)

    def clear_session(self) -> None:
        self._session_allowances.clear()
        logger.info("Session tool allowances cleared")

    def _answer(self, approval_id: str, resolution: ApprovalResolution) -> bool:
        if self._pending is None or self._pending.id != approval_id:
            logger.debug(f"Ignoring {resolution.value} for stale approval id {approval_id}")
            return False
        return self._resolve(approval_id, resolution)

    def _expire(self, approval_id: str) -> None:
        self._timers.pop(approval_id, None)
        self._resolve(approval_id, ApprovalResolution.timeout)

    def _resolve(self, approval_id: str, resolution: ApprovalResolution) -> bool:
        future = self._futures.pop(approval_id, None)
        if future is None:
            return False
        timer = self._timers.pop(approval_id, None)
        if timer is not None:
            timer.cancel()
        if self._pending is not None and self._pending.id == approval_id:
            self._set_pending(None)
        if not future.done():
            future.set_result(resolution)
        logger.info(f"Approval resolved: id={approval_id} resolution={resolution.value}")
        return True

    def _set_pending(self, pending: Optional[PendingApproval]) -> None:
        self._pending = pending
        for listener in list(self._listeners):
            try:
                listener(pending)
            except Exception:
                logger.exception("Approval listener failed")
