from __future__ import annotations

import asyncio
from typing import List, Optional

import pytest

from cowork_ai.agent_core.policy.approval import ApprovalGateway, describe_tool_request
from cowork_ai.agent_core.policy.models import ApprovalPolicy
from cowork_ai.agent_core.schemas.domain import ApprovalResolution, PendingApproval, ToolTier


async def _wait_for_pending(gateway: ApprovalGateway) -> PendingApproval:
    for _ in range(100):
        if gateway.pending is not None:
            return gateway.pending
        await asyncio.sleep(0)
    raise AssertionError("no approval became pending")


@pytest.fixture
def gateway() -> ApprovalGateway:
    return ApprovalGateway(ApprovalPolicy(timeout_seconds=5))


@pytest.mark.asyncio
async def test_approve_grants_pending_request(gateway: ApprovalGateway) -> None:
    task = asyncio.create_task(gateway.request_approval("bash", {"command": "ls"}, ToolTier.dangerous))
    pending = await _wait_for_pending(gateway)

    assert pending.title == "Run Shell Command"
    assert pending.summary == "ls"
    assert pending.expires_at is not None

    assert gateway.approve(pending.id) is True
    assert await task is True
    assert gateway.pending is None


@pytest.mark.asyncio
async def test_deny_resolves_false(gateway: ApprovalGateway) -> None:
    task = asyncio.create_task(gateway.decide("writeFile", {"path": "/tmp/x"}, ToolTier.moderate))
    pending = await _wait_for_pending(gateway)

    gateway.deny(pending.id)

    assert await task == ApprovalResolution.denied


@pytest.mark.asyncio
async def test_stale_id_is_ignored(gateway: ApprovalGateway) -> None:
    task = asyncio.create_task(gateway.decide("bash", {"command": "pwd"}, ToolTier.dangerous))
    pending = await _wait_for_pending(gateway)

    assert gateway.approve("approval-0-stale00") is False
    assert gateway.deny("approval-0-stale00") is False
    assert gateway.pending is pending

    gateway.approve(pending.id)
    assert await task == ApprovalResolution.approved
    # Answering a resolved request again does nothing.
    assert gateway.approve(pending.id) is False


@pytest.mark.asyncio
async def test_timeout_denies() -> None:
    gateway = ApprovalGateway(timeout_seconds=0.05)

    resolution = await gateway.decide("bash", {"command": "ls"}, ToolTier.dangerous)

    assert resolution == ApprovalResolution.timeout
    assert gateway.pending is None


@pytest.mark.asyncio
async def test_new_request_supersedes_current(gateway: ApprovalGateway) -> None:
    first = asyncio.create_task(gateway.decide("bash", {"command": "ls"}, ToolTier.dangerous))
    first_pending = await _wait_for_pending(gateway)

    second = asyncio.create_task(gateway.decide("writeFile", {"path": "/tmp/a"}, ToolTier.moderate))
    assert await first == ApprovalResolution.superseded

    second_pending = await _wait_for_pending(gateway)
    assert second_pending.id != first_pending.id
    gateway.approve(second_pending.id)
    assert await second == ApprovalResolution.approved


@pytest.mark.asyncio
async def test_allow_all_for_session(gateway: ApprovalGateway) -> None:
    task = asyncio.create_task(gateway.decide("bash", {"command": "ls"}, ToolTier.dangerous))
    await _wait_for_pending(gateway)

    gateway.allow_all_for_session(ToolTier.dangerous)

    assert await task == ApprovalResolution.session
    assert ToolTier.dangerous in gateway.session_allowances
    # Later requests of the tier skip the prompt entirely.
    assert await gateway.request_approval("bash", {"command": "pwd"}, ToolTier.dangerous) is True
    assert gateway.pending is None

    gateway.clear_session()
    assert gateway.session_allowances == frozenset()


@pytest.mark.asyncio
async def test_session_allowance_for_other_tier_keeps_request_pending(gateway: ApprovalGateway) -> None:
    task = asyncio.create_task(gateway.decide("bash", {"command": "ls"}, ToolTier.dangerous))
    pending = await _wait_for_pending(gateway)

    gateway.allow_all_for_session(ToolTier.moderate)

    assert gateway.pending is pending
    gateway.deny(pending.id)
    assert await task == ApprovalResolution.denied


@pytest.mark.asyncio
async def test_cancelling_waiter_clears_pending(gateway: ApprovalGateway) -> None:
    task = asyncio.create_task(gateway.decide("bash", {"command": "ls"}, ToolTier.dangerous))
    await _wait_for_pending(gateway)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert gateway.pending is None


@pytest.mark.asyncio
async def test_listeners_see_pending_changes(gateway: ApprovalGateway) -> None:
    seen: List[Optional[str]] = []
    unsubscribe = gateway.subscribe(lambda p: seen.append(p.tool_name if p else None))

    task = asyncio.create_task(gateway.decide("bash", {"command": "ls"}, ToolTier.dangerous, conversation_id="c1"))
    pending = await _wait_for_pending(gateway)
    assert pending.conversation_id == "c1"
    gateway.approve(pending.id)
    await task
    unsubscribe()

    assert seen == ["bash", None]


@pytest.mark.parametrize(
    "tool,args,title,summary",
    [
        ("writeFile", {"path": "/tmp/a.txt", "content": "x"}, "Write File", "/tmp/a.txt"),
        ("browserNavigate", {"url": "https://example.com"}, "Open Webpage", "https://example.com"),
        ("browserType", {"selector": "#q", "text": "hi"}, "Type in Browser", '#q: "hi"'),
        ("requestLogin", {"url": "https://x.com", "siteName": "X"}, "Request Login", "X (https://x.com)"),
        ("custom", {"a": 1}, "custom", "a=1"),
    ],
)
def test_describe_tool_request(tool, args, title, summary) -> None:
    assert describe_tool_request(tool, args) == (title, summary)
