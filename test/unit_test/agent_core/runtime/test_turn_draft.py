from __future__ import annotations

import json

from cowork_ai.agent_core.runtime.events import (
    CANCELLED_OUTPUT,
    ToolResultReceived,
    TurnDraft,
    is_error_result,
    serialize,
)
from cowork_ai.agent_core.schemas.domain import ToolCallStatus


def test_text_accumulates() -> None:
    draft = TurnDraft()

    draft.add_text("Hel")
    draft.add_text("lo")

    assert draft.content == "Hello"
    assert not draft.is_empty


def test_text_after_tool_result_starts_new_paragraph() -> None:
    draft = TurnDraft()
    draft.add_text("Checking your desktop.")
    draft.add_tool_call("t1", "listDirectory", {"path": "/d"})
    draft.add_tool_result(ToolResultReceived(id="t1", name="listDirectory", result={"count": 2}))

    draft.add_text("  ")
    draft.add_text("You have two files.")

    assert draft.content == "Checking your desktop.  \n\nYou have two files."


def test_no_break_when_content_was_empty() -> None:
    draft = TurnDraft()
    draft.add_tool_call("t1", "glob", {"pattern": "*.pdf"})
    draft.add_tool_result(ToolResultReceived(id="t1", name="glob", result={"files": []}))

    draft.add_text("Nothing found.")

    assert draft.content == "Nothing found."


def test_tool_results_resolve_calls() -> None:
    draft = TurnDraft()
    call = draft.add_tool_call("t1", "readFile", '{"path": "/a"}')
    assert call.input == '{"path": "/a"}'
    draft.add_tool_call("t2", "bash", {"command": "ls"})

    draft.add_tool_result(ToolResultReceived(id="t1", name="readFile", result={"content": "x"}))
    draft.add_tool_result(ToolResultReceived(id="t2", name="bash", result={"error": True, "message": "blocked"}))

    first, second = draft.tool_calls
    assert first.status == ToolCallStatus.success
    assert json.loads(first.output) == {"content": "x"}
    assert second.status == ToolCallStatus.error


def test_unknown_or_resolved_results_are_ignored() -> None:
    draft = TurnDraft()
    draft.add_tool_call("t1", "glob", {})
    draft.add_tool_result(ToolResultReceived(id="t1", name="glob", result="first"))

    draft.add_tool_result(ToolResultReceived(id="t1", name="glob", result="second"))
    draft.add_tool_result(ToolResultReceived(id="zz", name="glob", result="stray"))

    (call,) = draft.tool_calls
    assert call.output == "first"


def test_cancel_pending_marks_only_pending_calls() -> None:
    draft = TurnDraft()
    draft.add_tool_call("t1", "readFile", {"path": "/a"})
    draft.add_tool_call("t2", "bash", {"command": "ls"})
    draft.add_tool_result(ToolResultReceived(id="t1", name="readFile", result={"content": "x"}))

    assert draft.cancel_pending() == 1

    first, second = draft.tool_calls
    assert first.status == ToolCallStatus.success
    assert second.status == ToolCallStatus.error
    assert json.loads(second.output) == {"error": True, "message": "Cancelled by user"}
    assert second.output == CANCELLED_OUTPUT


def test_snapshot_and_reset() -> None:
    draft = TurnDraft()
    draft.add_text("partial")
    draft.add_tool_call("t1", "glob", {})

    snapshot = draft.snapshot()
    draft.reset()

    assert snapshot.content == "partial"
    assert len(snapshot.tool_calls) == 1
    assert draft.is_empty
    assert draft.snapshot().is_empty


def test_helpers() -> None:
    assert is_error_result({"error": True})
    assert not is_error_result({"error": "yes"})
    assert not is_error_result({"success": False})
    assert not is_error_result("error")
    assert serialize("raw") == "raw"
    assert serialize({"a": 1}) == '{"a": 1}'
