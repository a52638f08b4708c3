from __future__ import annotations

import pytest

from cowork_ai.agent_core.errors import (
    ApprovalDenied,
    ContextOverflowError,
    ProviderTransportError,
    SecurityRestrictionError,
    ToolExecutionError,
    ToolValidationError,
    UserAbort,
    classify_provider_error,
    format_provider_error,
    is_context_overflow,
)


class _StatusError(Exception):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


def test_tool_error_payloads() -> None:
    assert ToolValidationError("readFile", "path: Field required").to_payload() == {
        "error": True,
        "message": "Invalid arguments for tool readFile: path: Field required",
    }
    execution = ToolExecutionError("bash", "boom").to_payload()
    assert execution == {"error": True, "message": "boom", "suggestion": "Check the arguments and try again"}

    restricted = SecurityRestrictionError("readFile", "~/.ssh/id_rsa", "it may contain credentials")
    payload = restricted.to_payload()
    assert payload["error"] is True
    assert payload["message"] == "Access to ~/.ssh/id_rsa is restricted: it may contain credentials"
    assert "off-limits" in payload["suggestion"]


def test_approval_denied_payload_is_marked_denied() -> None:
    payload = ApprovalDenied("bash", "timeout").to_payload()

    assert payload["denied"] is True
    assert payload["error"] is True
    assert payload["message"] == "The user did not approve running bash (timeout)."


def test_user_abort_mentions_conversation() -> None:
    assert "c-1" in str(UserAbort("c-1"))
    assert UserAbort().conversation_id is None


@pytest.mark.parametrize(
    "message,expected",
    [
        ("This model's maximum context length is 200000 tokens", True),
        ("prompt is too long: 210000 tokens > 200000 maximum", True),
        ("Request too large for model", True),
        ("token limit exceeded", True),
        ("rate limit exceeded", False),
        ("connection reset", False),
    ],
)
def test_is_context_overflow(message: str, expected: bool) -> None:
    assert is_context_overflow(RuntimeError(message)) is expected


def test_context_overflow_error_is_always_overflow() -> None:
    assert is_context_overflow(ContextOverflowError("nope")) is True


@pytest.mark.parametrize(
    "error,expected",
    [
        (_StatusError("bad", 401), "Invalid API key. Please check your API key in settings."),
        (RuntimeError("Invalid API key provided"), "Invalid API key. Please check your API key in settings."),
        (_StatusError("slow down", 429), "Rate limit exceeded. Please wait a moment and try again."),
        (RuntimeError("insufficient_quota"), "Insufficient credits. Please add credits to your account."),
        (
            RuntimeError("model foo/bar not found"),
            "The selected model is not available. Please try a different model.",
        ),
        (
            RuntimeError("Failed to fetch"),
            "Network error connecting to the model provider. Please check your internet connection and try again.",
        ),
        (RuntimeError("request timed out"), "Request timed out. Please try again."),
        (RuntimeError("something odd"), "something odd"),
        (RuntimeError(""), "An unknown error occurred"),
    ],
)
def test_format_provider_error(error: Exception, expected: str) -> None:
    assert format_provider_error(error) == expected


def test_classify_provider_error() -> None:
    overflow = classify_provider_error(_StatusError("context length exceeded", 400))
    assert isinstance(overflow, ContextOverflowError)
    assert overflow.status_code == 400

    transport = classify_provider_error(_StatusError("slow down", 429))
    assert type(transport) is ProviderTransportError
    assert str(transport) == "Rate limit exceeded. Please wait a moment and try again."

    existing = ProviderTransportError("x")
    assert classify_provider_error(existing) is existing
