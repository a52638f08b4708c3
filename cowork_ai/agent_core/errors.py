"""Error taxonomy for the agent runtime.

Two families live here:

- Turn-level errors (``UserAbort``, ``ProviderTransportError``,
  ``ContextOverflowError``) end or retry a turn and surface on the
  conversation's run state.
- Tool-level errors (``ToolValidationError``, ``ToolExecutionError``,
  ``SecurityRestrictionError``, ``ApprovalDenied``) never escape the tool
  registry. They are converted into structured payloads with ``to_payload()``
  and handed back to the model so it can correct course.

Provider errors are classified by message content because the streaming
endpoint may surface them from any layer (HTTP client, SDK, or server body).
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

CONTEXT_OVERFLOW_SIGNATURES: Sequence[str] = (
    "context",
    "token limit",
    "too long",
    "too large",
    "maximum length",
)


class AgentRuntimeError(Exception):
    """Base error for all agent runtime exceptions."""


class UserAbort(AgentRuntimeError):
    """Raised inside a turn when its cancellation handle fires. Not a failure."""

    def __init__(self, conversation_id: Optional[str] = None) -> None:
        super().__init__(f"Turn aborted by user{f' for conversation {conversation_id}' if conversation_id else ''}")
        self.conversation_id = conversation_id


class ProviderTransportError(AgentRuntimeError):
    """The model endpoint failed to produce a response.

    Args:
        message: Human-readable error description.
        status_code: Optional HTTP status code associated with the failure.
        details: Optional structured payload from the provider.
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class ContextOverflowError(ProviderTransportError):
    """The request exceeded the model's context window."""


class ToolError(AgentRuntimeError):
    """Base class for failures reported back to the model as data."""

    suggestion: Optional[str] = None

    def __init__(self, tool_name: str, message: str, *, suggestion: Optional[str] = None) -> None:
        super().__init__(message)
        self.tool_name = tool_name
        self.message = message
        if suggestion is not None:
            self.suggestion = suggestion

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": True, "message": self.message}
        if self.suggestion:
            payload["suggestion"] = self.suggestion
        return payload


class ToolValidationError(ToolError):
    """Arguments still failed the tool's schema after repair."""

    def __init__(self, tool_name: str, details: str) -> None:
        super().__init__(tool_name, f"Invalid arguments for tool {tool_name}: {details}")


class ToolExecutionError(ToolError):
    """A collaborator failed while performing the tool's effect."""

    suggestion = "Check the arguments and try again"


class SecurityRestrictionError(ToolError):
    """A read-type path matched the sensitive-path deny-list."""

    suggestion = "This location is off-limits. Ask the user for a different file or folder."

    def __init__(self, tool_name: str, path: str, reason: str) -> None:
        super().__init__(tool_name, f"Access to {path} is restricted: {reason}")
        self.path = path
        self.reason = reason


class ApprovalDenied(ToolError):
    """The user declined, ignored, or superseded an approval request."""

    suggestion = "Tell the user the action was not approved and ask how they would like to proceed."

    def __init__(self, tool_name: str, reason: str = "denied") -> None:
        super().__init__(tool_name, f"The user did not approve running {tool_name} ({reason}).")
        self.reason = reason

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["denied"] = True
        return payload


def is_context_overflow(error: BaseException) -> bool:
    """Return True when ``error`` looks like a context-window overflow."""
    if isinstance(error, ContextOverflowError):
        return True
    message = str(error).lower()
    return any(signature in message for signature in CONTEXT_OVERFLOW_SIGNATURES)


def format_provider_error(error: BaseException) -> str:
    """Map a provider failure onto a single user-facing sentence."""
    message = str(error)
    msg = message.lower()
    status = getattr(error, "status_code", None)

    if status == 401 or "401" in msg or "unauthorized" in msg or ("invalid" in msg and "key" in msg):
        return "Invalid API key. Please check your API key in settings."
    if status == 429 or "429" in msg or "rate limit" in msg:
        return "Rate limit exceeded. Please wait a moment and try again."
    if status == 402 or "402" in msg or "insufficient_quota" in msg:
        return "Insufficient credits. Please add credits to your account."
    if "model" in msg and ("not found" in msg or "unavailable" in msg):
        return "The selected model is not available. Please try a different model."
    if "failed to fetch" in msg or "network" in msg or "ssl" in msg or "connect" in msg:
        return "Network error connecting to the model provider. Please check your internet connection and try again."
    if "timeout" in msg or "timed out" in msg:
        return "Request timed out. Please try again."
    return message or "An unknown error occurred"


def classify_provider_error(error: BaseException) -> ProviderTransportError:
    """Wrap an arbitrary endpoint failure in the runtime's taxonomy."""
    if isinstance(error, ProviderTransportError):
        return error
    status = getattr(error, "status_code", None)
    details = getattr(error, "body", None)
    if is_context_overflow(error):
        return ContextOverflowError(str(error), status_code=status, details=details)
    return ProviderTransportError(format_provider_error(error), status_code=status, details=details)
