"""Policy primitives: risk tiers, the approval gateway, and safety guards."""

from .approval import ApprovalGateway, describe_tool_request
from .commands import CommandGuard
from .models import (
    DEFAULT_TOOL_TIERS,
    ApprovalPolicy,
    CommandPolicy,
    PathDecision,
    PolicyConfig,
    SafetyPolicy,
    tier_for,
)
from .safety import SensitivePathFilter, normalize_path

__all__ = [
    "DEFAULT_TOOL_TIERS",
    "ApprovalGateway",
    "ApprovalPolicy",
    "CommandGuard",
    "CommandPolicy",
    "PathDecision",
    "PolicyConfig",
    "SafetyPolicy",
    "SensitivePathFilter",
    "describe_tool_request",
    "normalize_path",
    "tier_for",
]
