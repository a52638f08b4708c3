from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from pydantic import Field

from ..schemas.base import BaseSchema
from ..schemas.domain import ToolTier

DEFAULT_TOOL_TIERS: Dict[str, ToolTier] = {
    "bash": ToolTier.dangerous,
    "browserNavigate": ToolTier.dangerous,
    "browserType": ToolTier.dangerous,
    "installSkill": ToolTier.dangerous,
    "requestLogin": ToolTier.dangerous,
    "writeFile": ToolTier.moderate,
    "browserClick": ToolTier.moderate,
    "browserPress": ToolTier.moderate,
}

DEFAULT_ALLOWED_EXECUTABLES: List[str] = [
    "ls", "cat", "head", "tail", "wc", "sort", "uniq", "find", "grep", "sed",
    "echo", "pwd", "whoami", "date", "which", "file", "diff", "git",
    "npm", "pnpm", "tar", "gzip",
    "gunzip", "zip", "unzip", "mkdir", "cp", "mv", "touch", "chmod", "tee", "xargs",
]  # fmt: skip

DEFAULT_BLOCKED_ARGUMENTS: Dict[str, List[str]] = {
    "find": [r"^-exec$", r"^-execdir$", r"^-delete$"],
    "sed": [r"/e['\"]?$", r"/e\b"],
    "git": [r"^-c$"],
    "npm": [r"^exec$", r"^run-script$"],
    "pnpm": [r"^exec$", r"^dlx$"],
}


class ApprovalPolicy(BaseSchema):
    """
    Configuration for human-in-the-loop approval gates.

    Tools in ``tool_tiers`` require a human decision before they run; tools
    missing from the mapping are unclassified and run without asking.
    """

    timeout_seconds: float = Field(default=60.0, gt=0.0, le=3600.0)
    tool_tiers: Dict[str, ToolTier] = Field(
        default_factory=lambda: dict(DEFAULT_TOOL_TIERS),
        description="Risk tier per tool name. Tools not listed are unclassified.",
    )


class SafetyPolicy(BaseSchema):
    """
    Configuration for the sensitive-path deny-list applied to read-type tools.
    """

    app_database_name: str = Field(
        default="cowork-ai.db",
        description="File name of the application's own database.",
    )
    home_dir: Optional[str] = Field(
        default=None,
        description="Directory substituted for a leading '~'. Defaults to the current user's home.",
    )
    extra_patterns: List[str] = Field(
        default_factory=list,
        description="Additional regular expressions matched against the normalized path.",
    )


class CommandPolicy(BaseSchema):
    """
    Configuration for the shell command guard.
    """

    allowed_executables: List[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_EXECUTABLES))
    blocked_arguments: Dict[str, List[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_BLOCKED_ARGUMENTS.items()},
        description="Per-program regular expressions; any matching argument token blocks the command.",
    )
    default_timeout_ms: int = Field(default=30_000, ge=1)
    max_timeout_ms: int = Field(default=120_000, ge=1)


class PolicyConfig(BaseSchema):
    """
    Aggregate configuration object for all policy aspects.
    """

    version: str = Field(default="policy-v1")

    approval_policy: ApprovalPolicy = Field(default_factory=ApprovalPolicy)
    safety_policy: SafetyPolicy = Field(default_factory=SafetyPolicy)
    command_policy: CommandPolicy = Field(default_factory=CommandPolicy)


@dataclass(frozen=True)
class PathDecision:
    """
    Outcome of checking a path against the sensitive-path deny-list.

    Attributes:
        allowed: True when the path may be read.
        reason: Human-readable explanation when blocked.
        category: Which group of patterns matched (``credentials``, ``dotenv``,
            ``system``, ``database``).
    """

    allowed: bool
    reason: Optional[str] = None
    category: Optional[str] = None


def tier_for(tool_name: str, tiers: Optional[Dict[str, ToolTier]] = None) -> Optional[ToolTier]:
    """Return the risk tier of ``tool_name``, or None when it is unclassified."""
    return (tiers if tiers is not None else DEFAULT_TOOL_TIERS).get(tool_name)
