from __future__ import annotations

"""Static validation of shell commands before execution.

The guard inspects a command line without running it:

- command substitution (``$(...)`` and backticks) is rejected outright because
  its program cannot be known statically;
- the line is split on pipeline, chain and sequence operators
  (``|``, ``||``, ``&&``, ``;``) and every segment is checked;
- leading ``NAME=value`` assignments are ignored when locating the program;
- the program's basename must be on the allowlist, and some programs have
  argument patterns that are blocked because they re-open arbitrary execution
  (``find -exec``, ``git -c`` and friends).

The guard only reports problems; running the command is the shell
collaborator's job.
"""

import logging
import re
from typing import Dict, List, Optional, Pattern

from .models import CommandPolicy

logger = logging.getLogger(__name__)

_SEGMENT_SPLIT = re.compile(r"\s*(?:\|{1,2}|&&|;)\s*")
_ENV_ASSIGNMENTS = re.compile(r"^(\S+=\S*\s+)*")
_SUBSTITUTION = re.compile(r"\$\(|`")


class CommandGuard:
    """Validate shell command lines against a ``CommandPolicy``."""

    def __init__(self, policy: Optional[CommandPolicy] = None) -> None:
        self._policy = policy or CommandPolicy()
        self._allowed = set(self._policy.allowed_executables)
        self._blocked: Dict[str, List[Pattern[str]]] = {
            program: [re.compile(p) for p in patterns] for program, patterns in self._policy.blocked_arguments.items()
        }

    @property
    def policy(self) -> CommandPolicy:
        return self._policy

    def clamp_timeout(self, timeout_ms: Optional[float]) -> int:
        """Return the effective timeout in milliseconds for a requested value."""
        if not timeout_ms or timeout_ms <= 0:
            return self._policy.default_timeout_ms
        return int(min(timeout_ms, self._policy.max_timeout_ms))

    def validate(self, command: str) -> Optional[str]:
        """
        Validate a command line.

        Returns:
            An error message when the command is blocked, or None when it may run.
        """
        if _SUBSTITUTION.search(command):
            return "Command blocked for security: command substitution ($() and backticks) is not allowed"

        segments = [s.strip() for s in _SEGMENT_SPLIT.split(command.strip())]
        if not any(segments):
            return "Invalid command: empty or malformed"

        for segment in segments:
            if not segment:
                continue
            without_env = _ENV_ASSIGNMENTS.sub("", segment)
            tokens = without_env.split()
            if not tokens:
                continue
            program = tokens[0].split("/")[-1] or tokens[0]

            if program not in self._allowed:
                logger.warning(f"Blocked command with non-allowlisted program: {program}")
                return (
                    f'Command blocked for security: "{program}" is not in the allowlist. '
                    f"Allowed executables: {', '.join(self._policy.allowed_executables)}"
                )

            for pattern in self._blocked.get(program, ()):
                if any(pattern.search(token) for token in tokens[1:]):
                    logger.warning(f"Blocked command with disallowed argument for {program}")
                    return (
                        f'Command blocked for security: "{program}" with blocked argument pattern. '
                        "This argument combination is not allowed."
                    )
        return None
