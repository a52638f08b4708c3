from __future__ import annotations

"""Sensitive-path deny-list for read-type tools.

The filter runs before any filesystem collaborator is touched. Paths are
normalized first so that both POSIX and Windows spellings of the same
location match the same pattern:

- backslashes become forward slashes,
- a leading ``~`` is expanded to the configured home directory,
- ``.``/``..`` segments are collapsed,
- case is folded.

Patterns are anchored on path separators, so a directory named
``myenvironment`` is not mistaken for a ``.env`` file.
"""

import logging
import posixpath
import re
from pathlib import Path
from typing import List, Optional, Pattern, Tuple

from ..errors import SecurityRestrictionError
from .models import PathDecision, SafetyPolicy

logger = logging.getLogger(__name__)

_CREDENTIAL_PATTERNS = (
    r"/\.ssh(/|$)",
    r"/\.aws(/|$)",
    r"/\.gnupg(/|$)",
    r"/\.config/gcloud(/|$)",
    r"/\.keychain(/|$)",
    r"/library/keychains(/|$)",
    r"\.keychain(-db)?$",
    r"/\.credential[^/]*(/|$)",
    r"/credentials\.json$",
    r"/\.netrc$",
)
_DOTENV_PATTERNS = (r"/\.env(\.[^/]*)?$",)
_SYSTEM_PATTERNS = (r"/etc/(shadow|passwd|sudoers)(/|$)",)
_DATABASE_PATTERNS = (
    r"/dev\.db(-journal|-wal|-shm)?$",
    r"/\.prisma(/|$)",
)

_REASONS = {
    "credentials": "it may contain credentials or private keys",
    "dotenv": "environment files commonly hold secrets",
    "system": "it is a protected system file",
    "database": "it is part of the application's own database",
    "custom": "it matches a configured restricted pattern",
}


def normalize_path(path: str, home_dir: Optional[str] = None) -> str:
    """Normalize ``path`` into the lower-case, forward-slash form patterns match against."""
    text = path.strip().replace("\\", "/")
    if text == "~" or text.startswith("~/"):
        home = (home_dir or str(Path.home())).replace("\\", "/")
        text = home.rstrip("/") + text[1:]
    text = posixpath.normpath(text) if text else text
    if not text.startswith("/"):
        text = "/" + text
    return text.lower()


class SensitivePathFilter:
    """Decide whether a read-type tool may touch a path.

    Configured by ``SafetyPolicy``. Matching is separator- and
    case-insensitive.
    """

    def __init__(self, policy: Optional[SafetyPolicy] = None) -> None:
        self._policy = policy or SafetyPolicy()
        self._rules: List[Tuple[str, Pattern[str]]] = []
        for category, patterns in (
            ("credentials", _CREDENTIAL_PATTERNS),
            ("dotenv", _DOTENV_PATTERNS),
            ("system", _SYSTEM_PATTERNS),
            ("database", _DATABASE_PATTERNS),
        ):
            self._rules.extend((category, re.compile(p)) for p in patterns)
        db_name = re.escape(self._policy.app_database_name.lower())
        self._rules.append(("database", re.compile(rf"/{db_name}(-journal|-wal|-shm)?$")))
        self._rules.extend(("custom", re.compile(p, re.IGNORECASE)) for p in self._policy.extra_patterns)

    @property
    def policy(self) -> SafetyPolicy:
        return self._policy

    def check(self, path: str) -> PathDecision:
        """
        Check ``path`` against the deny-list.

        Args:
            path: The path exactly as the model supplied it.

        Returns:
            PathDecision: ``allowed=False`` with a reason and category on a match.
        """
        normalized = normalize_path(path, self._policy.home_dir)
        for category, pattern in self._rules:
            if pattern.search(normalized):
                logger.warning(f"Blocked access to sensitive path: {path} (category={category})")
                return PathDecision(allowed=False, reason=_REASONS[category], category=category)
        return PathDecision(allowed=True)

    def ensure_allowed(self, tool_name: str, path: str) -> None:
        """
        Raise when ``path`` is on the deny-list.

        Raises:
            SecurityRestrictionError: If the path matched a sensitive pattern.
        """
        decision = self.check(path)
        if not decision.allowed:
            raise SecurityRestrictionError(tool_name, path, decision.reason or "restricted")
