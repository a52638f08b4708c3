from __future__ import annotations

import pytest

from cowork_ai.agent_core.policy.commands import CommandGuard
from cowork_ai.agent_core.policy.models import CommandPolicy


@pytest.fixture
def guard() -> CommandGuard:
    return CommandGuard()


@pytest.mark.parametrize(
    "command",
    [
        "ls -la ~/Desktop",
        "cat notes.txt | grep todo | wc -l",
        "git status && git log --oneline -5",
        "LANG=C sort file.txt",
        "/bin/ls /tmp",
        "find . -name '*.py'",
        "echo done; pwd",
    ],
)
def test_allowed_commands(guard: CommandGuard, command: str) -> None:
    assert guard.validate(command) is None


@pytest.mark.parametrize(
    "command,program",
    [
        ("rm -rf /", "rm"),
        ("ls && curl http://evil.example", "curl"),
        ("cat a | python -c 'print(1)'", "python"),
        ("FOO=1 sudo ls", "sudo"),
    ],
)
def test_programs_outside_allowlist_are_blocked(guard: CommandGuard, command: str, program: str) -> None:
    message = guard.validate(command)

    assert message is not None
    assert message.startswith(f'Command blocked for security: "{program}" is not in the allowlist.')


@pytest.mark.parametrize("command", ["echo $(whoami)", "ls `pwd`"])
def test_command_substitution_is_blocked(guard: CommandGuard, command: str) -> None:
    assert guard.validate(command) == (
        "Command blocked for security: command substitution ($() and backticks) is not allowed"
    )


@pytest.mark.parametrize(
    "command",
    [
        "find . -exec cat {} ;",
        "find . -delete",
        "git -c core.pager=less log",
        "npm exec cowsay",
        "pnpm dlx create-app",
        "sed 's/a/b/e' file",
    ],
)
def test_blocked_argument_patterns(guard: CommandGuard, command: str) -> None:
    message = guard.validate(command)

    assert message is not None
    assert "with blocked argument pattern" in message


def test_empty_command_is_invalid(guard: CommandGuard) -> None:
    assert guard.validate("   ") == "Invalid command: empty or malformed"


@pytest.mark.parametrize(
    "requested,expected",
    [(None, 30_000), (0, 30_000), (-5, 30_000), (5_000, 5_000), (500_000, 120_000)],
)
def test_clamp_timeout(guard: CommandGuard, requested, expected: int) -> None:
    assert guard.clamp_timeout(requested) == expected


def test_custom_policy() -> None:
    guard = CommandGuard(CommandPolicy(allowed_executables=["python"], blocked_arguments={"python": [r"^-c$"]}))

    assert guard.validate("python script.py") is None
    assert guard.validate("ls") is not None
    assert "blocked argument" in guard.validate("python -c 'x'")
