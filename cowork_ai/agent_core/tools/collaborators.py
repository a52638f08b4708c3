from __future__ import annotations

"""Side-effect provider contracts used by tool handlers.

Tool handlers never touch the operating system, a browser, or the network
directly. They call one of these Protocols through ``ToolContext``; the host
application supplies concrete implementations.

Contract guidelines
-------------------

- All methods are async.
- Implementations may raise; the tool registry converts any exception into a
  structured error payload for the model.
- A collaborator left as ``None`` on the context makes the tools that need it
  report themselves as unavailable.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from ..schemas.domain import Skill


@dataclass(frozen=True)
class FileEntry:
    name: str
    path: str
    is_directory: bool
    size: Optional[int] = None


@dataclass(frozen=True)
class GrepMatch:
    path: str
    line_number: int
    line: str


@dataclass(frozen=True)
class ShellResult:
    exit_code: int
    stdout: str = ""
    stderr: str = ""


class FileSystem(Protocol):
    """Read and write files on the user's machine."""

    async def list_directory(self, path: str) -> List[FileEntry]:
        """List the immediate children of ``path``."""
        ...

    async def glob(self, pattern: str, path: Optional[str] = None) -> List[FileEntry]:
        """Find entries matching ``pattern`` under ``path`` (or the working directory)."""
        ...

    async def grep(self, pattern: str, path: str, max_results: int = 50) -> List[GrepMatch]:
        """Search file contents under ``path`` for ``pattern``."""
        ...

    async def read_text(self, path: str) -> str:
        """Return the text content of ``path``."""
        ...

    async def write_text(self, path: str, content: str) -> int:
        """Write ``content`` to ``path`` and return the number of bytes written."""
        ...

    async def read_image(self, path: str) -> str:
        """Return the image at ``path`` as a ``data:`` URL."""
        ...


class Shell(Protocol):
    async def run(self, command: str, *, cwd: Optional[str] = None, timeout_ms: int = 30_000) -> ShellResult:
        """Run ``command`` and return its exit code and captured output."""
        ...


class Browser(Protocol):
    """Drive the user's browser session."""

    async def navigate(self, url: str) -> Dict[str, Any]:
        """Open ``url``; the result carries ``url``, ``title`` and an optional base64 ``screenshot``."""
        ...

    async def get_content(self, selector: Optional[str] = None) -> str: ...

    async def click(self, selector: str) -> Dict[str, Any]: ...

    async def type(self, selector: str, text: str) -> Dict[str, Any]: ...

    async def press(self, key: str) -> Dict[str, Any]: ...

    async def get_links(self) -> List[Dict[str, str]]: ...

    async def scroll(self, direction: str) -> Dict[str, Any]: ...

    async def screenshot(self) -> Optional[str]:
        """Return a base64 PNG of the current page, or None when no page is open."""
        ...

    async def close(self) -> None: ...

    async def request_login(self, url: str, site_name: str) -> Dict[str, Any]:
        """Open a visible window for the user to log in; result carries ``success``."""
        ...


class SkillRegistry(Protocol):
    async def search(self, query: str) -> List[Dict[str, Any]]: ...

    async def install(self, skill_id: str, name: str, description: str) -> Skill: ...

    async def list_installed(self) -> List[Skill]: ...

    async def view(self, name: str) -> Optional[Skill]: ...


class VisionService(Protocol):
    async def query_image(self, conversation_id: str, image_id: int, prompt: str) -> str:
        """Answer ``prompt`` about a registered image."""
        ...


class ImageRegistry(Protocol):
    async def save_image(
        self,
        conversation_id: str,
        data: str,
        mime_type: str,
        source: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Store an image for later ``queryImage`` calls and return its numeric id."""
        ...


class QuestionPrompter(Protocol):
    async def show(self, conversation_id: Optional[str], questions: Sequence[Dict[str, Any]]) -> str:
        """Display questions to the user and return the question-set id."""
        ...


class TodoBoard(Protocol):
    async def set_todos(self, conversation_id: Optional[str], todos: Sequence[Dict[str, Any]]) -> None:
        """Replace the visible todo list."""
        ...


@dataclass(frozen=True)
class ToolContext:
    """Dependency bundle passed to every tool handler.

    Attributes:
        conversation_id: The conversation the tool call belongs to.
        filesystem: Filesystem access; see ``LocalFileSystem``.
        shell: Command execution; see ``LocalShell``.
        browser: Browser automation.
        skills: Skill registry client.
        vision: Vision model used by ``queryImage``.
        images: Image registry for screenshots and uploads.
        questions: Surface for ``askQuestion``.
        todos: Surface for ``todoWrite``.
    """

    conversation_id: Optional[str] = None
    filesystem: Optional[FileSystem] = None
    shell: Optional[Shell] = None
    browser: Optional[Browser] = None
    skills: Optional[SkillRegistry] = None
    vision: Optional[VisionService] = None
    images: Optional[ImageRegistry] = None
    questions: Optional[QuestionPrompter] = None
    todos: Optional[TodoBoard] = None
