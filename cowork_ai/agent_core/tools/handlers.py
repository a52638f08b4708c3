"""Tool handlers for the co-working agent.

Each handler pairs a tool's argument model with the effect it performs. Effects
go through the collaborators on ``ToolContext``; handlers never touch the OS
themselves.

Handlers return a JSON-serializable payload on success. On failure they raise a
``ToolError`` subclass (or let a collaborator exception escape); the registry
turns either into ``{"error": true, "message": ..., "suggestion": ...}`` so the
model can see what went wrong.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, Generic, List, Optional, Tuple, Type, TypeVar
from urllib.parse import urlparse

from cowork_ai.core.logging_config import get_logger

from ..errors import ToolExecutionError
from ..policy.commands import CommandGuard
from .collaborators import FileEntry, ToolContext
from .definitions import (
    AskQuestionInput,
    BashInput,
    BrowserClickInput,
    BrowserGetContentInput,
    BrowserNavigateInput,
    BrowserPressInput,
    BrowserScrollInput,
    BrowserTypeInput,
    EmptyInput,
    GlobInput,
    GrepInput,
    InstallSkillInput,
    ListDirectoryInput,
    QueryImageInput,
    ReadFileInput,
    RequestLoginInput,
    SearchSkillsInput,
    TodoWriteInput,
    ToolInput,
    ToolSchema,
    ViewImageInput,
    ViewSkillInput,
    WriteFileInput,
)

logger = get_logger(__name__)

InputType = TypeVar("InputType", bound=ToolInput)

EXTERNAL_CONTENT_LABEL = "[External Content]"


def format_file_size(size: int) -> str:
    """Render a byte count the way a file browser would (``512 B``, ``1.5 KB``)."""
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024:
            return f"{int(value)} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


def _entry_payload(entry: FileEntry) -> Dict[str, Any]:
    return {
        "name": entry.name,
        "path": entry.path,
        "type": "folder" if entry.is_directory else "file",
        "size": format_file_size(entry.size) if entry.size else None,
    }


def _require(collaborator: Optional[Any], tool_name: str, what: str) -> Any:
    if collaborator is None:
        raise ToolExecutionError(
            tool_name,
            f"{what} is not available in this session",
            suggestion="Tell the user this capability is not set up and continue without it.",
        )
    return collaborator


class ToolHandler(ABC, Generic[InputType]):
    """Abstract base class for tool handlers.

    Class attributes declare the tool's contract:

    - ``name``: the tool name the model calls.
    - ``description``: guidance shown to the model.
    - ``input_model``: the pydantic argument model.
    - ``path_fields``: argument fields checked against the sensitive-path deny-list.
    - ``failure_suggestion``: recovery hint used when the effect raises.
    """

    name: ClassVar[str]
    description: ClassVar[str]
    input_model: ClassVar[Type[ToolInput]] = EmptyInput
    path_fields: ClassVar[Tuple[str, ...]] = ()
    failure_suggestion: ClassVar[str] = "Check the arguments and try again"

    @abstractmethod
    async def execute(self, input_data: InputType, ctx: ToolContext) -> Any:
        """Perform the tool's effect.

        Args:
            input_data: Validated arguments
            ctx: Collaborators for this call

        Returns:
            A JSON-serializable payload for the model
        """

    def to_schema(self) -> ToolSchema:
        return ToolSchema(
            name=self.name,
            description=self.description,
            parameters=self.input_model.model_json_schema(by_alias=True),
        )


# ---------------------------------------------------------------------------
# Filesystem
# ---------------------------------------------------------------------------


class ListDirectoryHandler(ToolHandler[ListDirectoryInput]):
    name = "listDirectory"
    description = "List the contents of a directory. Returns file names, sizes, and whether each item is a folder."
    input_model = ListDirectoryInput
    path_fields = ("path",)
    failure_suggestion = "Check if the path exists and you have permission to access it"

    async def execute(self, input_data: ListDirectoryInput, ctx: ToolContext) -> Any:
        fs = _require(ctx.filesystem, self.name, "File access")
        entries = await fs.list_directory(input_data.path)
        return {"path": input_data.path, "entries": [_entry_payload(e) for e in entries], "count": len(entries)}


class GlobHandler(ToolHandler[GlobInput]):
    name = "glob"
    description = (
        'Find files matching a glob pattern. Use patterns like "*.txt" for text files, '
        '"**/*.js" for all JavaScript files recursively, or "report*.pdf" for PDFs starting with "report".'
    )
    input_model = GlobInput
    path_fields = ("path",)
    failure_suggestion = "Check if the search path exists and the pattern is valid"

    async def execute(self, input_data: GlobInput, ctx: ToolContext) -> Any:
        fs = _require(ctx.filesystem, self.name, "File access")
        entries = await fs.glob(input_data.pattern, input_data.path)
        if not entries:
            where = f" in {input_data.path}" if input_data.path else ""
            return {"files": [], "message": f'No files found matching pattern "{input_data.pattern}"{where}'}
        return {"files": [_entry_payload(e) for e in entries], "count": len(entries)}


class GrepHandler(ToolHandler[GrepInput]):
    name = "grep"
    description = "Search inside files for text matching a pattern. Returns the files and lines where matches are found."
    input_model = GrepInput
    path_fields = ("path",)
    failure_suggestion = "Check if the path exists and the pattern is valid"

    async def execute(self, input_data: GrepInput, ctx: ToolContext) -> Any:
        fs = _require(ctx.filesystem, self.name, "File access")
        matches = await fs.grep(input_data.pattern, input_data.path, input_data.max_results or 50)
        if not matches:
            return {"matches": [], "message": f'No matches found for "{input_data.pattern}" in {input_data.path}'}
        return {
            "matches": [{"path": m.path, "line": m.line_number, "content": m.line} for m in matches],
            "count": len(matches),
        }


class ReadFileHandler(ToolHandler[ReadFileInput]):
    name = "readFile"
    description = "Read the full contents of a text file. Use this after you have found the file you need."
    input_model = ReadFileInput
    path_fields = ("path",)
    failure_suggestion = "Check if the file exists and you have permission to read it"

    async def execute(self, input_data: ReadFileInput, ctx: ToolContext) -> Any:
        fs = _require(ctx.filesystem, self.name, "File access")
        content = await fs.read_text(input_data.path)
        return {"path": input_data.path, "content": content, "length": len(content)}


class WriteFileHandler(ToolHandler[WriteFileInput]):
    name = "writeFile"
    description = "Write text content to a file, replacing it if it exists. Always confirm with the user first."
    input_model = WriteFileInput
    path_fields = ("path",)
    failure_suggestion = "Check that the folder exists and you have permission to write there"

    async def execute(self, input_data: WriteFileInput, ctx: ToolContext) -> Any:
        fs = _require(ctx.filesystem, self.name, "File access")
        written = await fs.write_text(input_data.path, input_data.content)
        return {"success": True, "path": input_data.path, "bytesWritten": written}


class ViewImageHandler(ToolHandler[ViewImageInput]):
    name = "viewImage"
    description = (
        "View an image file. Use this to see the contents of images (PNG, JPG, GIF, etc.) "
        "so you can describe or analyze them."
    )
    input_model = ViewImageInput
    path_fields = ("path",)
    failure_suggestion = "Check if the file exists and is an image"

    async def execute(self, input_data: ViewImageInput, ctx: ToolContext) -> Any:
        fs = _require(ctx.filesystem, self.name, "File access")
        data_url = await fs.read_image(input_data.path)
        return {"success": True, "path": input_data.path, "image": data_url}


class QueryImageHandler(ToolHandler[QueryImageInput]):
    name = "queryImage"
    description = (
        "Query an image from the registry. Images (screenshots and user uploads) are stored with IDs "
        "shown as [Image #N] in tool results. You can query the same image multiple times."
    )
    input_model = QueryImageInput
    failure_suggestion = "The vision model may be unavailable. Try again."

    async def execute(self, input_data: QueryImageInput, ctx: ToolContext) -> Any:
        if not ctx.conversation_id:
            raise ToolExecutionError(
                self.name, "No active conversation", suggestion="This tool requires an active conversation context."
            )
        vision = _require(ctx.vision, self.name, "Image analysis")
        response = await vision.query_image(ctx.conversation_id, input_data.image_id, input_data.prompt)
        return {"success": True, "imageId": input_data.image_id, "response": response}


# ---------------------------------------------------------------------------
# Conversation helpers
# ---------------------------------------------------------------------------


class TodoWriteHandler(ToolHandler[TodoWriteInput]):
    name = "todoWrite"
    description = (
        "Update the TODO panel to show progress on multi-step tasks. "
        "Always include all tasks in every call (it replaces the list)."
    )
    input_model = TodoWriteInput

    async def execute(self, input_data: TodoWriteInput, ctx: ToolContext) -> Any:
        board = _require(ctx.todos, self.name, "The todo panel")
        stamp = int(time.time() * 1000)
        todos = [
            {"id": t.id or f"todo-{stamp}-{i}", "content": t.content, "status": t.status}
            for i, t in enumerate(input_data.todos)
        ]
        await board.set_todos(ctx.conversation_id, todos)
        return {"success": True, "message": f"Updated {len(todos)} todos", "todos": todos}


class AskQuestionHandler(ToolHandler[AskQuestionInput]):
    name = "askQuestion"
    description = (
        "Ask the user one or more questions when you need clarification or input. Each question has "
        "multiple choice options and the user can also write their own answer. "
        "After calling this tool, STOP and wait for the user's response."
    )
    input_model = AskQuestionInput

    async def execute(self, input_data: AskQuestionInput, ctx: ToolContext) -> Any:
        prompter = _require(ctx.questions, self.name, "Asking questions")
        questions = [q.model_dump(by_alias=True) for q in input_data.questions]
        question_set_id = await prompter.show(ctx.conversation_id, questions)
        return {
            "success": True,
            "message": "Questions displayed to user. Waiting for their response...",
            "questionSetId": question_set_id,
            "questionCount": len(questions),
            "waitingForResponse": True,
        }


# ---------------------------------------------------------------------------
# Shell
# ---------------------------------------------------------------------------


class BashHandler(ToolHandler[BashInput]):
    name = "bash"
    description = (
        "Execute a shell command. Only allowlisted programs run; command substitution is blocked. "
        "NEVER use destructive commands, NEVER delete files, NEVER run sudo. "
        "Prefer read-only operations and explain the command before running it."
    )
    input_model = BashInput
    path_fields = ("cwd",)
    failure_suggestion = "This command may be blocked for safety reasons, or the path may be invalid"

    def __init__(self, guard: Optional[CommandGuard] = None) -> None:
        self._guard = guard or CommandGuard()

    async def execute(self, input_data: BashInput, ctx: ToolContext) -> Any:
        problem = self._guard.validate(input_data.command)
        if problem:
            raise ToolExecutionError(self.name, problem, suggestion=self.failure_suggestion)
        shell = _require(ctx.shell, self.name, "Shell access")
        result = await shell.run(
            input_data.command,
            cwd=input_data.cwd,
            timeout_ms=self._guard.clamp_timeout(input_data.timeout),
        )
        if result.exit_code != 0:
            return {
                "success": False,
                "exitCode": result.exit_code,
                "stdout": result.stdout,
                "stderr": result.stderr,
                "message": f"Command failed with exit code {result.exit_code}",
                "suggestion": (
                    f"Error output: {result.stderr}" if result.stderr else "Check the command syntax and try again"
                ),
            }
        payload: Dict[str, Any] = {"success": True, "exitCode": 0, "stdout": result.stdout}
        if result.stderr:
            payload["stderr"] = result.stderr
        return payload


# ---------------------------------------------------------------------------
# Browser
# ---------------------------------------------------------------------------


def _checked(tool_name: str, result: Any, fallback: str, suggestion: str) -> Dict[str, Any]:
    payload = dict(result or {})
    if payload.get("error"):
        raise ToolExecutionError(tool_name, payload.get("message") or fallback, suggestion=suggestion)
    return payload


async def _image_reference(ctx: ToolContext, screenshot: Optional[str], source_url: Optional[str]) -> Dict[str, Any]:
    if not screenshot or ctx.images is None or not ctx.conversation_id:
        return {}
    hint = "Screenshot"
    if source_url:
        hint = f"Screenshot of {urlparse(source_url).hostname or source_url}"
    try:
        image_id = await ctx.images.save_image(
            ctx.conversation_id, screenshot, "image/png", "screenshot", {"url": source_url}
        )
    except Exception:
        logger.exception("Failed to save screenshot to image registry")
        return {}
    return {
        "imageRef": {"imageId": image_id, "hint": hint},
        "imageNote": f'[Image #{image_id}: {hint}. Use queryImage({image_id}, "your question") to analyze.]',
    }


class BrowserNavigateHandler(ToolHandler[BrowserNavigateInput]):
    name = "browserNavigate"
    description = (
        "Navigate to a URL in the browser. Opens a real browser window with the user's logins and cookies."
    )
    input_model = BrowserNavigateInput
    failure_suggestion = "The browser may not be available. Try again."

    async def execute(self, input_data: BrowserNavigateInput, ctx: ToolContext) -> Any:
        browser = _require(ctx.browser, self.name, "The browser")
        result = _checked(
            self.name,
            await browser.navigate(input_data.url),
            "Navigation failed",
            "Check if the URL is valid and try again",
        )
        url = result.get("url") or input_data.url
        payload: Dict[str, Any] = {
            "success": True,
            "url": url,
            "title": result.get("title"),
            "message": f"Navigated to {result.get('title') or url}",
        }
        payload.update(await _image_reference(ctx, result.get("screenshot"), url))
        return payload


class BrowserGetContentHandler(ToolHandler[BrowserGetContentInput]):
    name = "browserGetContent"
    description = "Get the text content of the current page or a specific element."
    input_model = BrowserGetContentInput
    failure_suggestion = "Make sure you have navigated to a page first"

    async def execute(self, input_data: BrowserGetContentInput, ctx: ToolContext) -> Any:
        browser = _require(ctx.browser, self.name, "The browser")
        content = await browser.get_content(input_data.selector)
        return {"success": True, "content": f"{EXTERNAL_CONTENT_LABEL}\n{content}"}


class BrowserClickHandler(ToolHandler[BrowserClickInput]):
    name = "browserClick"
    description = "Click on an element on the page. Use a CSS selector or the text content of the element to click."
    input_model = BrowserClickInput
    failure_suggestion = "The element may not exist. Try a different selector."

    async def execute(self, input_data: BrowserClickInput, ctx: ToolContext) -> Any:
        browser = _require(ctx.browser, self.name, "The browser")
        _checked(self.name, await browser.click(input_data.selector), "Click failed", self.failure_suggestion)
        return {"success": True, "message": f"Clicked {input_data.selector}"}


class BrowserTypeHandler(ToolHandler[BrowserTypeInput]):
    name = "browserType"
    description = "Type text into an input field on the page. Use this to fill in forms, search boxes, etc."
    input_model = BrowserTypeInput
    failure_suggestion = "The input field may not exist. Try a different selector."

    async def execute(self, input_data: BrowserTypeInput, ctx: ToolContext) -> Any:
        browser = _require(ctx.browser, self.name, "The browser")
        _checked(
            self.name,
            await browser.type(input_data.selector, input_data.text),
            "Typing failed",
            self.failure_suggestion,
        )
        return {"success": True, "message": f"Typed into {input_data.selector}"}


class BrowserPressHandler(ToolHandler[BrowserPressInput]):
    name = "browserPress"
    description = "Press a key on the keyboard. Use this for Enter, Tab, Escape, arrow keys, etc."
    input_model = BrowserPressInput

    async def execute(self, input_data: BrowserPressInput, ctx: ToolContext) -> Any:
        browser = _require(ctx.browser, self.name, "The browser")
        _checked(self.name, await browser.press(input_data.key), "Key press failed", self.failure_suggestion)
        return {"success": True, "message": f"Pressed {input_data.key}"}


class BrowserGetLinksHandler(ToolHandler[EmptyInput]):
    name = "browserGetLinks"
    description = "Get all links on the current page. Useful for finding URLs to navigate to."
    failure_suggestion = "Navigate to a page first"

    async def execute(self, input_data: EmptyInput, ctx: ToolContext) -> Any:
        browser = _require(ctx.browser, self.name, "The browser")
        links = await browser.get_links()
        return {"success": True, "links": links, "count": len(links)}


class BrowserScrollHandler(ToolHandler[BrowserScrollInput]):
    name = "browserScroll"
    description = "Scroll the page up, down, or to the top/bottom."
    input_model = BrowserScrollInput

    async def execute(self, input_data: BrowserScrollInput, ctx: ToolContext) -> Any:
        browser = _require(ctx.browser, self.name, "The browser")
        _checked(self.name, await browser.scroll(input_data.direction), "Scroll failed", self.failure_suggestion)
        return {"success": True, "message": f"Scrolled {input_data.direction}"}


class BrowserScreenshotHandler(ToolHandler[EmptyInput]):
    name = "browserScreenshot"
    description = "Take a screenshot of the current page. The screenshot is saved to the image registry."
    failure_suggestion = "Navigate to a page first"

    async def execute(self, input_data: EmptyInput, ctx: ToolContext) -> Any:
        browser = _require(ctx.browser, self.name, "The browser")
        screenshot = await browser.screenshot()
        if not screenshot:
            raise ToolExecutionError(self.name, "Screenshot failed", suggestion=self.failure_suggestion)
        payload: Dict[str, Any] = {"success": True, "message": "Screenshot captured"}
        payload.update(await _image_reference(ctx, screenshot, None))
        return payload


class BrowserCloseHandler(ToolHandler[EmptyInput]):
    name = "browserClose"
    description = "Close the browser window. Use this when done with web browsing."

    async def execute(self, input_data: EmptyInput, ctx: ToolContext) -> Any:
        browser = _require(ctx.browser, self.name, "The browser")
        await browser.close()
        return {"success": True, "message": "Browser closed"}


class RequestLoginHandler(ToolHandler[RequestLoginInput]):
    name = "requestLogin"
    description = (
        "Ask the user to log in to a website. Opens a VISIBLE browser window where the user enters "
        "their own credentials. Never ask the user to share a password in chat."
    )
    input_model = RequestLoginInput
    failure_suggestion = "Try again or ask the user to manually log in first."

    async def execute(self, input_data: RequestLoginInput, ctx: ToolContext) -> Any:
        browser = _require(ctx.browser, self.name, "The browser")
        _checked(
            self.name,
            await browser.request_login(input_data.url, input_data.site_name),
            "Failed to open browser for login",
            "Try again or ask the user to manually log in.",
        )
        return {
            "success": True,
            "waitingForLogin": True,
            "message": (
                f"I've opened {input_data.site_name} in a browser window. Please log in to your account there. "
                "Let me know when you're done logging in, and I'll continue with your request."
            ),
        }


# ---------------------------------------------------------------------------
# Skills
# ---------------------------------------------------------------------------


class SearchSkillsHandler(ToolHandler[SearchSkillsInput]):
    name = "searchSkills"
    description = (
        "Search the skill registry. Skills are pre-built automation instructions that help with tasks "
        "you couldn't do otherwise."
    )
    input_model = SearchSkillsInput
    failure_suggestion = "The skill registry may be unreachable. Try again later."

    async def execute(self, input_data: SearchSkillsInput, ctx: ToolContext) -> Any:
        registry = _require(ctx.skills, self.name, "The skill registry")
        skills = await registry.search(input_data.query)
        return {
            "success": True,
            "skills": [
                {"id": s.get("id"), "name": s.get("name"), "description": s.get("description")} for s in skills
            ],
            "count": len(skills),
        }


class InstallSkillHandler(ToolHandler[InstallSkillInput]):
    name = "installSkill"
    description = (
        "Install a skill from the skill registry. After installation, the skill's instructions will be "
        "available in your system prompt."
    )
    input_model = InstallSkillInput
    failure_suggestion = "Check the skill ID from the search results and try again."

    async def execute(self, input_data: InstallSkillInput, ctx: ToolContext) -> Any:
        registry = _require(ctx.skills, self.name, "The skill registry")
        skill = await registry.install(input_data.skill_id, input_data.name, input_data.description)
        return {"success": True, "message": f"Installed skill {skill.name}", "skill": skill.name}


class ListInstalledSkillsHandler(ToolHandler[EmptyInput]):
    name = "listInstalledSkills"
    description = "List all installed skills with their names and descriptions."

    async def execute(self, input_data: EmptyInput, ctx: ToolContext) -> Any:
        registry = _require(ctx.skills, self.name, "The skill registry")
        skills = await registry.list_installed()
        return {
            "success": True,
            "skills": [{"name": s.name, "description": s.description or "No description"} for s in skills],
            "count": len(skills),
        }


class ViewSkillHandler(ToolHandler[ViewSkillInput]):
    name = "viewSkill"
    description = "View the full content of an installed skill."
    input_model = ViewSkillInput
    failure_suggestion = "Use listInstalledSkills to see the exact skill names."

    async def execute(self, input_data: ViewSkillInput, ctx: ToolContext) -> Any:
        registry = _require(ctx.skills, self.name, "The skill registry")
        skill = await registry.view(input_data.skill_name)
        if skill is None:
            raise ToolExecutionError(
                self.name, f"Skill not found: {input_data.skill_name}", suggestion=self.failure_suggestion
            )
        return {
            "success": True,
            "name": skill.name,
            "description": skill.description,
            "content": f"{EXTERNAL_CONTENT_LABEL}\n{skill.content}",
        }


def default_handlers(guard: Optional[CommandGuard] = None) -> List[ToolHandler[Any]]:
    """Return one instance of every built-in tool handler."""
    return [
        ListDirectoryHandler(),
        GlobHandler(),
        GrepHandler(),
        ReadFileHandler(),
        WriteFileHandler(),
        ViewImageHandler(),
        QueryImageHandler(),
        TodoWriteHandler(),
        AskQuestionHandler(),
        BashHandler(guard),
        BrowserNavigateHandler(),
        BrowserGetContentHandler(),
        BrowserClickHandler(),
        BrowserTypeHandler(),
        BrowserPressHandler(),
        BrowserGetLinksHandler(),
        BrowserScrollHandler(),
        BrowserScreenshotHandler(),
        BrowserCloseHandler(),
        RequestLoginHandler(),
        SearchSkillsHandler(),
        InstallSkillHandler(),
        ListInstalledSkillsHandler(),
        ViewSkillHandler(),
    ]
