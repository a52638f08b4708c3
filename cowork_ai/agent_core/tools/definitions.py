"""Tool definitions for the co-working agent.

This module declares the argument schema of every tool the model may call.
Field aliases carry the camelCase names the model sees; Python code uses the
snake_case attribute names.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ToolInput(BaseModel):
    """Base class for tool argument models.

    Unknown keys are ignored rather than rejected so a model that adds a stray
    field still gets its call through; missing or mistyped fields fail
    validation and go through repair.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class EmptyInput(ToolInput):
    """Arguments for tools that take none."""


# ---------------------------------------------------------------------------
# Filesystem
# ---------------------------------------------------------------------------


class ListDirectoryInput(ToolInput):
    path: str = Field(..., description='The absolute path to the directory to list (e.g., "/Users/john/Desktop")')


class GlobInput(ToolInput):
    pattern: str = Field(..., description='The glob pattern to match (e.g., "*.pdf", "**/*.ts", "config*")')
    path: Optional[str] = Field(
        default=None,
        description="The directory to search in. If not provided, searches from the current location.",
    )


class GrepInput(ToolInput):
    pattern: str = Field(..., description="The text or pattern to search for")
    path: str = Field(..., description="The file or directory to search in")
    max_results: Optional[int] = Field(
        default=None,
        alias="maxResults",
        ge=1,
        description="Maximum number of results to return (default: 50)",
    )


class ReadFileInput(ToolInput):
    path: str = Field(..., description="The absolute path to the file to read")


class WriteFileInput(ToolInput):
    path: str = Field(..., description="The absolute path to the file to write")
    content: str = Field(..., description="The full text content to write")


class ViewImageInput(ToolInput):
    path: str = Field(..., description="The absolute path to the image file to view")


class QueryImageInput(ToolInput):
    image_id: int = Field(..., alias="imageId", description="The image ID (the number N from [Image #N])")
    prompt: str = Field(..., description="Your question about the image")


# ---------------------------------------------------------------------------
# Conversation helpers
# ---------------------------------------------------------------------------


class TodoItem(ToolInput):
    id: Optional[str] = Field(default=None, description="ID of existing todo to update")
    content: str = Field(..., description="Short description of the task")
    status: Literal["pending", "in_progress", "completed"] = Field(
        ...,
        description="Current status: pending (not started), in_progress (working on it), or completed (done)",
    )


class TodoWriteInput(ToolInput):
    todos: List[TodoItem]


class QuestionOption(ToolInput):
    id: str = Field(..., description="Unique identifier for this option")
    label: str = Field(..., description="The option text to display")


class QuestionItem(ToolInput):
    id: str = Field(..., description="Unique identifier for this question")
    question: str = Field(..., description="The question to ask the user")
    options: List[QuestionOption] = Field(..., min_length=2, max_length=5, description="2-5 multiple choice options")
    allow_custom: bool = Field(
        default=True,
        alias="allowCustom",
        description='Whether to show a "Write your own answer" option',
    )


class AskQuestionInput(ToolInput):
    questions: List[QuestionItem] = Field(..., min_length=1, max_length=5, description="1-5 questions to ask the user")


# ---------------------------------------------------------------------------
# Shell
# ---------------------------------------------------------------------------


class BashInput(ToolInput):
    command: str = Field(..., description="The shell command to execute")
    cwd: Optional[str] = Field(default=None, description="The working directory to run the command in (optional)")
    timeout: Optional[float] = Field(default=None, description="Timeout in milliseconds (default: 30000, max: 120000)")


# ---------------------------------------------------------------------------
# Browser
# ---------------------------------------------------------------------------


class BrowserNavigateInput(ToolInput):
    url: str = Field(..., description='The URL to navigate to (e.g., "https://github.com")')


class BrowserGetContentInput(ToolInput):
    selector: Optional[str] = Field(
        default=None,
        description="CSS selector to get content from a specific element (optional). "
        "If not provided, gets the main content of the page.",
    )


class BrowserClickInput(ToolInput):
    selector: str = Field(..., description='CSS selector or text content to click (e.g., "button.submit", "Sign In")')


class BrowserTypeInput(ToolInput):
    selector: str = Field(..., description='CSS selector for the input field (e.g., "input[name=search]", "#email")')
    text: str = Field(..., description="The text to type into the field")


class BrowserPressInput(ToolInput):
    key: str = Field(..., description='The key to press (e.g., "Enter", "Tab", "Escape", "ArrowDown")')


class BrowserScrollInput(ToolInput):
    direction: Literal["up", "down", "top", "bottom"] = Field(..., description="Direction to scroll")


class RequestLoginInput(ToolInput):
    url: str = Field(..., description='The URL of the login page (e.g., "https://github.com/login")')
    site_name: str = Field(..., alias="siteName", description='The name of the website (e.g., "GitHub")')


# ---------------------------------------------------------------------------
# Skills
# ---------------------------------------------------------------------------


class SearchSkillsInput(ToolInput):
    query: str = Field(..., description='Search query to find relevant skills (e.g., "whatsapp", "gmail")')


class InstallSkillInput(ToolInput):
    skill_id: str = Field(..., alias="skillId", description="The skill ID from the search results")
    name: str = Field(..., description="The display name of the skill")
    description: str = Field(..., description="A brief description of what the skill does")


class ViewSkillInput(ToolInput):
    skill_name: str = Field(..., alias="skillName", description="The name of the skill to view")


class ToolSchema(BaseModel):
    """What the model is told about a tool."""

    name: str = Field(..., description="Tool name the model calls")
    description: str = Field(..., description="Guidance on when and how to use the tool")
    parameters: Dict[str, Any] = Field(default_factory=dict, description="JSON Schema of the arguments")
