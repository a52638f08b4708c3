"""Tool catalogue, collaborators, argument normalization and the tool registry."""

from .collaborators import (
    Browser,
    FileEntry,
    FileSystem,
    GrepMatch,
    ImageRegistry,
    QuestionPrompter,
    Shell,
    ShellResult,
    SkillRegistry,
    TodoBoard,
    ToolContext,
    VisionService,
)
from .definitions import ToolInput, ToolSchema
from .handlers import ToolHandler, default_handlers
from .local import LocalFileSystem, LocalShell
from .normalizer import ToolArgumentNormalizer, normalize_tool_args, repair_tool_args
from .registry import ToolRegistry

__all__ = [
    "Browser",
    "FileEntry",
    "FileSystem",
    "GrepMatch",
    "ImageRegistry",
    "LocalFileSystem",
    "LocalShell",
    "QuestionPrompter",
    "Shell",
    "ShellResult",
    "SkillRegistry",
    "TodoBoard",
    "ToolArgumentNormalizer",
    "ToolContext",
    "ToolHandler",
    "ToolInput",
    "ToolRegistry",
    "ToolSchema",
    "VisionService",
    "default_handlers",
    "normalize_tool_args",
    "repair_tool_args",
]
