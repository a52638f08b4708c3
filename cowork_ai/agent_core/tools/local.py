"""Local filesystem and shell collaborators.

These implementations run directly on the host with ``pathlib`` and
``asyncio`` subprocesses. They enforce size and result-count limits but no
access policy: the sensitive-path filter and the command guard run in the
tool registry before these are reached.
"""

import asyncio
import base64
import mimetypes
import os
import re
import time
from pathlib import Path
from typing import List, Optional

from cowork_ai.core.logging_config import get_logger

from .collaborators import FileEntry, GrepMatch, ShellResult

logger = get_logger(__name__)

MAX_READ_SIZE = 50 * 1024 * 1024
MAX_GLOB_RESULTS = 1000
MAX_GREP_RESULTS = 500
_GREP_FILE_SIZE_LIMIT = 5 * 1024 * 1024


def _entry(path: Path) -> FileEntry:
    is_dir = path.is_dir()
    size = None if is_dir else path.stat().st_size
    return FileEntry(name=path.name, path=str(path), is_directory=is_dir, size=size)


class LocalFileSystem:
    """``FileSystem`` backed by the local disk."""

    def __init__(self, base_dir: Optional[str] = None) -> None:
        self._base_dir = Path(base_dir) if base_dir else Path.cwd()

    def _resolve(self, path: str) -> Path:
        p = Path(path).expanduser()
        return p if p.is_absolute() else self._base_dir / p

    async def list_directory(self, path: str) -> List[FileEntry]:
        directory = self._resolve(path)
        if not directory.exists():
            raise FileNotFoundError(f"Directory not found: {directory}")
        if not directory.is_dir():
            raise NotADirectoryError(f"Path is not a directory: {directory}")
        return [_entry(child) for child in sorted(directory.iterdir(), key=lambda c: c.name.lower())]

    async def glob(self, pattern: str, path: Optional[str] = None) -> List[FileEntry]:
        root = self._resolve(path) if path else self._base_dir
        results: List[FileEntry] = []
        for match in root.glob(pattern):
            results.append(_entry(match))
            if len(results) >= MAX_GLOB_RESULTS:
                logger.info(f"Glob result limit reached ({MAX_GLOB_RESULTS}) for pattern {pattern}")
                break
        return results

    async def grep(self, pattern: str, path: str, max_results: int = 50) -> List[GrepMatch]:
        root = self._resolve(path)
        limit = min(max_results, MAX_GREP_RESULTS)
        try:
            regex = re.compile(pattern)
        except re.error:
            regex = re.compile(re.escape(pattern))

        files = [root] if root.is_file() else (p for p in root.rglob("*") if p.is_file())
        matches: List[GrepMatch] = []
        for file_path in files:
            if file_path.stat().st_size > _GREP_FILE_SIZE_LIMIT:
                continue
            try:
                text = file_path.read_text(encoding="utf-8")
            except (UnicodeDecodeError, OSError):
                continue
            for number, line in enumerate(text.splitlines(), start=1):
                if regex.search(line):
                    matches.append(GrepMatch(path=str(file_path), line_number=number, line=line.strip()))
                    if len(matches) >= limit:
                        return matches
        return matches

    async def read_text(self, path: str) -> str:
        file_path = self._resolve(path)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")
        if not file_path.is_file():
            raise IsADirectoryError(f"Path is not a file: {file_path}")
        size = file_path.stat().st_size
        if size > MAX_READ_SIZE:
            raise ValueError(f"File too large to read ({size} bytes, limit {MAX_READ_SIZE})")
        content = file_path.read_text(encoding="utf-8")
        logger.info(f"Successfully read file: {file_path} ({size} bytes)")
        return content

    async def write_text(self, path: str, content: str) -> int:
        file_path = self._resolve(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        data = content.encode("utf-8")
        if len(data) > MAX_READ_SIZE:
            raise ValueError(f"Content too large to write ({len(data)} bytes, limit {MAX_READ_SIZE})")
        file_path.write_bytes(data)
        logger.info(f"Successfully wrote file: {file_path} ({len(data)} bytes)")
        return len(data)

    async def read_image(self, path: str) -> str:
        file_path = self._resolve(path)
        if not file_path.is_file():
            raise FileNotFoundError(f"Image not found: {file_path}")
        mime_type = mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"
        if not mime_type.startswith("image/"):
            raise ValueError(f"Not an image file: {file_path}")
        encoded = base64.b64encode(file_path.read_bytes()).decode("ascii")
        return f"data:{mime_type};base64,{encoded}"


class LocalShell:
    """``Shell`` backed by ``asyncio.create_subprocess_shell``."""

    async def run(self, command: str, *, cwd: Optional[str] = None, timeout_ms: int = 30_000) -> ShellResult:
        workdir = os.path.expanduser(cwd) if cwd else os.getcwd()
        if not os.path.isdir(workdir):
            raise NotADirectoryError(f"Working directory not found: {workdir}")

        timeout = timeout_ms / 1000
        start_time = time.time()
        logger.info(f"Executing command: {command} (cwd={workdir})")

        process = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=workdir,
        )
        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise TimeoutError(f"Command execution timeout after {timeout:g} seconds")

        stdout = stdout_bytes.decode("utf-8", errors="replace") if stdout_bytes else ""
        stderr = stderr_bytes.decode("utf-8", errors="replace") if stderr_bytes else ""
        exit_code = process.returncode if process.returncode is not None else -1
        duration = time.time() - start_time
        logger.info(
            f"Command completed with exit code {exit_code} "
            f"(duration: {duration:.2f}s, stdout: {len(stdout)} chars, stderr: {len(stderr)} chars)"
        )
        return ShellResult(exit_code=exit_code, stdout=stdout, stderr=stderr)
