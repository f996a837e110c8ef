"""File tools: read_file, write_file and list_files.

Relative paths are taken relative to the workspace root. Every path goes
through the PathValidator before the filesystem is touched, and reads and
writes are size-checked against the same validator's limit.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from agentgate.core.console import get_logger
from agentgate.core.result import SecurityError, ToolExecutionError
from agentgate.core.security.models import FileOperation
from agentgate.core.security.path import PathValidator
from agentgate.tools.base import Confirmer, Tool, ask, require_arg

logger = get_logger(__name__)

_VERBS = {
    FileOperation.READ: "read",
    FileOperation.WRITE: "write",
    FileOperation.LIST: "list",
}


class _FileTool(Tool):
    operation: FileOperation

    def __init__(
        self,
        workspace_root: Path,
        validator: PathValidator,
        *,
        confirm: Confirmer | None = None,
    ) -> None:
        self.workspace_root = workspace_root
        self.validator = validator
        self.confirm = confirm

    def _absolute(self, raw: str) -> Path:
        candidate = Path(os.path.expanduser(raw))
        if not candidate.is_absolute():
            candidate = self.workspace_root / candidate
        return candidate

    async def _checked_path(self, raw: str) -> Path:
        verb = _VERBS[self.operation]
        result = self.validator.validate_path(self._absolute(raw), self.workspace_root, self.operation)
        if not result.allowed:
            raise SecurityError(f"File {verb} blocked: {result.reason}")
        if result.requires_confirmation:
            approved = await ask(self.confirm, f"Allow {verb} access to {result.normalized_path}?")
            if not approved:
                logger.info("audit.fs.declined op=%s path=%r", verb, result.normalized_path)
                raise SecurityError(f"File {verb} cancelled: {result.reason}")
        return Path(result.normalized_path or raw)


class ReadFileTool(_FileTool):
    name = "read_file"
    usage_description = '<read_file path="path/to/file" />\nReturns the file contents.'
    operation = FileOperation.READ

    async def execute(self, args: Mapping[str, Any], content: str | None = None) -> str:
        path = await self._checked_path(require_arg(args, "path"))
        try:
            size = (await asyncio.to_thread(path.stat)).st_size
        except FileNotFoundError as exc:
            raise ToolExecutionError(f"File not found: {path}") from exc
        size_check = self.validator.validate_file_size(size)
        if not size_check.allowed:
            raise SecurityError(f"File read blocked: {size_check.reason}")
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8", errors="replace")
        except IsADirectoryError as exc:
            raise ToolExecutionError(f"Path is a directory: {path}") from exc


class WriteFileTool(_FileTool):
    name = "write_file"
    usage_description = (
        '<write_file path="path/to/file">\nfile content here\n</write_file>\n'
        "Creates or overwrites the file, creating parent directories."
    )
    operation = FileOperation.WRITE

    async def execute(self, args: Mapping[str, Any], content: str | None = None) -> str:
        raw_path = require_arg(args, "path")
        text = content if content is not None else str(args.get("content", ""))
        path = await self._checked_path(raw_path)
        size_check = self.validator.validate_file_size(len(text.encode("utf-8")))
        if not size_check.allowed:
            raise SecurityError(f"File write blocked: {size_check.reason}")

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")

        await asyncio.to_thread(_write)
        logger.info("audit.fs.write path=%r bytes=%d", str(path), size_check.file_size)
        return "File written successfully."


class ListFilesTool(_FileTool):
    name = "list_files"
    usage_description = '<list_files path="path/to/directory" />\nLists directory entries.'
    operation = FileOperation.LIST

    async def execute(self, args: Mapping[str, Any], content: str | None = None) -> str:
        path = await self._checked_path(require_arg(args, "path"))

        def _list() -> list[str]:
            entries = sorted(path.iterdir(), key=lambda entry: entry.name)
            return [f"{'DIR' if entry.is_dir() else 'FILE'}: {entry.name}" for entry in entries]

        try:
            lines = await asyncio.to_thread(_list)
        except FileNotFoundError as exc:
            raise ToolExecutionError(f"Directory not found: {path}") from exc
        except NotADirectoryError as exc:
            raise ToolExecutionError(f"Not a directory: {path}") from exc
        return "\n".join(lines)


__all__ = ["ListFilesTool", "ReadFileTool", "WriteFileTool"]
