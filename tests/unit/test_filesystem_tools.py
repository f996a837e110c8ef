"""Tests for tools/filesystem.py - read_file, write_file and list_files."""

from __future__ import annotations

from pathlib import Path

import pytest

from agentgate.core.result import SecurityError, ToolExecutionError
from agentgate.core.security.path import PathValidator
from agentgate.tools.filesystem import ListFilesTool, ReadFileTool, WriteFileTool


class Confirmations:
    def __init__(self, answer: bool) -> None:
        self.answer = answer
        self.questions: list[str] = []

    async def __call__(self, question: str) -> bool:
        self.questions.append(question)
        return self.answer


@pytest.fixture
def validator() -> PathValidator:
    return PathValidator(max_file_size=1024)


# ---------------------------------------------------------------------------
# read_file
# ---------------------------------------------------------------------------


class TestReadFile:
    @pytest.mark.asyncio
    async def test_reads_relative_path(self, workspace: Path, validator: PathValidator) -> None:
        (workspace / "notes.txt").write_text("hello\n", encoding="utf-8")
        tool = ReadFileTool(workspace, validator)
        assert await tool.execute({"path": "notes.txt"}) == "hello\n"

    @pytest.mark.asyncio
    async def test_reads_absolute_path(self, workspace: Path, validator: PathValidator) -> None:
        target = workspace / "a.md"
        target.write_text("# A", encoding="utf-8")
        assert await ReadFileTool(workspace, validator).execute({"path": str(target)}) == "# A"

    @pytest.mark.asyncio
    async def test_invalid_utf8_is_replaced(self, workspace: Path, validator: PathValidator) -> None:
        (workspace / "bin.dat").write_bytes(b"ok\xff")
        text = await ReadFileTool(workspace, validator).execute({"path": "bin.dat"})
        assert text.startswith("ok")

    @pytest.mark.asyncio
    async def test_missing_file(self, workspace: Path, validator: PathValidator) -> None:
        with pytest.raises(ToolExecutionError, match="File not found"):
            await ReadFileTool(workspace, validator).execute({"path": "nope.txt"})

    @pytest.mark.asyncio
    async def test_missing_argument(self, workspace: Path, validator: PathValidator) -> None:
        with pytest.raises(ToolExecutionError, match="Missing path argument"):
            await ReadFileTool(workspace, validator).execute({})

    @pytest.mark.asyncio
    async def test_outside_workspace_blocked(self, workspace: Path, validator: PathValidator) -> None:
        outside = workspace.parent / "outside.txt"
        outside.write_text("secret", encoding="utf-8")
        with pytest.raises(SecurityError, match="File read blocked: Path is outside the workspace"):
            await ReadFileTool(workspace, validator).execute({"path": "../outside.txt"})

    @pytest.mark.asyncio
    async def test_sensitive_blocked(self, workspace: Path, validator: PathValidator) -> None:
        with pytest.raises(SecurityError, match="sensitive directory"):
            await ReadFileTool(workspace, validator).execute({"path": "/etc/passwd"})

    @pytest.mark.asyncio
    async def test_oversized_file_blocked(self, workspace: Path, validator: PathValidator) -> None:
        (workspace / "big.log").write_text("x" * 2048, encoding="utf-8")
        with pytest.raises(SecurityError, match=r"File read blocked: File size \(2 KB\) exceeds"):
            await ReadFileTool(workspace, validator).execute({"path": "big.log"})

    @pytest.mark.asyncio
    async def test_out_of_workspace_confirmed(self, workspace: Path) -> None:
        outside = workspace.parent / "shared.txt"
        outside.write_text("shared", encoding="utf-8")
        confirm = Confirmations(True)
        tool = ReadFileTool(workspace, PathValidator(allow_out_of_workspace=True), confirm=confirm)
        assert await tool.execute({"path": str(outside)}) == "shared"
        assert confirm.questions == [f"Allow read access to {outside}?"]

    @pytest.mark.asyncio
    async def test_out_of_workspace_declined(self, workspace: Path) -> None:
        outside = workspace.parent / "shared.txt"
        outside.write_text("shared", encoding="utf-8")
        tool = ReadFileTool(
            workspace, PathValidator(allow_out_of_workspace=True), confirm=Confirmations(False)
        )
        with pytest.raises(SecurityError, match="File read cancelled"):
            await tool.execute({"path": str(outside)})

    @pytest.mark.asyncio
    async def test_out_of_workspace_without_handler_is_declined(self, workspace: Path) -> None:
        outside = workspace.parent / "shared.txt"
        outside.write_text("shared", encoding="utf-8")
        tool = ReadFileTool(workspace, PathValidator(allow_out_of_workspace=True))
        with pytest.raises(SecurityError, match="File read cancelled"):
            await tool.execute({"path": str(outside)})


# ---------------------------------------------------------------------------
# write_file
# ---------------------------------------------------------------------------


class TestWriteFile:
    @pytest.mark.asyncio
    async def test_writes_and_creates_parents(self, workspace: Path, validator: PathValidator) -> None:
        tool = WriteFileTool(workspace, validator)
        result = await tool.execute({"path": "pkg/sub/mod.py"}, "x = 1\n")
        assert result == "File written successfully."
        assert (workspace / "pkg" / "sub" / "mod.py").read_text(encoding="utf-8") == "x = 1\n"

    @pytest.mark.asyncio
    async def test_overwrites(self, workspace: Path, validator: PathValidator) -> None:
        (workspace / "a.txt").write_text("old", encoding="utf-8")
        await WriteFileTool(workspace, validator).execute({"path": "a.txt"}, "new")
        assert (workspace / "a.txt").read_text(encoding="utf-8") == "new"

    @pytest.mark.asyncio
    async def test_content_argument_fallback(self, workspace: Path, validator: PathValidator) -> None:
        await WriteFileTool(workspace, validator).execute({"path": "b.txt", "content": "from args"})
        assert (workspace / "b.txt").read_text(encoding="utf-8") == "from args"

    @pytest.mark.asyncio
    async def test_empty_content(self, workspace: Path, validator: PathValidator) -> None:
        await WriteFileTool(workspace, validator).execute({"path": "empty.txt"}, "")
        assert (workspace / "empty.txt").read_text(encoding="utf-8") == ""

    @pytest.mark.asyncio
    async def test_oversized_content_blocked(self, workspace: Path, validator: PathValidator) -> None:
        with pytest.raises(SecurityError, match="File write blocked: File size"):
            await WriteFileTool(workspace, validator).execute({"path": "big.txt"}, "é" * 600)
        assert not (workspace / "big.txt").exists()

    @pytest.mark.asyncio
    async def test_outside_workspace_blocked(self, workspace: Path, validator: PathValidator) -> None:
        with pytest.raises(SecurityError, match="File write blocked"):
            await WriteFileTool(workspace, validator).execute({"path": "../escape.txt"}, "x")
        assert not (workspace.parent / "escape.txt").exists()


# ---------------------------------------------------------------------------
# list_files
# ---------------------------------------------------------------------------


class TestListFiles:
    @pytest.mark.asyncio
    async def test_lists_sorted_entries(self, workspace: Path, validator: PathValidator) -> None:
        (workspace / "src").mkdir()
        (workspace / "b.txt").write_text("", encoding="utf-8")
        (workspace / "a.txt").write_text("", encoding="utf-8")
        listing = await ListFilesTool(workspace, validator).execute({"path": "."})
        assert listing.splitlines() == ["FILE: a.txt", "FILE: b.txt", "DIR: src"]

    @pytest.mark.asyncio
    async def test_empty_directory(self, workspace: Path, validator: PathValidator) -> None:
        assert await ListFilesTool(workspace, validator).execute({"path": "."}) == ""

    @pytest.mark.asyncio
    async def test_missing_directory(self, workspace: Path, validator: PathValidator) -> None:
        with pytest.raises(ToolExecutionError, match="Directory not found"):
            await ListFilesTool(workspace, validator).execute({"path": "missing"})

    @pytest.mark.asyncio
    async def test_file_is_not_a_directory(self, workspace: Path, validator: PathValidator) -> None:
        (workspace / "f.txt").write_text("", encoding="utf-8")
        with pytest.raises(ToolExecutionError, match="Not a directory"):
            await ListFilesTool(workspace, validator).execute({"path": "f.txt"})

    @pytest.mark.asyncio
    async def test_sensitive_blocked(self, workspace: Path, validator: PathValidator) -> None:
        with pytest.raises(SecurityError, match="File list blocked"):
            await ListFilesTool(workspace, validator).execute({"path": "/etc"})
