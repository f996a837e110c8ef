"""Tests for tools/registry.py."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pytest

from agentgate.tools.base import Tool
from agentgate.tools.registry import ToolRegistry


class NamedTool(Tool):
    def __init__(self, name: str, usage: str = "usage", *, fail_dispose: bool = False) -> None:
        self.name = name
        self.usage_description = usage
        self.fail_dispose = fail_dispose
        self.disposed = False

    async def execute(self, args: Mapping[str, Any], content: str | None = None) -> str:
        return self.usage_description

    async def dispose(self) -> None:
        self.disposed = True
        if self.fail_dispose:
            raise RuntimeError("dispose failed")


class TestRegistration:
    def test_preserves_order(self) -> None:
        registry = ToolRegistry([NamedTool("b"), NamedTool("a"), NamedTool("c")])
        assert registry.names() == ["b", "a", "c"]
        assert len(registry) == 3
        assert "a" in registry
        assert [tool.name for tool in registry] == ["b", "a", "c"]

    def test_first_registration_wins(self, caplog: pytest.LogCaptureFixture) -> None:
        first = NamedTool("read_file", "first")
        registry = ToolRegistry([first])
        assert registry.register(NamedTool("read_file", "second")) is False
        assert registry.get("read_file") is first
        assert "Duplicate tool name 'read_file'" in caplog.text

    def test_register_all_counts_new_tools(self) -> None:
        registry = ToolRegistry([NamedTool("x")])
        assert registry.register_all([NamedTool("x"), NamedTool("y"), NamedTool("z")]) == 2

    def test_get_unknown(self) -> None:
        assert ToolRegistry().get("missing") is None

    def test_external_names_exclude_builtins(self) -> None:
        registry = ToolRegistry(
            [NamedTool("write_file"), NamedTool("search"), NamedTool("browser_action"), NamedTool("fetch")]
        )
        assert registry.external_names() == ["search", "fetch"]

    def test_describe_all(self) -> None:
        registry = ToolRegistry([NamedTool("one", "<one />")])
        assert registry.describe_all() == ["one:\n<one />"]


class TestDispose:
    @pytest.mark.asyncio
    async def test_disposes_every_tool_even_after_failure(self) -> None:
        tools = [NamedTool("a", fail_dispose=True), NamedTool("b")]
        registry = ToolRegistry(tools)
        await registry.dispose()
        assert all(tool.disposed for tool in tools)
