"""Name-keyed registry of the tools a session can call.

The registry preserves registration order, which is also the order used to
describe tools in the system prompt and to match external tool tags. The
first tool registered under a name wins; later duplicates are ignored with a
warning so an external server cannot shadow a built-in tool.

Usage:
    from agentgate.tools.registry import ToolRegistry

    registry = ToolRegistry()
    registry.register(ReadFileTool(root, path_validator))
    tool = registry.get("read_file")
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from agentgate.core.console import get_logger
from agentgate.tools.base import Tool

logger = get_logger(__name__)

BUILTIN_TOOL_NAMES: tuple[str, ...] = (
    "write_file",
    "read_file",
    "execute_command",
    "list_files",
    "browser_action",
)


class ToolRegistry:
    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: Tool) -> bool:
        """Add ``tool``; returns False when the name was already taken."""
        if tool.name in self._tools:
            logger.warning("Duplicate tool name '%s' ignored; keeping the first registration", tool.name)
            return False
        self._tools[tool.name] = tool
        return True

    def register_all(self, tools: Iterable[Tool]) -> int:
        return sum(1 for tool in tools if self.register(tool))

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def external_names(self) -> list[str]:
        """Registered names that are not built-in tools, in registration order."""
        return [name for name in self._tools if name not in BUILTIN_TOOL_NAMES]

    def describe_all(self) -> list[str]:
        return [tool.describe() for tool in self._tools.values()]

    async def dispose(self) -> None:
        for tool in self._tools.values():
            try:
                await tool.dispose()
            except Exception as exc:
                logger.warning("Failed to dispose tool %s: %s", tool.name, exc)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)


__all__ = ["BUILTIN_TOOL_NAMES", "ToolRegistry"]
