"""Built-in tools and the tool registry."""

from __future__ import annotations

from agentgate.tools.base import Confirmer, Tool
from agentgate.tools.browser import BrowserTool
from agentgate.tools.filesystem import ListFilesTool, ReadFileTool, WriteFileTool
from agentgate.tools.registry import BUILTIN_TOOL_NAMES, ToolRegistry
from agentgate.tools.terminal import CommandSession, ExecuteCommandTool

__all__ = [
    "BUILTIN_TOOL_NAMES",
    "BrowserTool",
    "CommandSession",
    "Confirmer",
    "ExecuteCommandTool",
    "ListFilesTool",
    "ReadFileTool",
    "Tool",
    "ToolRegistry",
    "WriteFileTool",
]
