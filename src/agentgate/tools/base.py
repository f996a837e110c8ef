"""Tool contract shared by built-in and external tools.

Every tool has a unique ``name``, a ``usage_description`` that is pasted into
the system prompt, and an async ``execute`` that returns the text the model
sees as tool output. Failures raise; the agent loop turns exceptions into a
continuation message.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from agentgate.core.result import ToolExecutionError

Confirmer = Callable[[str], Awaitable[bool]]
"""Asks the user a yes/no question; resolves to True when they approve."""


class Tool(ABC):
    name: str
    usage_description: str

    @abstractmethod
    async def execute(self, args: Mapping[str, Any], content: str | None = None) -> str: ...

    def describe(self) -> str:
        return f"{self.name}:\n{self.usage_description}"

    async def dispose(self) -> None:
        """Release held resources. Most tools hold none."""


def require_arg(args: Mapping[str, Any], key: str) -> str:
    value = args.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ToolExecutionError(f"Missing {key} argument")
    return str(value)


async def ask(confirm: Confirmer | None, question: str) -> bool:
    """Ask for confirmation; without a handler the answer is no."""
    if confirm is None:
        return False
    return bool(await confirm(question))


__all__ = ["Confirmer", "Tool", "ask", "require_arg"]
