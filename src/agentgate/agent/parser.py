"""Extract a tool call from model output.

The model requests a tool by embedding an XML-like tag in its reply. Built-in
tools have fixed shapes::

    <write_file path="P">CONTENT</write_file>
    <read_file path="P" />
    <execute_command>CONTENT</execute_command>
    <list_files path="P" />
    <browser_action action="A" url="U" selector="S" text="T" />

Any other registered tool is called as ``<name>CONTENT</name>`` (a JSON object
as content becomes the arguments) or ``<name attr="v" />``.

Only one call is extracted per response. Built-in tags are tried first in
the order above, then registered external tools in registration order.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Iterable
from typing import Any

from agentgate.agent.models import ToolCall

WRITE_FILE_PATTERN = re.compile(r'<write_file\s+path="([^"]+)">([\s\S]*?)</write_file>')
READ_FILE_PATTERN = re.compile(r'<read_file\s+path="([^"]+)"\s*/>')
EXECUTE_COMMAND_PATTERN = re.compile(r"<execute_command>([\s\S]*?)</execute_command>")
LIST_FILES_PATTERN = re.compile(r'<list_files\s+path="([^"]+)"\s*/>')
BROWSER_ACTION_PATTERN = re.compile(r"<browser_action\s+([\s\S]*?)\s*/>")
ATTRIBUTE_PATTERN = re.compile(r'([\w-]+)="([^"]*)"')

BROWSER_ATTRIBUTES = ("action", "url", "selector", "text")


def parse_attributes(text: str) -> dict[str, str]:
    return {key: value for key, value in ATTRIBUTE_PATTERN.findall(text)}


def _parse_builtin(text: str) -> ToolCall | None:
    if match := WRITE_FILE_PATTERN.search(text):
        return ToolCall(tool="write_file", args={"path": match.group(1)}, content=match.group(2))
    if match := READ_FILE_PATTERN.search(text):
        return ToolCall(tool="read_file", args={"path": match.group(1)})
    if match := EXECUTE_COMMAND_PATTERN.search(text):
        return ToolCall(tool="execute_command", content=match.group(1))
    if match := LIST_FILES_PATTERN.search(text):
        return ToolCall(tool="list_files", args={"path": match.group(1)})
    if match := BROWSER_ACTION_PATTERN.search(text):
        attributes = parse_attributes(match.group(1))
        args = {key: attributes[key] for key in BROWSER_ATTRIBUTES if key in attributes}
        return ToolCall(tool="browser_action", args=args)
    return None


class ToolCallParser:
    """Parser bound to a source of external tool names.

    Args:
        external_names: Callable returning the registered non-built-in tool
            names in registration order. It is consulted on every parse so
            tools discovered later are recognised.
    """

    def __init__(self, external_names: Callable[[], Iterable[str]] | None = None) -> None:
        self._external_names = external_names or (lambda: ())
        self._patterns: dict[str, tuple[re.Pattern[str], re.Pattern[str]]] = {}

    def _patterns_for(self, name: str) -> tuple[re.Pattern[str], re.Pattern[str]]:
        cached = self._patterns.get(name)
        if cached is None:
            tag = re.escape(name)
            paired = re.compile(rf"<{tag}(\s[^>]*?)?(?<!/)>([\s\S]*?)</{tag}>")
            self_closing = re.compile(rf"<{tag}(\s[^>]*?)?\s*/>")
            cached = self._patterns[name] = (paired, self_closing)
        return cached

    def _parse_external(self, name: str, text: str) -> ToolCall | None:
        paired, self_closing = self._patterns_for(name)
        candidates = [m for m in (paired.search(text), self_closing.search(text)) if m is not None]
        if not candidates:
            return None
        match = min(candidates, key=lambda m: m.start())

        args: dict[str, Any] = parse_attributes(match.group(1) or "")
        if match.re is self_closing:
            return ToolCall(tool=name, args=args)

        content: str | None = match.group(2)
        stripped = content.strip()
        if stripped.startswith("{"):
            try:
                decoded = json.loads(stripped)
            except json.JSONDecodeError:
                decoded = None
            if isinstance(decoded, dict):
                args.update(decoded)
                content = None
        return ToolCall(tool=name, args=args, content=content)

    def parse(self, text: str) -> ToolCall | None:
        if not text:
            return None
        call = _parse_builtin(text)
        if call is not None:
            return call
        for name in self._external_names():
            call = self._parse_external(name, text)
            if call is not None:
                return call
        return None


__all__ = [
    "BROWSER_ACTION_PATTERN",
    "EXECUTE_COMMAND_PATTERN",
    "LIST_FILES_PATTERN",
    "READ_FILE_PATTERN",
    "WRITE_FILE_PATTERN",
    "ToolCallParser",
    "parse_attributes",
]
