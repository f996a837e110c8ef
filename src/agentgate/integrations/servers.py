"""
Bridge to external tool servers speaking the Model Context Protocol.

Each configured server is screened by the ServerLaunchValidator before it is
spawned. A failing configuration is reported to the user and never started;
one that only raises warnings is logged and started. Connected servers are
asked for their tool catalogs, and every remote tool is wrapped in the same
Tool contract the built-in tools use, so the parser, permission gate and loop
treat them uniformly.

Usage:
    bridge = ExternalToolBridge(ServerLaunchValidator(), notify=show_warning)
    await bridge.connect(ToolServerConfig(name="docs", command="npx", args=["docs-server"]))
    registry.register_all(await bridge.get_all_tools())
    ...
    await bridge.dispose()
"""

from __future__ import annotations

import asyncio
import json
import os
from collections.abc import Awaitable, Callable, Iterable, Mapping
from contextlib import AsyncExitStack
from dataclasses import dataclass
from typing import Any

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client

from agentgate.core.config import ToolServerConfig
from agentgate.core.console import get_logger
from agentgate.core.result import SecurityError, ToolExecutionError
from agentgate.core.security.command import sanitize_environment
from agentgate.core.security.models import ServerValidationResult
from agentgate.core.security.server import ServerLaunchValidator, warning_message
from agentgate.tools.base import Tool

logger = get_logger(__name__)

Connector = Callable[[ToolServerConfig, AsyncExitStack], Awaitable[Any]]
"""Opens a client session for ``config`` inside ``stack`` and returns it initialized."""


async def open_stdio_session(config: ToolServerConfig, stack: AsyncExitStack) -> Any:
    """Spawn the server over stdio and return an initialized ClientSession."""
    env = {**sanitize_environment(os.environ), **config.env}
    params = StdioServerParameters(command=config.command, args=list(config.args), env=env)
    read, write = await stack.enter_async_context(stdio_client(params))
    session = await stack.enter_async_context(ClientSession(read, write))
    await session.initialize()
    return session


def render_call_result(result: Any) -> str:
    """Join the text parts of a tool call result."""
    chunks = [
        str(text)
        for item in (getattr(result, "content", None) or [])
        if (text := getattr(item, "text", None)) is not None
    ]
    if chunks:
        return "\n".join(chunks)
    structured = getattr(result, "structuredContent", None)
    if structured is not None:
        return json.dumps(structured, ensure_ascii=True)
    return ""


@dataclass
class ServerConnection:
    name: str
    session: Any
    stack: AsyncExitStack


class ExternalTool(Tool):
    """A remote tool exposed through the local Tool contract."""

    def __init__(
        self,
        name: str,
        description: str,
        input_schema: Mapping[str, Any] | None,
        session: Any,
        server_name: str,
    ) -> None:
        self.name = name
        self.description = description
        self.input_schema = dict(input_schema or {})
        self.session = session
        self.server_name = server_name
        self.usage_description = self._build_usage()

    def _build_usage(self) -> str:
        schema = json.dumps(self.input_schema, indent=2) if self.input_schema else "{}"
        return (
            f"{self.description or 'External tool'} (server: {self.server_name})\n"
            f"Usage: <{self.name}>{{JSON arguments}}</{self.name}>\n"
            f"Arguments schema:\n{schema}"
        )

    async def execute(self, args: Mapping[str, Any], content: str | None = None) -> str:
        arguments: dict[str, Any] = dict(args)
        if content and content.strip().startswith("{"):
            try:
                parsed = json.loads(content)
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, dict):
                arguments.update(parsed)
        elif content:
            arguments.setdefault("input", content)

        try:
            result = await self.session.call_tool(self.name, arguments=arguments)
        except Exception as exc:
            raise ToolExecutionError(
                f"External tool call failed: {exc}",
                context={"tool": self.name, "server": self.server_name},
            ) from exc

        text = render_call_result(result)
        if getattr(result, "isError", False):
            raise ToolExecutionError(
                f"External tool reported an error: {text or 'no details'}",
                context={"tool": self.name, "server": self.server_name},
            )
        return text


class ExternalToolBridge:
    """Owns the connections to external tool servers for one application context."""

    def __init__(
        self,
        validator: ServerLaunchValidator | None = None,
        *,
        notify: Callable[[str], None] | None = None,
        connector: Connector = open_stdio_session,
    ) -> None:
        self.validator = validator or ServerLaunchValidator()
        self._notify = notify
        self._connector = connector
        self._connections: list[ServerConnection] = []

    @property
    def client_count(self) -> int:
        return len(self._connections)

    def validate_config(self, config: ToolServerConfig) -> ServerValidationResult:
        return self.validator.validate(config)

    async def connect(self, config: ToolServerConfig) -> None:
        result = self.validate_config(config)
        if not result.valid:
            first_error = result.errors[0] if result.errors else "validation failed"
            logger.warning("audit.servers.reject %s", warning_message(config.name, result))
            if self._notify is not None:
                self._notify(f'Tool server "{config.name}": {first_error}')
            raise SecurityError(
                f"Tool server failed security validation: {first_error}",
                context={"server": config.name},
            )
        if result.warnings:
            logger.warning("%s", warning_message(config.name, result))

        stack = AsyncExitStack()
        try:
            session = await self._connector(config, stack)
        except asyncio.CancelledError:
            await stack.aclose()
            raise
        except Exception as exc:
            await stack.aclose()
            raise ToolExecutionError(
                f"Could not connect to tool server: {exc}", context={"server": config.name}
            ) from exc

        self._connections.append(ServerConnection(name=config.name, session=session, stack=stack))
        logger.info("Connected to tool server %s (%s)", config.name, config.command)

    async def connect_all(self, configs: Iterable[ToolServerConfig]) -> list[str]:
        """Connect every server, logging failures; returns the names that connected."""
        connected: list[str] = []
        for config in configs:
            try:
                await self.connect(config)
            except (SecurityError, ToolExecutionError) as exc:
                logger.error("Skipping tool server %s: %s", config.name, exc)
                continue
            connected.append(config.name)
        return connected

    async def get_all_tools(self) -> list[ExternalTool]:
        tools: list[ExternalTool] = []
        for connection in self._connections:
            try:
                listing = await connection.session.list_tools()
            except Exception as exc:
                logger.error("Failed to list tools from %s: %s", connection.name, exc)
                continue
            for remote in listing.tools:
                tools.append(
                    ExternalTool(
                        name=remote.name,
                        description=getattr(remote, "description", None) or "",
                        input_schema=getattr(remote, "inputSchema", None),
                        session=connection.session,
                        server_name=connection.name,
                    )
                )
        return tools

    async def dispose(self) -> None:
        connections, self._connections = self._connections, []
        for connection in reversed(connections):
            try:
                await connection.stack.aclose()
            except Exception as exc:
                logger.debug("Ignoring error while closing %s: %s", connection.name, exc)


__all__ = [
    "Connector",
    "ExternalTool",
    "ExternalToolBridge",
    "ServerConnection",
    "open_stdio_session",
    "render_call_result",
]
