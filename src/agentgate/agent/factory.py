"""Assembly of an application context and its agent loop.

The context owns every stateful collaborator (the command validator and its
rate limiter, the command session, the browser, tool server connections), so
two contexts never share state.

Usage:
    config, _ = load_config()
    context = build_app_context(config, confirm=ask_user)
    await context.connect_servers()
    loop = build_agent_loop(context, provider, on_event=post_to_host)
    ...
    await context.dispose()
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from agentgate.agent.loop import AgentLoop, EventSink, HistorySink
from agentgate.agent.permissions import PermissionSettings
from agentgate.agent.provider import ChatProvider
from agentgate.core.config import AppConfig
from agentgate.core.console import get_logger
from agentgate.core.execution import ProcessRunner
from agentgate.core.security.command import CommandValidator
from agentgate.core.security.path import PathValidator
from agentgate.core.security.server import ServerLaunchValidator
from agentgate.core.security.url import URLValidator
from agentgate.integrations.servers import Connector, ExternalToolBridge, open_stdio_session
from agentgate.tools.base import Confirmer
from agentgate.tools.browser import BrowserTool, Launcher, start_playwright
from agentgate.tools.filesystem import ListFilesTool, ReadFileTool, WriteFileTool
from agentgate.tools.registry import ToolRegistry
from agentgate.tools.terminal import CommandSession, ExecuteCommandTool

logger = get_logger(__name__)


@dataclass
class AppContext:
    config: AppConfig
    workspace_root: Path
    command_validator: CommandValidator
    path_validator: PathValidator
    url_validator: URLValidator
    command_session: CommandSession
    registry: ToolRegistry
    bridge: ExternalToolBridge

    async def connect_servers(self) -> list[str]:
        """Connect configured tool servers and register their tools."""
        connected = await self.bridge.connect_all(self.config.servers)
        added = self.registry.register_all(await self.bridge.get_all_tools())
        logger.info("Registered %d external tools from %d servers", added, len(connected))
        return connected

    async def dispose(self) -> None:
        await self.registry.dispose()
        await self.bridge.dispose()


def build_app_context(
    config: AppConfig,
    *,
    confirm: Confirmer | None = None,
    notify: Callable[[str], None] | None = None,
    runner: ProcessRunner | None = None,
    launcher: Launcher = start_playwright,
    connector: Connector = open_stdio_session,
) -> AppContext:
    workspace_root = config.workspace_root
    command_validator = CommandValidator(
        config.command.rate_limit_calls, config.command.rate_limit_window
    )
    path_validator = PathValidator(
        max_file_size=config.paths.max_file_size,
        allow_out_of_workspace=config.paths.allow_out_of_workspace,
        custom_blocklist=config.paths.custom_blocklist,
    )
    url_validator = URLValidator(
        allow_internal_networks=config.urls.allow_internal_networks,
        blocklist=config.urls.blocklist,
        allowlist=config.urls.allowlist,
        default_timeout_ms=config.urls.timeout_ms,
        require_confirmation_for_external=config.urls.require_confirmation_for_external,
        allow_no_sandbox=config.urls.allow_no_sandbox,
    )
    session = CommandSession(
        workspace_root,
        command_validator,
        confirm=confirm,
        runner=runner,
        shell=config.command.shell,
        timeout=config.command.timeout,
    )

    registry = ToolRegistry(
        [
            WriteFileTool(workspace_root, path_validator, confirm=confirm),
            ReadFileTool(workspace_root, path_validator, confirm=confirm),
            ExecuteCommandTool(session),
            ListFilesTool(workspace_root, path_validator, confirm=confirm),
            BrowserTool(
                url_validator, confirm=confirm, launcher=launcher, headless=config.urls.headless
            ),
        ]
    )
    bridge = ExternalToolBridge(
        ServerLaunchValidator(
            allowlist=config.server_policy.allowlist,
            blocklist=config.server_policy.blocklist,
            require_allowlist=config.server_policy.require_allowlist,
        ),
        notify=notify,
        connector=connector,
    )
    return AppContext(
        config=config,
        workspace_root=workspace_root,
        command_validator=command_validator,
        path_validator=path_validator,
        url_validator=url_validator,
        command_session=session,
        registry=registry,
        bridge=bridge,
    )


def build_agent_loop(
    context: AppContext,
    provider: ChatProvider,
    *,
    on_event: EventSink | None = None,
    on_history: HistorySink | None = None,
) -> AgentLoop:
    agent = context.config.agent
    return AgentLoop(
        provider,
        context.registry,
        workspace_root=context.workspace_root,
        settings=PermissionSettings(
            auto_read=agent.auto_read,
            auto_write=agent.auto_write,
            auto_execute=agent.auto_execute,
        ),
        max_tool_steps=agent.max_tool_steps,
        token_limit=agent.token_limit,
        on_event=on_event,
        on_history=on_history,
        custom_instructions=agent.custom_instructions,
    )


__all__ = ["AppContext", "build_agent_loop", "build_app_context"]
