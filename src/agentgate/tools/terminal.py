"""Shell command execution: the command session and the execute_command tool.

A CommandSession owns the CommandValidator (and therefore its rate limiter)
for one application context. Commands are validated, confirmed when risky,
and run through the configured shell with credential-looking environment
variables removed.

Usage:
    session = CommandSession(workspace_root, CommandValidator(), confirm=ask_user)
    output = await session.execute_command("git status")
"""

from __future__ import annotations

import os
from collections import deque
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from agentgate.core.console import get_logger
from agentgate.core.execution import LocalRunner, ProcessRunner, default_shell_argv
from agentgate.core.result import Err, Ok
from agentgate.core.security.command import CommandValidator
from agentgate.tools.base import Confirmer, Tool, ask

logger = get_logger(__name__)

HISTORY_LIMIT = 100


class CommandSession:
    """Validated shell access rooted at the workspace."""

    def __init__(
        self,
        workspace_root: Path,
        validator: CommandValidator,
        *,
        confirm: Confirmer | None = None,
        runner: ProcessRunner | None = None,
        shell: str | None = None,
        timeout: float = 120.0,
        base_env: Mapping[str, str] | None = None,
    ) -> None:
        self.workspace_root = workspace_root
        self.validator = validator
        self.confirm = confirm
        self.runner: ProcessRunner = runner or LocalRunner()
        self.shell = shell
        self.timeout = timeout
        self._base_env = base_env
        self.history: deque[str] = deque(maxlen=HISTORY_LIMIT)

    async def execute_command(self, command: str, *, skip_confirmation: bool = False) -> str:
        result = self.validator.validate(command)
        if not result.allowed:
            return f"Command blocked: {result.reason}"

        sanitized = result.sanitized_command or command.strip()
        if result.requires_confirmation and not skip_confirmation:
            approved = await ask(self.confirm, f"Run potentially dangerous command?\n{sanitized}")
            if not approved:
                logger.info("audit.shell.declined command=%r", sanitized)
                return "Command cancelled by user."

        env = self.validator.sanitize_environment(
            self._base_env if self._base_env is not None else os.environ
        )
        logger.info("audit.shell.run cwd=%s command=%r", self.workspace_root, sanitized)
        self.history.append(sanitized)

        outcome = await self.runner.run(
            default_shell_argv(sanitized, self.shell),
            cwd=self.workspace_root,
            env=env,
            timeout=self.timeout,
        )
        match outcome:
            case Ok(completed):
                output = completed.output
                if completed.returncode != 0:
                    output = f"{output}\n[exit code {completed.returncode}]".lstrip("\n")
                return output
            case Err(error):
                raise error

    async def dispose(self) -> None:
        self.history.clear()


class ExecuteCommandTool(Tool):
    name = "execute_command"
    usage_description = (
        "<execute_command>shell command</execute_command>\n"
        "Runs the command in the workspace and returns stdout and stderr."
    )

    def __init__(self, session: CommandSession) -> None:
        self.session = session

    async def execute(self, args: Mapping[str, Any], content: str | None = None) -> str:
        command = content if content is not None else str(args.get("command", ""))
        return await self.session.execute_command(command)

    async def dispose(self) -> None:
        await self.session.dispose()


__all__ = ["HISTORY_LIMIT", "CommandSession", "ExecuteCommandTool"]
