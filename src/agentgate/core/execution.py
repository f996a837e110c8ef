"""Subprocess execution for the terminal tool.

Provides:
- CommandResult: captured output of one process
- ProcessRunner protocol and LocalRunner implementation
- default_shell_argv: the shell invocation used on this platform
"""

from __future__ import annotations

import asyncio
import shutil
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from agentgate.core.console import get_logger
from agentgate.core.result import Err, Ok, Result, ToolExecutionError

logger = get_logger(__name__)


@dataclass(slots=True)
class CommandResult:
    """Exit status and decoded output of one finished process."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        return self.stdout + self.stderr


class ProcessRunner(Protocol):
    """Protocol for running a command line to completion."""

    async def run(
        self,
        argv: list[str],
        cwd: Path,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> Result[CommandResult, ToolExecutionError]: ...


def default_shell_argv(command: str, shell: str | None = None) -> list[str]:
    """Wrap ``command`` for the configured shell (bash, or powershell on Windows)."""
    if shell:
        name = Path(shell).name.lower()
        flag = "-Command" if name.startswith(("powershell", "pwsh")) else "-c"
        return [shell, flag, command]
    if sys.platform == "win32":
        return ["powershell", "-NoProfile", "-Command", command]
    return [shutil.which("bash") or "/bin/sh", "-c", command]


class LocalRunner:
    """Spawn processes on this machine with asyncio, killing them on timeout."""

    async def run(
        self,
        argv: list[str],
        cwd: Path,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> Result[CommandResult, ToolExecutionError]:
        logger.debug("Spawning %s in %s", argv[0], cwd)
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                stdin=asyncio.subprocess.DEVNULL,
                env=dict(env) if env is not None else None,
            )
        except FileNotFoundError as exc:
            return Err(ToolExecutionError("Command not found", context={"error": str(exc)}))
        except OSError as exc:
            return Err(ToolExecutionError("Failed to start command", context={"error": str(exc)}))

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(proc.communicate(), timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            return Err(ToolExecutionError(f"Command timed out after {timeout:g} seconds"))
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.kill()
            raise

        return Ok(
            CommandResult(
                returncode=proc.returncode or 0,
                stdout=stdout_bytes.decode(errors="replace"),
                stderr=stderr_bytes.decode(errors="replace"),
            )
        )


__all__ = ["CommandResult", "LocalRunner", "ProcessRunner", "default_shell_argv"]
