"""
Launch-configuration checks for external tool servers.

A tool server is an arbitrary executable started on the user's machine, so
its command line goes through the same screening as shell commands before the
bridge spawns it: known-destructive executables are refused, unknown ones
produce a warning (or an error when the allowlist is mandatory), and
arguments are scanned for shell injection and browser-weakening flags.
Credential-looking environment variables only produce a warning because
servers legitimately need API keys.

Usage:
    from agentgate.core.security.server import ServerLaunchValidator

    result = ServerLaunchValidator().validate(server_config)
    if not result.valid:
        print(result.errors[0])
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Iterable

from agentgate.core.config import (
    DEFAULT_SERVER_ALLOWLIST,
    DEFAULT_SERVER_BLOCKLIST,
    ToolServerConfig,
)
from agentgate.core.security.command import detect_injection, is_sensitive_env_key
from agentgate.core.security.models import ServerValidationResult
from agentgate.core.security.url import DANGEROUS_BROWSER_ARGS

# Runtimes that are normally installed by the user and found on PATH at spawn time.
COMMON_RUNTIMES = frozenset({"node", "npx", "npm", "python", "python3", "uvx", "uv", "deno", "bun"})

DANGEROUS_SERVER_ARGS: tuple[str, ...] = (*DANGEROUS_BROWSER_ARGS, "--allow-all", "-A", "--unsafe")


def _executable_name(command: str) -> str:
    name = os.path.basename(command.strip())
    root, ext = os.path.splitext(name)
    if ext.lower() in {".exe", ".cmd", ".bat"}:
        name = root
    return name.lower()


class ServerLaunchValidator:
    """Screen a tool server's command, arguments and environment."""

    def __init__(
        self,
        *,
        allowlist: Iterable[str] = DEFAULT_SERVER_ALLOWLIST,
        blocklist: Iterable[str] = DEFAULT_SERVER_BLOCKLIST,
        require_allowlist: bool = False,
    ) -> None:
        self.allowlist = frozenset(entry.lower() for entry in allowlist)
        self.blocklist = frozenset(entry.lower() for entry in blocklist)
        self.require_allowlist = require_allowlist

    def validate(self, config: ToolServerConfig) -> ServerValidationResult:
        warnings: list[str] = []
        errors: list[str] = []

        command = config.command.strip()
        if not command:
            return ServerValidationResult(
                valid=False, in_allowlist=False, errors=("Server command is empty",)
            )

        name = _executable_name(command)
        if name in self.blocklist:
            return ServerValidationResult(
                valid=False,
                in_allowlist=False,
                executable=command,
                errors=(f"Command '{name}' is blocked for security reasons",),
            )

        in_allowlist = name in self.allowlist
        if not in_allowlist:
            message = f"Command '{name}' is not in the allowlist of known tool server runtimes"
            if self.require_allowlist:
                errors.append(message)
            else:
                warnings.append(message)

        injection = detect_injection(command)
        if injection is not None:
            errors.append(f"Server command contains shell syntax: {injection}")

        executable = shutil.which(command)
        if executable is None:
            if os.path.isabs(command) and os.path.isfile(command):
                executable = command
            elif name in COMMON_RUNTIMES:
                warnings.append(f"'{name}' was not found on PATH; assuming it is available at launch")
                executable = command
            else:
                errors.append(f"Executable not found: {command}")

        for arg in config.args:
            label = detect_injection(arg)
            if label is not None:
                errors.append(f"Argument {arg!r} contains shell syntax: {label}")
            if any(arg == flag or arg.startswith(flag + "=") for flag in DANGEROUS_SERVER_ARGS):
                warnings.append(f"Potentially dangerous argument: {arg}")

        for key in config.env:
            if is_sensitive_env_key(key):
                warnings.append(f"Environment variable {key} may contain a credential")

        return ServerValidationResult(
            valid=not errors,
            in_allowlist=in_allowlist,
            executable=executable,
            warnings=tuple(warnings),
            errors=tuple(errors),
        )


def warning_message(server_name: str, result: ServerValidationResult) -> str:
    """Render a validation result as the text shown to the user."""
    lines: list[str] = []
    if result.errors:
        lines.append(f'Tool server "{server_name}" failed security validation:')
        lines.extend(f"  - {error}" for error in result.errors)
    if result.warnings:
        lines.append(f'Tool server "{server_name}" security warnings:')
        lines.extend(f"  - {warning}" for warning in result.warnings)
    return "\n".join(lines)


__all__ = ["COMMON_RUNTIMES", "DANGEROUS_SERVER_ARGS", "ServerLaunchValidator", "warning_message"]
