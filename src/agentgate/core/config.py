"""Layered settings for agentgate.

Every validator and tool takes its limits from AppConfig. Values come from
``AGENTGATE_*`` environment variables, then a TOML or JSON file
(``~/.agentgate.toml`` unless ``AGENTGATE_CONFIG`` points elsewhere), then
the defaults below.

Usage:
    config, meta = load_config()
    if meta.error:
        print(f"using defaults: {meta.error}")
    validator = CommandValidator(max_calls=config.command.rate_limit_calls)
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, get_origin

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from agentgate.core.result import ConfigurationError

CONFIG_ENV_VAR = "AGENTGATE_CONFIG"

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024

DEFAULT_SERVER_ALLOWLIST = ["node", "npx", "npm", "python", "python3", "uvx", "uv", "deno", "bun"]
DEFAULT_SERVER_BLOCKLIST = ["rm", "dd", "mkfs", "format", "sudo", "su", "chmod", "chown", "curl", "wget"]


# -----------------------------------------------------------------------------
# Policies
# -----------------------------------------------------------------------------


class CommandPolicy(BaseModel):
    """Shell command validation and execution settings."""

    rate_limit_calls: int = Field(default=30, gt=0, description="Max commands per window.")
    rate_limit_window: float = Field(
        default=60.0, gt=0, description="Window size in seconds for command rate limiting."
    )
    timeout: float = Field(default=120.0, gt=0, description="Seconds before a command is killed.")
    shell: str | None = Field(
        default=None, description="Shell used to run commands. Defaults to bash (powershell on Windows)."
    )


class PathPolicy(BaseModel):
    """Filesystem access settings."""

    max_file_size: int = Field(
        default=DEFAULT_MAX_FILE_SIZE, gt=0, description="Largest file, in bytes, read or written."
    )
    allow_out_of_workspace: bool = Field(
        default=False,
        description="Permit paths outside the workspace after user confirmation.",
    )
    custom_blocklist: list[str] = Field(
        default_factory=list, description="Extra directories that are never accessible."
    )


class URLPolicy(BaseModel):
    """Browser navigation settings."""

    allow_internal_networks: bool = Field(
        default=False, description="Allow localhost and private network addresses."
    )
    allowlist: list[str] = Field(
        default_factory=list, description="When non-empty, only these domains are reachable."
    )
    blocklist: list[str] = Field(default_factory=list, description="Domains that are never reachable.")
    timeout_ms: int = Field(default=30_000, gt=0, description="Per-operation browser timeout.")
    require_confirmation_for_external: bool = Field(
        default=True, description="Ask the user before navigating to an external host."
    )
    allow_no_sandbox: bool = Field(
        default=False, description="Launch the browser without its sandbox (containers only)."
    )
    headless: bool = Field(default=True, description="Run the browser without a window.")


class ServerPolicy(BaseModel):
    """Tool server launch settings."""

    allowlist: list[str] = Field(default_factory=lambda: list(DEFAULT_SERVER_ALLOWLIST))
    blocklist: list[str] = Field(default_factory=lambda: list(DEFAULT_SERVER_BLOCKLIST))
    require_allowlist: bool = Field(
        default=False, description="Reject executables that are not on the allowlist."
    )


class ToolServerConfig(BaseModel):
    """Launch configuration for one external tool server."""

    name: str
    command: str
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)


class AgentSettings(BaseModel):
    """Agent loop settings."""

    max_tool_steps: int = Field(
        default=25, gt=0, description="Tool executions allowed in a single turn."
    )
    token_limit: int | None = Field(
        default=None, description="Cumulative tokens a session may spend. None disables the check."
    )
    auto_read: bool = Field(default=True, description="Run read_file/list_files without asking.")
    auto_write: bool = Field(default=False, description="Run write_file without asking.")
    auto_execute: bool = Field(default=False, description="Run execute_command without asking.")
    custom_instructions: str | None = Field(
        default=None, description="Extra text appended to the system prompt."
    )


@dataclass
class ConfigLoadResult:
    """Where the active configuration came from."""

    path: Path
    file_loaded: bool
    env_overrides: set[str] = field(default_factory=set)
    error: str | None = None


class AppConfig(BaseSettings):
    """Settings for one agentgate session.

    Sources, highest precedence first: ``AGENTGATE_*`` environment variables
    (nested keys joined with ``__``), the config file, then field defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="AGENTGATE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    workspace_root: Path = Field(default_factory=Path.cwd)
    log_level: str = Field(default="INFO", description="Log level for agentgate output.")
    audit_log: Path | None = Field(
        default=None, description="File that receives a copy of every audit.* log record."
    )
    command: CommandPolicy = Field(default_factory=CommandPolicy)
    paths: PathPolicy = Field(default_factory=PathPolicy)
    urls: URLPolicy = Field(default_factory=URLPolicy)
    server_policy: ServerPolicy = Field(default_factory=ServerPolicy)
    agent: AgentSettings = Field(default_factory=AgentSettings)
    servers: list[ToolServerConfig] = Field(default_factory=list)

    @field_validator("workspace_root", mode="after")
    @classmethod
    def expand_workspace_root(cls, v: Path) -> Path:
        return v.expanduser().absolute()

    @field_validator("audit_log", mode="after")
    @classmethod
    def expand_audit_log(cls, v: Path | None) -> Path | None:
        return v.expanduser() if v is not None else None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # init kwargs carry the file contents, so the environment goes first
        return (env_settings, init_settings, dotenv_settings, file_secret_settings)


# -----------------------------------------------------------------------------
# Loading
# -----------------------------------------------------------------------------


def default_config_path(env_vars: Mapping[str, str]) -> Path:
    explicit = env_vars.get(CONFIG_ENV_VAR)
    return Path(explicit).expanduser() if explicit else Path.home() / ".agentgate.toml"


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse a TOML or JSON config file into a plain mapping.

    A missing file is an empty mapping. Unreadable or malformed files raise
    ConfigurationError so the caller can fall back to defaults.
    """
    if not path.is_file():
        return {}

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read {path}: {exc}") from exc

    try:
        data = json.loads(text) if path.suffix.lower() == ".json" else tomllib.loads(text)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ConfigurationError(f"Syntax error in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"Top level of {path} must be a table/object.")
    return data


def env_override_fields(env_vars: Mapping[str, str]) -> set[str]:
    """Dotted names of the settings that ``env_vars`` overrides.

    ``AGENTGATE_LOG_LEVEL`` yields ``log_level``;
    ``AGENTGATE_COMMAND__TIMEOUT`` yields ``command.timeout``.
    """
    prefix = AppConfig.model_config.get("env_prefix", "")
    delimiter = AppConfig.model_config.get("env_nested_delimiter", "__")
    present = {key.upper() for key in env_vars}
    found: set[str] = set()

    for name, info in AppConfig.model_fields.items():
        annotation = info.annotation
        nested = (
            get_origin(annotation) is None
            and isinstance(annotation, type)
            and issubclass(annotation, BaseModel)
        )
        if not nested:
            if f"{prefix}{name}".upper() in present:
                found.add(name)
            continue
        for sub_name in annotation.model_fields:
            if f"{prefix}{name}{delimiter}{sub_name}".upper() in present:
                found.add(f"{name}.{sub_name}")

    return found


@contextmanager
def _scoped_environ(extra: Mapping[str, str] | None) -> Iterator[None]:
    """Expose ``extra`` through os.environ while settings are built."""
    if not extra:
        yield
        return
    saved = {key: os.environ.get(key) for key in extra}
    os.environ.update(extra)
    try:
        yield
    finally:
        for key, value in saved.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value


def load_config(
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> tuple[AppConfig, ConfigLoadResult]:
    """Build an AppConfig from the config file and the environment.

    Never raises for bad input: a broken file or an invalid value yields the
    default configuration with ``ConfigLoadResult.error`` describing why.
    ``env`` adds variables on top of ``os.environ`` for this call only.
    """
    env_vars: Mapping[str, str] = {**os.environ, **(env or {})}
    path = config_path.expanduser() if config_path is not None else default_config_path(env_vars)
    meta = ConfigLoadResult(path=path, file_loaded=False, env_overrides=env_override_fields(env_vars))

    file_data: dict[str, Any] = {}
    try:
        file_data = read_config_file(path)
        meta.file_loaded = path.is_file()
    except ConfigurationError as exc:
        meta.error = str(exc)

    config: AppConfig | None = None
    with _scoped_environ(env):
        try:
            config = AppConfig(**file_data)
        except ValidationError as exc:
            meta.error = f"Invalid configuration in {path}: {exc}"

    if config is None:
        try:
            with _scoped_environ(env):
                config = AppConfig()
        except ValidationError:
            # the environment itself holds the rejected value
            config = AppConfig.model_construct()

    return config, meta


__all__ = [
    "CONFIG_ENV_VAR",
    "DEFAULT_MAX_FILE_SIZE",
    "AgentSettings",
    "AppConfig",
    "CommandPolicy",
    "ConfigLoadResult",
    "PathPolicy",
    "ServerPolicy",
    "ToolServerConfig",
    "URLPolicy",
    "default_config_path",
    "env_override_fields",
    "load_config",
    "read_config_file",
]
