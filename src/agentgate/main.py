from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

import typer
from rich import box
from rich.markup import escape
from rich.table import Table

from . import __version__
from .agent.factory import AppContext, build_app_context
from .core.config import AppConfig, ConfigLoadResult, load_config
from .core.console import console, setup_logging
from .core.security.models import FileOperation

app = typer.Typer(help="agentgate: inspect the validators and tools guarding an AI coding agent.")
logger = logging.getLogger(__name__)


@dataclass
class AppState:
    config: AppConfig
    config_meta: ConfigLoadResult
    logger: logging.Logger

    def context(self) -> AppContext:
        return build_app_context(self.config)


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to an agentgate config file (TOML or JSON)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    loaded_config, meta = load_config(config_path=config)
    app_logger = setup_logging(
        loaded_config.log_level, verbose, audit_log=loaded_config.audit_log
    )
    ctx.obj = AppState(config=loaded_config, config_meta=meta, logger=app_logger)

    if meta.error:
        console.print(f"[yellow]Config error, using defaults:[/yellow] {escape(meta.error)}")


def _decision_table(title: str, rows: list[tuple[str, str]]) -> Table:
    table = Table(title=title, box=box.SIMPLE_HEAVY, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for field, value in rows:
        table.add_row(field, value)
    return table


def _verdict(allowed: bool, requires_confirmation: bool) -> str:
    if not allowed:
        return "[red]denied[/red]"
    if requires_confirmation:
        return "[yellow]needs confirmation[/yellow]"
    return "[green]allowed[/green]"


@app.command("check-command")
def check_command(ctx: typer.Context, command: str = typer.Argument(..., help="Command line to screen.")) -> None:
    """Screen a shell command the way execute_command would."""
    state: AppState = ctx.obj
    result = state.context().command_validator.validate(command)
    console.print(
        _decision_table(
            "Command",
            [
                ("decision", _verdict(result.allowed, result.requires_confirmation)),
                ("risk", result.risk_level.value),
                ("reason", escape(result.reason or "-")),
                ("command", escape(result.sanitized_command or command)),
            ],
        )
    )
    if not result.allowed:
        raise typer.Exit(code=1)


@app.command("check-path")
def check_path(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Path to screen."),
    op: FileOperation = typer.Option(FileOperation.READ, "--op", help="File operation."),
) -> None:
    """Screen a filesystem path against the workspace and sensitive directories."""
    state: AppState = ctx.obj
    context = state.context()
    result = context.path_validator.validate_path(path, context.workspace_root, op)
    console.print(
        _decision_table(
            "Path",
            [
                ("decision", _verdict(result.allowed, result.requires_confirmation)),
                ("risk", result.risk_level.value),
                ("reason", escape(result.reason or "-")),
                ("path", escape(result.normalized_path or path)),
                ("workspace", escape(str(context.workspace_root))),
            ],
        )
    )
    if not result.allowed:
        raise typer.Exit(code=1)


@app.command("check-url")
def check_url(ctx: typer.Context, url: str = typer.Argument(..., help="URL to screen.")) -> None:
    """Screen a browser navigation target."""
    state: AppState = ctx.obj
    result = state.context().url_validator.validate_url(url)
    console.print(
        _decision_table(
            "URL",
            [
                ("decision", _verdict(result.allowed, result.requires_confirmation)),
                ("risk", result.risk_level.value),
                ("reason", escape(result.reason or "-")),
                ("url", escape(result.normalized_url or url)),
            ],
        )
    )
    if not result.allowed:
        raise typer.Exit(code=1)


@app.command("tools")
def list_tools(ctx: typer.Context) -> None:
    """List the built-in tools and how the model calls them."""
    state: AppState = ctx.obj
    table = Table(title="Tools", box=box.SIMPLE_HEAVY)
    table.add_column("Name", style="cyan")
    table.add_column("Usage")
    for tool in state.context().registry:
        table.add_row(tool.name, escape(tool.usage_description))
    console.print(table)


@app.command("servers")
def list_servers(ctx: typer.Context) -> None:
    """Connect the configured tool servers and list the tools they expose."""
    state: AppState = ctx.obj
    if not state.config.servers:
        console.print("[dim]No tool servers configured.[/dim]")
        return

    async def _discover() -> list[tuple[str, str, str]]:
        context = state.context()
        try:
            await context.connect_servers()
            return [
                (tool.server_name, tool.name, tool.description)
                for tool in await context.bridge.get_all_tools()
            ]
        finally:
            await context.dispose()

    rows = asyncio.run(_discover())
    table = Table(title="External tools", box=box.SIMPLE_HEAVY)
    table.add_column("Server", style="cyan")
    table.add_column("Tool")
    table.add_column("Description")
    for row in rows:
        table.add_row(*(escape(cell) for cell in row))
    console.print(table)


@app.command("version")
def version() -> None:
    """Print the agentgate version."""
    console.print(f"agentgate {__version__}")


def cli() -> None:
    app()


__all__ = ["app", "cli"]
