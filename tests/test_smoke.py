from __future__ import annotations

from pathlib import Path

import pytest
from rich.console import Console
from typer.testing import CliRunner

from agentgate import __version__
from agentgate.main import app


@pytest.fixture
def in_workspace(workspace: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(workspace)
    monkeypatch.setenv("AGENTGATE_WORKSPACE_ROOT", str(workspace))
    return workspace


def test_app_version(runner: CliRunner, capture_console: Console) -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert f"agentgate {__version__}" in capture_console.export_text()


def test_check_command_allowed(runner: CliRunner, capture_console: Console) -> None:
    result = runner.invoke(app, ["check-command", "git status"])
    assert result.exit_code == 0
    output = capture_console.export_text()
    assert "allowed" in output
    assert "low" in output


def test_check_command_needs_confirmation(runner: CliRunner, capture_console: Console) -> None:
    result = runner.invoke(app, ["check-command", "rm notes.txt"])
    assert result.exit_code == 0
    assert "needs confirmation" in capture_console.export_text()


def test_check_command_denied(runner: CliRunner, capture_console: Console) -> None:
    result = runner.invoke(app, ["check-command", "rm -rf /"])
    assert result.exit_code == 1
    output = capture_console.export_text()
    assert "denied" in output
    assert "blacklist" in output


def test_check_path(runner: CliRunner, capture_console: Console, in_workspace: Path) -> None:
    assert runner.invoke(app, ["check-path", "src/app.py", "--op", "write"]).exit_code == 0
    assert str(in_workspace / "src" / "app.py") in capture_console.export_text()

    denied = runner.invoke(app, ["check-path", "/etc/passwd"])
    assert denied.exit_code == 1
    assert "sensitive directory" in capture_console.export_text()


def test_check_url(runner: CliRunner, capture_console: Console) -> None:
    assert runner.invoke(app, ["check-url", "https://example.com"]).exit_code == 0
    assert "needs confirmation" in capture_console.export_text()
    assert runner.invoke(app, ["check-url", "http://127.0.0.1:8080"]).exit_code == 1


def test_tools_lists_builtins(runner: CliRunner, capture_console: Console, in_workspace: Path) -> None:
    result = runner.invoke(app, ["tools"])
    assert result.exit_code == 0
    output = capture_console.export_text()
    for name in ("write_file", "read_file", "execute_command", "list_files", "browser_action"):
        assert name in output


def test_servers_without_configuration(runner: CliRunner, capture_console: Console) -> None:
    result = runner.invoke(app, ["servers"])
    assert result.exit_code == 0
    assert "No tool servers configured." in capture_console.export_text()


def test_invalid_config_falls_back(
    runner: CliRunner, capture_console: Console, isolate_config: Path
) -> None:
    isolate_config.write_text("not = [valid", encoding="utf-8")
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    output = capture_console.export_text()
    assert "Config error, using defaults" in output
    assert __version__ in output


def test_rate_limit_from_config(
    runner: CliRunner, capture_console: Console, isolate_config: Path
) -> None:
    isolate_config.write_text("[command]\nrate_limit_calls = 1\n", encoding="utf-8")
    # each invocation builds a fresh context, so the limit never carries over
    assert runner.invoke(app, ["check-command", "ls"]).exit_code == 0
    assert runner.invoke(app, ["check-command", "ls"]).exit_code == 0
