"""Tests for agent/permissions.py."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from agentgate.agent.permissions import PermissionGate, PermissionSettings


@pytest.fixture
def gate() -> PermissionGate:
    return PermissionGate()


class TestPermissionSettings:
    def test_defaults_deny_everything(self) -> None:
        settings = PermissionSettings()
        assert not settings.auto_read
        assert not settings.auto_write
        assert not settings.auto_execute

    def test_accepts_camel_case_from_hosts(self) -> None:
        settings = PermissionSettings.model_validate(
            {"autoRead": True, "autoWrite": False, "autoExecute": True}
        )
        assert settings.auto_read
        assert settings.auto_execute

    def test_accepts_field_names(self) -> None:
        assert PermissionSettings(auto_write=True).auto_write

    def test_frozen(self) -> None:
        settings = PermissionSettings()
        with pytest.raises(ValidationError):
            settings.auto_read = True  # type: ignore[misc]


class TestPermissionGate:
    @pytest.mark.parametrize(
        ("tool", "flag"),
        [
            ("read_file", "auto_read"),
            ("list_files", "auto_read"),
            ("write_file", "auto_write"),
            ("execute_command", "auto_execute"),
        ],
    )
    def test_gated_tools_follow_their_flag(self, tool: str, flag: str, gate: PermissionGate) -> None:
        assert not gate.is_allowed(tool, PermissionSettings())
        assert gate.is_allowed(tool, PermissionSettings(**{flag: True}))

    def test_flags_do_not_leak_between_families(self, gate: PermissionGate) -> None:
        settings = PermissionSettings(auto_read=True)
        assert gate.is_allowed("read_file", settings)
        assert not gate.is_allowed("write_file", settings)
        assert not gate.is_allowed("execute_command", settings)

    @pytest.mark.parametrize("tool", ["browser_action", "search_docs", "anything_else"])
    def test_ungated_tools_always_allowed(self, tool: str, gate: PermissionGate) -> None:
        assert gate.is_allowed(tool, PermissionSettings())

    def test_denial_message(self, gate: PermissionGate) -> None:
        assert gate.denial_message("write_file") == (
            "User denied permission to execute write_file. "
            "Ask the user to enable it in settings if needed."
        )
