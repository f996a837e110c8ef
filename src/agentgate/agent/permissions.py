"""Per-tool permission checks driven by the user's auto-approve settings."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

READ_TOOLS = frozenset({"read_file", "list_files"})
WRITE_TOOLS = frozenset({"write_file"})
EXECUTE_TOOLS = frozenset({"execute_command"})


class PermissionSettings(BaseModel):
    """Which tool families run without asking. Accepts camelCase keys from hosts."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    auto_read: bool = Field(default=False, alias="autoRead")
    auto_write: bool = Field(default=False, alias="autoWrite")
    auto_execute: bool = Field(default=False, alias="autoExecute")


class PermissionGate:
    """Decide whether a parsed tool call may run under the given settings.

    The browser tool is always permitted because every navigation is
    confirmed individually. External tools are always permitted: the user
    opted into them by configuring their server.
    """

    def is_allowed(self, tool_name: str, settings: PermissionSettings) -> bool:
        if tool_name in READ_TOOLS:
            return settings.auto_read
        if tool_name in WRITE_TOOLS:
            return settings.auto_write
        if tool_name in EXECUTE_TOOLS:
            return settings.auto_execute
        return True

    @staticmethod
    def denial_message(tool_name: str) -> str:
        return (
            f"User denied permission to execute {tool_name}. "
            "Ask the user to enable it in settings if needed."
        )


__all__ = ["EXECUTE_TOOLS", "READ_TOOLS", "WRITE_TOOLS", "PermissionGate", "PermissionSettings"]
