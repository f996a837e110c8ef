"""Agent data models.

This module contains the records that flow through the agent loop:
- Conversation messages and attached context files
- Parsed tool calls
- Notifications sent to the host surface
- Turn outcomes
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Role(str, Enum):
    USER = "user"
    MODEL = "model"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Message:
    role: Role
    text: str
    attachments: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ContextFile:
    """A file the user attached to their message."""

    path: str
    content: str


class ToolCall(BaseModel):
    """A single tool invocation extracted from a model response."""

    tool: str
    args: dict[str, Any] = Field(default_factory=dict)
    content: str | None = None


class EventKind(str, Enum):
    """Notification kinds delivered to the host."""

    ADD_MESSAGE = "add-message"
    STATUS = "status"
    USAGE_UPDATE = "usage-update"
    TOKEN_LIMIT_ERROR = "token-limit-error"


@dataclass(frozen=True, slots=True)
class HostEvent:
    kind: EventKind
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def message(cls, role: Role, text: str) -> HostEvent:
        return cls(EventKind.ADD_MESSAGE, {"role": role.value, "text": text})

    @classmethod
    def status(cls, text: str) -> HostEvent:
        return cls(EventKind.STATUS, {"text": text})


class TurnOutcome(str, Enum):
    """How a call to ``AgentLoop.chat`` ended."""

    DONE = "done"
    ABORTED = "aborted"
    ERROR = "error"
    STEP_LIMIT = "step-limit"


__all__ = [
    "ContextFile",
    "EventKind",
    "HostEvent",
    "Message",
    "Role",
    "ToolCall",
    "TurnOutcome",
]
