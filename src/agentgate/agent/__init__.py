"""Agent loop, tool-call parsing and permission gating.

Usage:
    from agentgate.agent import AgentLoop, PermissionSettings, build_app_context
"""

from __future__ import annotations

from agentgate.agent.factory import AppContext, build_agent_loop, build_app_context
from agentgate.agent.loop import AgentLoop, CancellationSignal
from agentgate.agent.models import (
    ContextFile,
    EventKind,
    HostEvent,
    Message,
    Role,
    ToolCall,
    TurnOutcome,
)
from agentgate.agent.parser import ToolCallParser
from agentgate.agent.permissions import PermissionGate, PermissionSettings
from agentgate.agent.provider import ChatProvider, ChatResponse, TokenUsage

__all__ = [
    "AgentLoop",
    "AppContext",
    "CancellationSignal",
    "ChatProvider",
    "ChatResponse",
    "ContextFile",
    "EventKind",
    "HostEvent",
    "Message",
    "PermissionGate",
    "PermissionSettings",
    "Role",
    "TokenUsage",
    "ToolCall",
    "ToolCallParser",
    "TurnOutcome",
    "build_agent_loop",
    "build_app_context",
]
