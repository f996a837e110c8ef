"""
Result values and the agentgate error hierarchy.

Process runners return ``Result`` instead of raising so callers can turn a
failed spawn into tool output with a ``match`` statement. Everything that is
raised derives from ``AgentGateError``.

Usage:
    from agentgate.core.result import Err, Ok, ToolExecutionError

    match await runner.run(argv, cwd=root, timeout=30):
        case Ok(completed):
            print(completed.stdout)
        case Err(error):
            print(f"failed: {error}")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E", bound=Exception)


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    error: E


Result = Ok[T] | Err[E]


# ---------------------------------------------------------------------------
# Domain-specific error hierarchy
# ---------------------------------------------------------------------------


class AgentGateError(Exception):
    """Base exception for all agentgate errors.

    Carries an optional ``context`` mapping that is rendered after the
    message so log lines and tool output keep the offending values.
    """

    def __init__(self, message: str, *, context: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


class SecurityError(AgentGateError):
    """Raised when a validator denies an operation a tool was asked to perform.

    Examples:
    - Path in a sensitive directory
    - Command with shell injection syntax
    - Tool server launch configuration on the blocklist
    """


class ConfigurationError(AgentGateError):
    """Raised for configuration issues.

    Examples:
    - Config file parse errors
    - Invalid config values
    """


class ToolExecutionError(AgentGateError):
    """Raised when a tool fails to execute.

    Examples:
    - Missing required argument
    - File not found
    - Browser operation timed out
    - Remote tool call failed
    """


class TokenLimitExceeded(AgentGateError):
    """Raised when a session has spent its token budget."""


__all__ = [
    # Result types
    "Ok",
    "Err",
    "Result",
    # Error hierarchy
    "AgentGateError",
    "SecurityError",
    "ConfigurationError",
    "ToolExecutionError",
    "TokenLimitExceeded",
]
