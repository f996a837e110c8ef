"""Validation result types shared by the security validators.

Every validator returns one of these frozen records instead of raising, so a
denial is ordinary data the caller can log, show, or turn into tool output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class RiskLevel(str, Enum):
    """How much damage the validated request could do if it were allowed."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class FileOperation(str, Enum):
    READ = "read"
    WRITE = "write"
    LIST = "list"


@dataclass(frozen=True, slots=True)
class CommandValidationResult:
    allowed: bool
    risk_level: RiskLevel
    reason: str | None = None
    requires_confirmation: bool = False
    sanitized_command: str | None = None


@dataclass(frozen=True, slots=True)
class PathValidationResult:
    allowed: bool
    risk_level: RiskLevel
    reason: str | None = None
    requires_confirmation: bool = False
    normalized_path: str | None = None


@dataclass(frozen=True, slots=True)
class FileSizeValidationResult:
    allowed: bool
    file_size: int
    max_size: int
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class URLValidationResult:
    allowed: bool
    risk_level: RiskLevel
    reason: str | None = None
    requires_confirmation: bool = False
    normalized_url: str | None = None


@dataclass(frozen=True, slots=True)
class BrowserArgsValidationResult:
    allowed: bool
    sanitized_args: tuple[str, ...]
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ServerValidationResult:
    """Outcome of checking a tool server launch configuration."""

    valid: bool
    in_allowlist: bool
    executable: str | None = None
    warnings: tuple[str, ...] = field(default_factory=tuple)
    errors: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class RateLimitStatus:
    current: int
    max_calls: int
    window_seconds: float
    reset_in: float


__all__ = [
    "BrowserArgsValidationResult",
    "CommandValidationResult",
    "FileOperation",
    "FileSizeValidationResult",
    "PathValidationResult",
    "RateLimitStatus",
    "RiskLevel",
    "ServerValidationResult",
    "URLValidationResult",
]
