"""
Heuristic validators for everything the model asks the tools to do.

This package screens shell commands, filesystem paths, browser URLs and
launch flags, and tool server launch configurations. The checks are
defense-in-depth in front of a trusted user's machine: they catch obvious
injection, sensitive locations and destructive commands, and ask the user
about risky ones. They are not a sandbox and make no isolation guarantee.

Usage:
    from agentgate.core.security import CommandValidator, PathValidator, URLValidator
"""

from __future__ import annotations

from agentgate.core.security.command import (
    CommandValidator,
    detect_injection,
    is_sensitive_env_key,
    sanitize_environment,
)
from agentgate.core.security.models import (
    BrowserArgsValidationResult,
    CommandValidationResult,
    FileOperation,
    FileSizeValidationResult,
    PathValidationResult,
    RateLimitStatus,
    RiskLevel,
    ServerValidationResult,
    URLValidationResult,
)
from agentgate.core.security.path import PathValidator, format_bytes, normalize_path
from agentgate.core.security.rate_limit import RateLimiter
from agentgate.core.security.server import ServerLaunchValidator, warning_message
from agentgate.core.security.url import URLValidator, is_internal_network

__all__ = [
    # Command validation
    "CommandValidator",
    "detect_injection",
    "is_sensitive_env_key",
    "sanitize_environment",
    # Path validation
    "PathValidator",
    "format_bytes",
    "normalize_path",
    # URL validation
    "URLValidator",
    "is_internal_network",
    # Tool servers
    "ServerLaunchValidator",
    "warning_message",
    # Rate limiting
    "RateLimiter",
    # Results
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
