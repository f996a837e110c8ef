"""
Shell command validation (pre-flight).

This module decides whether a command string requested by the model may be
handed to a shell. It is a heuristic screening layer: it rejects obvious
injection syntax and known-destructive commands, throttles bursts, and flags
risky-but-legitimate commands for user confirmation. It does not isolate the
process that eventually runs, and a determined attacker can phrase commands
it does not recognise.

Checks run in a fixed order and the first failing check decides:

1. empty command                     -> denied, low risk
2. injection syntax (untrimmed input) -> denied, high risk
3. blacklist                         -> denied, high risk
4. rate limit                        -> denied, medium risk
5. dangerous pattern                 -> allowed, needs confirmation
6. otherwise                         -> allowed, low risk

Usage:
    from agentgate.core.security.command import CommandValidator

    validator = CommandValidator()
    result = validator.validate("git status")
    if result.allowed and not result.requires_confirmation:
        run(result.sanitized_command)
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from time import monotonic

from agentgate.core.console import get_logger
from agentgate.core.security.models import CommandValidationResult, RateLimitStatus, RiskLevel
from agentgate.core.security.rate_limit import RateLimiter

logger = get_logger(__name__)

DEFAULT_MAX_COMMANDS = 30
DEFAULT_WINDOW_SECONDS = 60.0

# Shell syntax that chains, substitutes or redirects into system devices.
INJECTION_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r";\s*[a-zA-Z]"), "command chaining with ';'"),
    (re.compile(r"\|\s*[a-zA-Z]"), "pipe into another command"),
    (re.compile(r"`[^`]+`"), "backtick command substitution"),
    (re.compile(r"\$\([^)]+\)"), "$() command substitution"),
    (re.compile(r"&&\s*[a-zA-Z]"), "command chaining with '&&'"),
    (re.compile(r"\|\|\s*[a-zA-Z]"), "command chaining with '||'"),
    (re.compile(r">\s*/(?:etc|dev)"), "redirect into /etc or /dev"),
    (re.compile(r"[\r\n]"), "embedded line break"),
)

# Entries containing ".*" or a backslash are regular expressions; everything
# else is a case-insensitive substring.
BLACKLIST: tuple[str, ...] = (
    "rm -rf /",
    "rm -rf /*",
    "rm -rf ~",
    "rm -rf ~/*",
    "dd if=",
    "mkfs",
    "format c:",
    ":(){:|:&};:",
    "> /dev/sda",
    "chmod -R 777 /",
    "chown -R",
    r"wget.*\|.*sh",
    r"curl.*\|.*sh",
    "sudo rm -rf",
    "shutdown",
    "reboot",
    "init 0",
    "init 6",
    "halt",
    "poweroff",
)

DANGEROUS_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"rm\s+(-[rRf]+\s+)*[^\s]+"),
    re.compile(r"sudo\s+"),
    re.compile(r"chmod\s+"),
    re.compile(r"chown\s+"),
    re.compile(r"mv\s+.*/"),
    re.compile(r">\s*[^\s]+"),
    re.compile(r"kill\s+"),
    re.compile(r"pkill\s+"),
    re.compile(r"npm\s+publish"),
    re.compile(r"git\s+push\s+.*--force"),
    re.compile(r"git\s+reset\s+--hard"),
    re.compile(r"DROP\s+", re.IGNORECASE),
    re.compile(r"DELETE\s+FROM", re.IGNORECASE),
    re.compile(r"TRUNCATE\s+", re.IGNORECASE),
)

SENSITIVE_ENV_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"API[_-]?KEY",
        r"SECRET",
        r"TOKEN",
        r"PASSWORD",
        r"CREDENTIAL",
        r"PRIVATE[_-]?KEY",
        r"AUTH",
        r"AWS[_-]?ACCESS",
        r"AWS[_-]?SECRET",
        r"GEMINI",
        r"OPENAI",
        r"ANTHROPIC",
    )
)


def _is_regex_entry(entry: str) -> bool:
    return ".*" in entry or "\\" in entry


def _compile_blacklist(entries: tuple[str, ...]) -> tuple[tuple[str, re.Pattern[str] | None], ...]:
    compiled: list[tuple[str, re.Pattern[str] | None]] = []
    for entry in entries:
        if _is_regex_entry(entry):
            compiled.append((entry, re.compile(entry, re.IGNORECASE)))
        else:
            compiled.append((entry.lower(), None))
    return tuple(compiled)


_BLACKLIST = _compile_blacklist(BLACKLIST)


def detect_injection(command: str) -> str | None:
    """Return a description of the first injection construct found, if any."""
    for pattern, label in INJECTION_PATTERNS:
        if pattern.search(command):
            return label
    return None


def matches_blacklist(command: str) -> bool:
    lowered = command.lower()
    for entry, regex in _BLACKLIST:
        if regex is not None:
            if regex.search(command):
                return True
        elif entry in lowered:
            return True
    return False


def is_dangerous(command: str) -> bool:
    return any(pattern.search(command) for pattern in DANGEROUS_PATTERNS)


def is_sensitive_env_key(key: str) -> bool:
    return any(pattern.search(key) for pattern in SENSITIVE_ENV_PATTERNS)


def sanitize_environment(env: Mapping[str, str | None]) -> dict[str, str]:
    """Copy ``env`` without keys that look like credentials or empty values."""
    return {
        key: value
        for key, value in env.items()
        if value is not None and not is_sensitive_env_key(key)
    }


class CommandValidator:
    """Stateful command screen with its own sliding-window rate limiter.

    One instance is owned by each application context; tests and separate
    sessions get independent limiters.
    """

    def __init__(
        self,
        max_commands: int = DEFAULT_MAX_COMMANDS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        *,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        self._limiter = RateLimiter(max_commands, window_seconds, clock=clock)

    def validate(self, command: str) -> CommandValidationResult:
        if not command or not command.strip():
            return CommandValidationResult(
                allowed=False, risk_level=RiskLevel.LOW, reason="Empty command"
            )

        injection = detect_injection(command)
        if injection is not None:
            logger.warning("audit.shell.reject reason=injection detail=%r command=%r", injection, command)
            return CommandValidationResult(
                allowed=False,
                risk_level=RiskLevel.HIGH,
                reason=f"Potential command injection detected: {injection}",
            )

        trimmed = command.strip()
        if matches_blacklist(trimmed):
            logger.warning("audit.shell.reject reason=blacklist command=%r", trimmed)
            return CommandValidationResult(
                allowed=False,
                risk_level=RiskLevel.HIGH,
                reason="Command matches blacklist pattern and is blocked for security reasons",
            )

        if not self._limiter.try_acquire():
            logger.warning("audit.shell.reject reason=rate_limit command=%r", trimmed)
            return CommandValidationResult(
                allowed=False,
                risk_level=RiskLevel.MEDIUM,
                reason=(
                    f"Rate limit exceeded. Maximum {self._limiter.max_calls} commands "
                    f"per {self._limiter.window_seconds:g} seconds."
                ),
            )

        if is_dangerous(trimmed):
            return CommandValidationResult(
                allowed=True,
                risk_level=RiskLevel.MEDIUM,
                reason="Command may modify files or system state",
                requires_confirmation=True,
                sanitized_command=trimmed,
            )

        return CommandValidationResult(
            allowed=True, risk_level=RiskLevel.LOW, sanitized_command=trimmed
        )

    def sanitize_environment(self, env: Mapping[str, str | None]) -> dict[str, str]:
        return sanitize_environment(env)

    def rate_limit_status(self) -> RateLimitStatus:
        return self._limiter.status()

    def reset_rate_limit(self) -> None:
        self._limiter.reset()

    def configure_rate_limit(
        self, *, max_commands: int | None = None, window_seconds: float | None = None
    ) -> None:
        self._limiter.reconfigure(max_calls=max_commands, window_seconds=window_seconds)


__all__ = [
    "BLACKLIST",
    "DANGEROUS_PATTERNS",
    "INJECTION_PATTERNS",
    "SENSITIVE_ENV_PATTERNS",
    "CommandValidator",
    "detect_injection",
    "is_dangerous",
    "is_sensitive_env_key",
    "matches_blacklist",
    "sanitize_environment",
]
