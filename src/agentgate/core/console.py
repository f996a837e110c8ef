"""Rich console and logging setup.

Validators and tools log through ``get_logger(__name__)``. Security decisions
use messages that start with ``audit.`` (``audit.shell.reject``,
``audit.fs.reject`` ...), which ``setup_logging`` can also copy to a plain
audit file.

Usage:
    logger = setup_logging("INFO", audit_log=Path("~/.agentgate/audit.log"))
    get_logger(__name__).warning("audit.shell.reject reason=%s", reason)
"""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "agentgate"
AUDIT_PREFIX = "audit."
AUDIT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

console = Console()
stderr_console = Console(stderr=True)


class AuditFilter(logging.Filter):
    """Pass only records whose message is an audit event."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.getMessage().startswith(AUDIT_PREFIX)


def _coerce_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    level: str | int = logging.INFO,
    verbose: bool = False,
    *,
    audit_log: Path | None = None,
) -> logging.Logger:
    """Attach agentgate's handlers to the ``agentgate`` logger and return it.

    Calling it again replaces the handlers from the previous call. Records
    still propagate, so host applications keep their own root handlers.
    """
    numeric_level = logging.DEBUG if verbose else _coerce_level(level)
    logger = logging.getLogger(LOGGER_NAME)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    logger.setLevel(numeric_level)

    terminal = RichHandler(
        console=stderr_console,
        markup=False,
        rich_tracebacks=True,
        show_path=False,
    )
    terminal.setFormatter(logging.Formatter("%(message)s"))
    terminal.setLevel(numeric_level)
    logger.addHandler(terminal)

    if audit_log is not None:
        audit_log.parent.mkdir(parents=True, exist_ok=True)
        audit = logging.FileHandler(audit_log, encoding="utf-8")
        audit.setFormatter(logging.Formatter(AUDIT_FORMAT))
        audit.addFilter(AuditFilter())
        logger.addHandler(audit)

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name or LOGGER_NAME)


__all__ = [
    "AUDIT_PREFIX",
    "AuditFilter",
    "console",
    "get_logger",
    "setup_logging",
    "stderr_console",
]
