"""
Filesystem path validation for the file tools.

Decides whether a path the model asked to read, write or list may be touched.
Sensitive directories (credential stores under the home directory and core
operating system trees) are refused outright, whatever the workspace root is.
Everything else must sit inside the workspace unless the policy allows
out-of-workspace access, in which case the user has to confirm it.

This is a screening layer, not a sandbox: it works on normalized path strings
and a best-effort symlink resolution, so it cannot rule out races between the
check and the eventual open.

Usage:
    from agentgate.core.security.path import PathValidator
    from agentgate.core.security.models import FileOperation

    validator = PathValidator()
    result = validator.validate_path("src/app.py", "/home/me/project", FileOperation.WRITE)
    if not result.allowed:
        print(result.reason)
"""

from __future__ import annotations

import math
import os
import sys
from collections.abc import Iterable
from pathlib import Path

from agentgate.core.config import DEFAULT_MAX_FILE_SIZE
from agentgate.core.console import get_logger
from agentgate.core.security.models import (
    FileOperation,
    FileSizeValidationResult,
    PathValidationResult,
    RiskLevel,
)

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# Security constants
# ---------------------------------------------------------------------------

HOME_SENSITIVE_DIRS: tuple[str, ...] = (".ssh", ".aws", ".gnupg", ".config", ".kube", ".docker")
"""Credential and tool-config directories, resolved under the user's home."""

POSIX_SENSITIVE_DIRS: tuple[str, ...] = (
    "/etc",
    "/var",
    "/usr",
    "/bin",
    "/sbin",
    "/root",
    "/private/etc",
    "/System",
)

WINDOWS_SENSITIVE_DIRS: tuple[str, ...] = (
    "C:\\Windows",
    "C:\\Program Files",
    "C:\\ProgramData",
)

_BYTE_UNITS = ("Bytes", "KB", "MB", "GB")


def format_bytes(size: int) -> str:
    """Render a byte count the way users read it, e.g. ``10 MB`` or ``1.5 KB``."""
    if size <= 0:
        return "0 Bytes"
    index = min(int(math.floor(math.log(size, 1024))), len(_BYTE_UNITS) - 1)
    value = round(size / (1024**index), 2)
    return f"{value:g} {_BYTE_UNITS[index]}"


def normalize_path(path: str) -> str:
    """Expand ``~``, make absolute, and drop any trailing separator."""
    # normpath also drops trailing separators (except on a bare root)
    normalized = os.path.normpath(os.path.abspath(os.path.expanduser(path)))
    if os.sep == "/" and normalized.startswith("//"):
        # POSIX keeps a leading "//" as implementation-defined; it still names "/"
        normalized = "/" + normalized.lstrip("/")
    return normalized


def _default_sensitive_dirs() -> list[str]:
    home = os.path.expanduser("~")
    entries = [os.path.join(home, name) for name in HOME_SENSITIVE_DIRS]
    if sys.platform == "win32":
        entries.extend(WINDOWS_SENSITIVE_DIRS)
    else:
        entries.extend(POSIX_SENSITIVE_DIRS)
    return entries


def _is_within(candidate: str, directory: str) -> bool:
    candidate_key = os.path.normcase(candidate)
    directory_key = os.path.normcase(directory)
    if candidate_key == directory_key:
        return True
    prefix = directory_key if directory_key.endswith(os.sep) else directory_key + os.sep
    return candidate_key.startswith(prefix)


def _resolve_symlinks(normalized: str) -> str | None:
    try:
        return str(Path(normalized).resolve(strict=False))
    except (OSError, RuntimeError, ValueError):
        return None


class PathValidator:
    """Workspace-scoped path screen.

    Args:
        max_file_size: Largest file, in bytes, that may be read or written.
        allow_out_of_workspace: Permit paths outside the workspace after confirmation.
        custom_blocklist: Extra directories treated like the built-in sensitive ones.
    """

    def __init__(
        self,
        *,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        allow_out_of_workspace: bool = False,
        custom_blocklist: Iterable[str] = (),
    ) -> None:
        self.max_file_size = max_file_size
        self.allow_out_of_workspace = allow_out_of_workspace
        self._sensitive_dirs = [normalize_path(entry) for entry in _default_sensitive_dirs()]
        self._sensitive_dirs.extend(normalize_path(entry) for entry in custom_blocklist)

    def is_sensitive(self, normalized: str) -> bool:
        return any(_is_within(normalized, blocked) for blocked in self._sensitive_dirs)

    def is_within_workspace(self, path: str, workspace_root: str) -> bool:
        return _is_within(normalize_path(path), normalize_path(workspace_root))

    def validate_path(
        self,
        path: str | os.PathLike[str],
        workspace_root: str | os.PathLike[str] | None,
        operation: FileOperation = FileOperation.READ,
    ) -> PathValidationResult:
        raw = os.fspath(path) if path is not None else ""
        if not raw or not raw.strip():
            return PathValidationResult(
                allowed=False, risk_level=RiskLevel.LOW, reason="Empty path provided"
            )
        root = os.fspath(workspace_root) if workspace_root is not None else ""
        if not root:
            return PathValidationResult(
                allowed=False, risk_level=RiskLevel.LOW, reason="No workspace root provided"
            )
        if "\x00" in raw:
            return PathValidationResult(
                allowed=False, risk_level=RiskLevel.MEDIUM, reason="Path contains a null byte"
            )

        normalized = normalize_path(raw)
        resolved = _resolve_symlinks(normalized)

        if self.is_sensitive(normalized) or (resolved is not None and self.is_sensitive(resolved)):
            logger.warning(
                "audit.fs.reject reason=sensitive op=%s path=%r", operation.value, normalized
            )
            return PathValidationResult(
                allowed=False,
                risk_level=RiskLevel.HIGH,
                reason="Access to sensitive directory is blocked for security reasons",
                normalized_path=normalized,
            )

        root_normalized = normalize_path(root)
        inside = _is_within(normalized, root_normalized)
        if inside and resolved is not None:
            # a link inside the workspace must also land inside it
            root_resolved = _resolve_symlinks(root_normalized) or root_normalized
            inside = _is_within(resolved, root_resolved)

        if not inside:
            if self.allow_out_of_workspace:
                return PathValidationResult(
                    allowed=True,
                    risk_level=RiskLevel.MEDIUM,
                    reason=(
                        "Path is outside workspace. User confirmation required for "
                        f"{operation.value} operation."
                    ),
                    requires_confirmation=True,
                    normalized_path=normalized,
                )
            logger.warning(
                "audit.fs.reject reason=outside_workspace op=%s path=%r root=%r",
                operation.value,
                normalized,
                root,
            )
            return PathValidationResult(
                allowed=False,
                risk_level=RiskLevel.MEDIUM,
                reason=(
                    "Path is outside the workspace directory. "
                    f"{operation.value.capitalize()} operations are restricted to workspace."
                ),
                normalized_path=normalized,
            )

        return PathValidationResult(
            allowed=True, risk_level=RiskLevel.LOW, normalized_path=normalized
        )

    def validate_for_read(
        self, path: str | os.PathLike[str], workspace_root: str | os.PathLike[str] | None
    ) -> PathValidationResult:
        return self.validate_path(path, workspace_root, FileOperation.READ)

    def validate_for_write(
        self, path: str | os.PathLike[str], workspace_root: str | os.PathLike[str] | None
    ) -> PathValidationResult:
        return self.validate_path(path, workspace_root, FileOperation.WRITE)

    def validate_file_size(self, size: int) -> FileSizeValidationResult:
        if size < 0:
            return FileSizeValidationResult(
                allowed=False, file_size=size, max_size=self.max_file_size, reason="Invalid file size"
            )
        if size > self.max_file_size:
            return FileSizeValidationResult(
                allowed=False,
                file_size=size,
                max_size=self.max_file_size,
                reason=(
                    f"File size ({format_bytes(size)}) exceeds maximum allowed size "
                    f"({format_bytes(self.max_file_size)})"
                ),
            )
        return FileSizeValidationResult(allowed=True, file_size=size, max_size=self.max_file_size)


__all__ = [
    "HOME_SENSITIVE_DIRS",
    "POSIX_SENSITIVE_DIRS",
    "WINDOWS_SENSITIVE_DIRS",
    "PathValidator",
    "format_bytes",
    "normalize_path",
]
