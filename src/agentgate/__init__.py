"""agentgate - guarded tool execution core for AI coding assistants.

This package lets a conversational model act on a workspace through a fixed
set of local tools (files, shell, headless browser) and external tool
servers, with every request passing through heuristic validators and a
permission gate before anything runs.

Exports:
    __version__: Package version string.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.3.0"
