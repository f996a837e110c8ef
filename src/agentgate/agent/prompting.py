"""System prompt construction.

The prompt is rendered from ``templates/system_prompt.j2`` with the
registered tools' descriptions (numbered, in registration order), the
workspace path, and any user-supplied instructions.
"""

from __future__ import annotations

from pathlib import Path

from agentgate.core.templates import render_template
from agentgate.tools.registry import ToolRegistry

SYSTEM_PROMPT_TEMPLATE = "system_prompt.j2"


def build_system_prompt(
    registry: ToolRegistry,
    workspace_root: Path,
    *,
    custom_instructions: str | None = None,
    template_root: Path | None = None,
) -> str:
    context: dict[str, object] = {
        "tools": registry.describe_all(),
        "workspace_root": str(workspace_root),
        "custom_instructions": (custom_instructions or "").strip(),
    }
    return render_template(SYSTEM_PROMPT_TEMPLATE, context, template_root=template_root)


__all__ = ["SYSTEM_PROMPT_TEMPLATE", "build_system_prompt"]
