"""Jinja2 rendering for the prompt templates shipped in ``agentgate/templates``.

Templates are rendered as plain text: no HTML autoescaping, and undefined
variables raise instead of rendering empty.

Usage:
    text = render_template("system_prompt.j2", {"tools": [...], "workspace_root": "/repo"})
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateNotFound

PACKAGE_TEMPLATES = Path(__file__).resolve().parent.parent / "templates"


def find_template_root(override: Path | None = None) -> Path:
    """Directory templates are loaded from.

    An explicit override that exists wins; otherwise the packaged directory.
    """
    if override is not None and override.is_dir():
        return override.resolve()
    if PACKAGE_TEMPLATES.is_dir():
        return PACKAGE_TEMPLATES
    raise FileNotFoundError(f"Template directory missing: {PACKAGE_TEMPLATES}")


@lru_cache(maxsize=4)
def _environment(root: Path) -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(root)),
        autoescape=False,
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    return env


def render_template(
    name: str,
    context: dict[str, object],
    *,
    template_root: Path | None = None,
) -> str:
    """Render ``name`` with ``context``; FileNotFoundError if it does not exist."""
    root = find_template_root(template_root)
    try:
        template = _environment(root).get_template(name)
    except TemplateNotFound as exc:
        raise FileNotFoundError(f"Template {name} not found in {root}") from exc
    return template.render(**context)


__all__ = ["PACKAGE_TEMPLATES", "find_template_root", "render_template"]
