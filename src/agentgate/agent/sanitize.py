"""Display sanitization for model output.

Model text is rendered by the host as rich content, so the copy sent for
display has active markup removed. The conversation history keeps the
original text; only the host-facing copy is sanitized.
"""

from __future__ import annotations

import re

DANGEROUS_ELEMENTS = ("script", "iframe", "object", "embed", "style", "form", "link", "meta", "base")

_PAIRED_ELEMENT = re.compile(
    r"<\s*(" + "|".join(DANGEROUS_ELEMENTS) + r")\b[^>]*>[\s\S]*?<\s*/\s*\1\s*>",
    re.IGNORECASE,
)
_LONE_ELEMENT = re.compile(
    r"<\s*/?\s*(?:" + "|".join(DANGEROUS_ELEMENTS) + r")\b[^>]*>",
    re.IGNORECASE,
)
_EVENT_HANDLER = re.compile(r"""\s+on[a-z]+\s*=\s*(?:"[^"]*"|'[^']*'|[^\s>]+)""", re.IGNORECASE)
_TAG = re.compile(r"<[a-zA-Z][^>]*>")
_SCRIPT_URL = re.compile(r"(?:javascript|vbscript)\s*:", re.IGNORECASE)
_DATA_HTML_URL = re.compile(r"data\s*:\s*text/html", re.IGNORECASE)


def sanitize_for_display(text: str) -> str:
    """Strip null bytes, active elements, inline handlers and script URLs."""
    cleaned = text.replace("\x00", "")
    cleaned = _PAIRED_ELEMENT.sub("", cleaned)
    cleaned = _LONE_ELEMENT.sub("", cleaned)
    cleaned = _TAG.sub(lambda tag: _EVENT_HANDLER.sub("", tag.group(0)), cleaned)
    cleaned = _SCRIPT_URL.sub("blocked:", cleaned)
    cleaned = _DATA_HTML_URL.sub("blocked:", cleaned)
    return cleaned


__all__ = ["DANGEROUS_ELEMENTS", "sanitize_for_display"]
