"""Per-session token accounting.

This module provides:
- Token estimation using tiktoken (lazy-loaded) for providers without usage data
- TokenBudget: cumulative usage with an optional hard limit
"""

from __future__ import annotations

import functools
import importlib
from collections.abc import Sequence
from typing import Any, Protocol, cast

from agentgate.agent.provider import TokenUsage
from agentgate.core.result import TokenLimitExceeded


class _TokenizerProtocol(Protocol):
    """The part of a tiktoken Encoding that budgeting uses."""

    def encode(
        self, text: str, *, disallowed_special: Sequence[str] | tuple[str, ...] = ()
    ) -> list[int]: ...


@functools.lru_cache(maxsize=1)
def _get_tokenizer() -> _TokenizerProtocol:
    """Get the tiktoken encoder (cl100k_base).

    Lazily imports tiktoken on first call to avoid the startup penalty.
    """
    tiktoken_module = importlib.import_module("tiktoken")
    return cast(_TokenizerProtocol, tiktoken_module.get_encoding("cl100k_base"))


def approximate_tokens(content: str) -> int:
    """Token count for ``content``: cl100k_base via tiktoken, else chars/4."""
    if not content:
        return 0
    try:
        return len(_get_tokenizer().encode(content, disallowed_special=()))
    except Exception:
        # Fallback to char/4 estimate if tiktoken fails
        return max(1, len(content) // 4)


def estimate_usage(prompt_text: str, completion_text: str) -> TokenUsage:
    return TokenUsage(
        input_tokens=approximate_tokens(prompt_text),
        output_tokens=approximate_tokens(completion_text),
    )


class TokenBudget:
    """Cumulative token usage for one session.

    Args:
        limit: Total tokens the session may spend, or None for no limit.
    """

    def __init__(self, limit: int | None = None) -> None:
        self.limit = limit
        self.input_tokens = 0
        self.output_tokens = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    @property
    def exhausted(self) -> bool:
        return self.limit is not None and self.total_tokens >= self.limit

    def record(self, usage: TokenUsage) -> None:
        self.input_tokens += usage.input_tokens
        self.output_tokens += usage.output_tokens

    def check(self) -> None:
        if self.exhausted:
            raise TokenLimitExceeded(
                "Token limit reached for this session",
                context={"used": self.total_tokens, "limit": self.limit},
            )

    def snapshot(self) -> dict[str, Any]:
        return {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
            "limit": self.limit,
        }

    def reset(self) -> None:
        self.input_tokens = 0
        self.output_tokens = 0


__all__ = ["TokenBudget", "approximate_tokens", "estimate_usage"]
