"""Chat provider contract.

The agent loop talks to a language model through this protocol only; any
concrete HTTP or SDK client lives outside this package. A provider receives
the full history plus the system prompt and returns the response text with
optional usage accounting. Failures should raise; the loop reports them as a
connection error and ends the turn.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from agentgate.agent.models import Message


@dataclass(frozen=True, slots=True)
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass(frozen=True, slots=True)
class ChatResponse:
    text: str
    usage: TokenUsage | None = None


@runtime_checkable
class ChatProvider(Protocol):
    async def chat(self, history: Sequence[Message], system_prompt: str) -> ChatResponse: ...


__all__ = ["ChatProvider", "ChatResponse", "TokenUsage"]
