"""
The agent loop: one conversation session driving model, parser, gate and tools.

A turn starts when the user sends a message and alternates between asking
the provider for a response and executing the single tool call found in it,
until a response contains no tool call, the step limit is reached, the turn
is aborted, or an error ends it::

    Idle -> AwaitingResponse -> (ExecutingTool -> AwaitingResponse)* -> Done
                         \\-> Aborted / Error from any state

Sending a new message while a turn is in flight supersedes that turn. Every
turn carries its own cancellation signal; the superseded turn notices at the
next checkpoint (after the provider returns, before a tool runs, after a
tool finishes) and stops without touching the history again.

Usage:
    loop = AgentLoop(provider, registry, workspace_root=root, on_event=post_to_host)
    outcome = await loop.chat("add a README", PermissionSettings(auto_write=True))
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path

from agentgate.agent.budget import TokenBudget, estimate_usage
from agentgate.agent.models import (
    ContextFile,
    EventKind,
    HostEvent,
    Message,
    Role,
    ToolCall,
    TurnOutcome,
)
from agentgate.agent.parser import ToolCallParser
from agentgate.agent.permissions import PermissionGate, PermissionSettings
from agentgate.agent.prompting import build_system_prompt
from agentgate.agent.provider import ChatProvider, ChatResponse
from agentgate.agent.sanitize import sanitize_for_display
from agentgate.core.console import get_logger
from agentgate.core.result import AgentGateError, ConfigurationError, TokenLimitExceeded
from agentgate.tools.registry import ToolRegistry

logger = get_logger(__name__)

DEFAULT_MAX_TOOL_STEPS = 25

EventSink = Callable[[HostEvent], None]
HistorySink = Callable[[Sequence[Message]], None]


class CancellationSignal:
    """Per-turn flag flipped when the turn is superseded or aborted."""

    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


def compose_user_message(text: str, context_files: Iterable[ContextFile] = ()) -> str:
    """Append attached files to the user's text."""
    parts = [text]
    for attached in context_files:
        parts.append(f"\n\n--- {attached.path} ---\n{attached.content}")
    return "".join(parts)


class AgentLoop:
    """Conversation session bound to one provider and one tool registry.

    Args:
        provider: Model client implementing ``ChatProvider``.
        registry: Tools available to the model.
        workspace_root: Workspace shown in the system prompt.
        settings: Initial auto-approve settings; ``chat`` may replace them.
        max_tool_steps: Tool executions allowed in one turn.
        token_limit: Cumulative tokens for the session, or None.
        on_event: Receives host notifications.
        on_history: Receives the history after every change.
        custom_instructions: Extra text appended to the system prompt.
    """

    def __init__(
        self,
        provider: ChatProvider,
        registry: ToolRegistry,
        *,
        workspace_root: Path,
        settings: PermissionSettings | None = None,
        max_tool_steps: int = DEFAULT_MAX_TOOL_STEPS,
        token_limit: int | None = None,
        on_event: EventSink | None = None,
        on_history: HistorySink | None = None,
        custom_instructions: str | None = None,
        parser: ToolCallParser | None = None,
        gate: PermissionGate | None = None,
    ) -> None:
        if max_tool_steps <= 0:
            raise ValueError("max_tool_steps must be positive")
        self.provider = provider
        self.registry = registry
        self.workspace_root = workspace_root
        self.settings = settings or PermissionSettings()
        self.max_tool_steps = max_tool_steps
        self.budget = TokenBudget(token_limit)
        self.custom_instructions = custom_instructions
        self.parser = parser or ToolCallParser(registry.external_names)
        self.gate = gate or PermissionGate()
        self._on_event = on_event
        self._on_history = on_history
        self._history: list[Message] = []
        self._signal: CancellationSignal | None = None

    # ------------------------------------------------------------------
    # History and notifications
    # ------------------------------------------------------------------

    @property
    def history(self) -> tuple[Message, ...]:
        return tuple(self._history)

    def clear_history(self) -> None:
        self.abort_silently()
        self._history.clear()
        self.budget.reset()
        self._publish_history()

    def _emit(self, event: HostEvent) -> None:
        if self._on_event is not None:
            self._on_event(event)

    def _publish_history(self) -> None:
        if self._on_history is not None:
            self._on_history(tuple(self._history))

    def _push(self, message: Message) -> None:
        self._history.append(message)
        self._publish_history()

    def _rollback(self, message: Message) -> None:
        if self._history and self._history[-1] is message:
            self._history.pop()
            self._publish_history()

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def _begin_turn(self) -> CancellationSignal:
        if self._signal is not None:
            self._signal.cancel()
        signal = CancellationSignal()
        self._signal = signal
        return signal

    def abort_silently(self) -> None:
        if self._signal is not None:
            self._signal.cancel()
            self._signal = None

    def abort(self) -> None:
        """Stop the in-flight turn at its next checkpoint."""
        if self._signal is None or self._signal.cancelled:
            return
        self.abort_silently()
        self._emit(HostEvent.message(Role.ERROR, "[User Stopped Operation]"))

    async def dispose(self) -> None:
        self.abort_silently()
        await self.registry.dispose()

    # ------------------------------------------------------------------
    # Turn
    # ------------------------------------------------------------------

    def _prepare_turn(self) -> str:
        self.budget.check()
        try:
            return build_system_prompt(
                self.registry,
                self.workspace_root,
                custom_instructions=self.custom_instructions,
            )
        except FileNotFoundError as exc:
            raise ConfigurationError(f"System prompt unavailable: {exc}") from exc

    def _token_limit_event(self, exc: TokenLimitExceeded) -> HostEvent:
        return HostEvent(EventKind.TOKEN_LIMIT_ERROR, {"message": exc.message, **self.budget.snapshot()})

    async def chat(
        self,
        text: str,
        settings: PermissionSettings | None = None,
        *,
        context_files: Sequence[ContextFile] = (),
    ) -> TurnOutcome:
        signal = self._begin_turn()
        if settings is not None:
            self.settings = settings

        pending = Message(
            Role.USER,
            compose_user_message(text, context_files),
            attachments=tuple(f.path for f in context_files),
        )
        self._push(pending)

        try:
            system_prompt = self._prepare_turn()
        except TokenLimitExceeded as exc:
            self._emit(self._token_limit_event(exc))
            self._rollback(pending)
            return TurnOutcome.ERROR
        except AgentGateError as exc:
            self._emit(HostEvent.message(Role.ERROR, f"Error: {exc}"))
            self._rollback(pending)
            return TurnOutcome.ERROR

        return await self._run_turn(signal, system_prompt)

    async def _request(self, system_prompt: str) -> ChatResponse:
        return await self.provider.chat(tuple(self._history), system_prompt)

    def _record_usage(self, response: ChatResponse) -> None:
        usage = response.usage
        if usage is None:
            if self.budget.limit is None:
                return
            prompt_text = self._history[-1].text if self._history else ""
            usage = estimate_usage(prompt_text, response.text)
        self.budget.record(usage)
        self._emit(HostEvent(EventKind.USAGE_UPDATE, self.budget.snapshot()))

    async def _run_turn(self, signal: CancellationSignal, system_prompt: str) -> TurnOutcome:
        for step in range(self.max_tool_steps + 1):
            if step > 0:
                try:
                    self.budget.check()
                except TokenLimitExceeded as exc:
                    self._emit(self._token_limit_event(exc))
                    return TurnOutcome.ERROR

            try:
                response = await self._request(system_prompt)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                if signal.cancelled:
                    return TurnOutcome.ABORTED
                logger.error("Provider request failed: %s", exc)
                self._emit(
                    HostEvent.message(
                        Role.ERROR,
                        f"AI Connection Error: {exc}\n\n"
                        "Please check your internet connection or API key.",
                    )
                )
                return TurnOutcome.ERROR

            if signal.cancelled:
                return TurnOutcome.ABORTED

            self._record_usage(response)
            self._push(Message(Role.MODEL, response.text))
            self._emit(HostEvent.message(Role.MODEL, sanitize_for_display(response.text)))

            call = self.parser.parse(response.text)
            if call is None:
                return TurnOutcome.DONE
            if step == self.max_tool_steps:
                logger.warning("Tool step limit (%d) reached; ending turn", self.max_tool_steps)
                self._emit(
                    HostEvent.message(
                        Role.ERROR,
                        f"Stopped after {self.max_tool_steps} tool steps in one turn. "
                        "Send another message to continue.",
                    )
                )
                return TurnOutcome.STEP_LIMIT

            if signal.cancelled:
                return TurnOutcome.ABORTED
            continuation = await self._handle_call(call)
            if signal.cancelled:
                return TurnOutcome.ABORTED
            self._push(Message(Role.USER, continuation))

        return TurnOutcome.STEP_LIMIT  # pragma: no cover - the loop always returns

    async def _handle_call(self, call: ToolCall) -> str:
        if not self.gate.is_allowed(call.tool, self.settings):
            logger.info("audit.agent.denied tool=%s", call.tool)
            self._emit(HostEvent.message(Role.ERROR, f"[Blocked] {call.tool} (Check Settings)"))
            return self.gate.denial_message(call.tool)

        self._emit(HostEvent.status(f"Executing {call.tool}..."))
        tool = self.registry.get(call.tool)
        if tool is None:
            output = "Unknown tool."
        else:
            try:
                output = await tool.execute(call.args, call.content)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("Tool %s failed: %s", call.tool, exc)
                output = f"Error executing tool: {exc}"
        return f"Tool Output:\n{output}"


__all__ = [
    "DEFAULT_MAX_TOOL_STEPS",
    "AgentLoop",
    "CancellationSignal",
    "EventSink",
    "HistorySink",
    "compose_user_message",
]
