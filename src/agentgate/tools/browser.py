"""Headless browser tool backed by Playwright.

The browser and page are created lazily on the first ``launch`` or
``navigate``. Every navigation target is revalidated by the URLValidator and,
for external hosts, confirmed with the user before the page moves. Any
failure while launching or driving the page tears the browser down before
the error propagates, so the next action starts from a clean state.

Actions (attributes of ``<browser_action ... />``):
    launch   [url]        start the browser, optionally navigate
    navigate url          load a page
    click    selector     click an element
    type     selector text fill an input
    read                  return the page's visible text
    close                 shut the browser down (idempotent)
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from agentgate.core.console import get_logger
from agentgate.core.result import AgentGateError, SecurityError, ToolExecutionError
from agentgate.core.security.url import URLValidator
from agentgate.tools.base import Confirmer, Tool, ask, require_arg

logger = get_logger(__name__)

MAX_READ_CHARS = 20_000
SECURE_DEFAULT_ARGS: tuple[str, ...] = ("--disable-dev-shm-usage",)
NO_SANDBOX_ARGS: tuple[str, ...] = ("--no-sandbox",)

Launcher = Callable[[], Awaitable[Any]]


async def start_playwright() -> Any:
    """Start the Playwright driver and return its handle."""
    try:
        from playwright.async_api import async_playwright
    except ImportError as exc:
        raise ToolExecutionError(
            "Playwright is not installed. "
            "Install it with: pip install playwright && playwright install chromium"
        ) from exc
    return await async_playwright().start()


class BrowserTool(Tool):
    name = "browser_action"
    usage_description = (
        '<browser_action action="launch" url="https://example.com" />\n'
        '<browser_action action="navigate" url="https://example.com" />\n'
        '<browser_action action="click" selector="#submit" />\n'
        '<browser_action action="type" selector="#search" text="query" />\n'
        '<browser_action action="read" />\n'
        '<browser_action action="close" />'
    )

    def __init__(
        self,
        validator: URLValidator,
        *,
        confirm: Confirmer | None = None,
        launcher: Launcher = start_playwright,
        headless: bool = True,
    ) -> None:
        self.validator = validator
        self.confirm = confirm
        self._launcher = launcher
        self.headless = headless
        self._playwright: Any = None
        self._browser: Any = None
        self._page: Any = None

    @property
    def is_open(self) -> bool:
        return self._page is not None

    @property
    def timeout_ms(self) -> int:
        return self.validator.get_timeout()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _launch_args(self) -> list[str]:
        requested = list(SECURE_DEFAULT_ARGS)
        if self.validator.allow_no_sandbox:
            requested.extend(NO_SANDBOX_ARGS)
        check = self.validator.validate_browser_args(requested)
        for warning in check.warnings:
            logger.warning("audit.browser.args %s", warning)
        if not check.allowed:
            raise SecurityError(
                "Browser launch blocked: " + "; ".join(check.warnings),
            )
        return list(check.sanitized_args)

    async def _ensure_page(self) -> Any:
        if self._page is not None:
            return self._page
        args = self._launch_args()
        self._playwright = await self._launcher()
        self._browser = await self._playwright.chromium.launch(headless=self.headless, args=args)
        page = await self._browser.new_page()
        page.set_default_timeout(self.timeout_ms)
        page.set_default_navigation_timeout(self.timeout_ms)
        self._page = page
        logger.info("Browser launched headless=%s", self.headless)
        return page

    async def _cleanup(self) -> None:
        page, browser, driver = self._page, self._browser, self._playwright
        self._page = self._browser = self._playwright = None
        for label, closer in (
            ("page", getattr(page, "close", None)),
            ("browser", getattr(browser, "close", None)),
            ("playwright", getattr(driver, "stop", None)),
        ):
            if closer is None:
                continue
            try:
                await closer()
            except Exception as exc:
                logger.debug("Ignoring error while closing %s: %s", label, exc)

    async def close(self) -> None:
        await self._cleanup()

    async def dispose(self) -> None:
        await self._cleanup()

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def _bounded(self, operation: Awaitable[Any], description: str) -> Any:
        try:
            return await asyncio.wait_for(operation, self.timeout_ms / 1000)
        except asyncio.TimeoutError as exc:
            raise ToolExecutionError(f"{description} timed out after {self.timeout_ms}ms") from exc

    async def _navigate(self, url: str) -> str:
        check = self.validator.validate_url(url)
        if not check.allowed:
            return f"Error: URL blocked - {check.reason}"
        target = check.normalized_url or url
        if check.requires_confirmation:
            approved = await ask(self.confirm, f"Allow the browser to open {target}?")
            if not approved:
                logger.info("audit.browser.declined url=%r", target)
                return "Navigation cancelled: User denied access to external URL."
        page = await self._ensure_page()
        await self._bounded(
            page.goto(target, wait_until="domcontentloaded", timeout=self.timeout_ms),
            "Navigation",
        )
        logger.info("audit.browser.navigate url=%r", target)
        return f"Navigated to {target}"

    async def execute(self, args: Mapping[str, Any], content: str | None = None) -> str:
        action = require_arg(args, "action").strip().lower()
        if action == "close":
            await self.close()
            return "Browser closed."

        if action not in {"launch", "navigate", "click", "type", "read"}:
            raise ToolExecutionError(f"Unknown browser action: {action}")

        try:
            if action == "launch":
                url = args.get("url")
                if url:
                    return await self._navigate(str(url))
                await self._ensure_page()
                return "Browser launched."
            if action == "navigate":
                return await self._navigate(require_arg(args, "url"))
            if self._page is None:
                return "Error: Browser not open. Use 'launch' first."
            if action == "click":
                selector = require_arg(args, "selector")
                await self._bounded(self._page.click(selector), "Click")
                return f"Clicked {selector}"
            if action == "type":
                selector = require_arg(args, "selector")
                text = str(args.get("text", content or ""))
                await self._bounded(self._page.fill(selector, text), "Typing")
                return f"Typed into {selector}"
            text = await self._bounded(self._page.inner_text("body"), "Reading")
            if len(text) > MAX_READ_CHARS:
                text = text[:MAX_READ_CHARS] + "\n... [truncated]"
            return text
        except asyncio.CancelledError:
            await self._cleanup()
            raise
        except SecurityError:
            raise
        except AgentGateError:
            await self._cleanup()
            raise
        except Exception as exc:
            await self._cleanup()
            raise ToolExecutionError(f"Browser error: {exc}") from exc


__all__ = ["BrowserTool", "MAX_READ_CHARS", "NO_SANDBOX_ARGS", "SECURE_DEFAULT_ARGS", "start_playwright"]
