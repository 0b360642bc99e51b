"""PlaywrightDriver — Playwright-based page driver.

Implements PageDriver using the Playwright async API.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path  # noqa: TC003
from typing import Any

from playwright.async_api import (
    Browser,
    BrowserContext,
    ConsoleMessage,
    Page,
    Playwright,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError

from pagetap.core.exceptions import EngineError
from pagetap.core.models import DriverConfig, ElementQuery, PageLoad
from pagetap.engine.base import ConsoleListener, PageDriver
from pagetap.engine.bridge import run_query

logger = logging.getLogger(__name__)


class PlaywrightDriver(PageDriver):
    """Drive one Playwright page."""

    def __init__(self, config: DriverConfig | None = None) -> None:
        self._config = config or DriverConfig()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None
        self._console_listeners: list[ConsoleListener] = []
        self._load_count = 0
        self._load_waiters: list[tuple[int, asyncio.Future[None]]] = []

    @property
    def page(self) -> Page:
        """Current Playwright page. Raises EngineError if not started."""
        if self._page is None:
            msg = "PlaywrightDriver not started. Call start() first."
            raise EngineError(msg)
        return self._page

    @property
    def started(self) -> bool:
        return self._page is not None

    @property
    def load_count(self) -> int:
        return self._load_count

    async def start(self, width: int, height: int) -> None:
        """Launch browser and create page."""
        try:
            pw = await async_playwright().start()
            self._playwright = pw

            browser_type = getattr(pw, self._config.browser.value, None)
            if browser_type is None:
                msg = f"Unknown browser: {self._config.browser}"
                raise EngineError(msg)

            self._browser = await browser_type.launch(headless=self._config.headless)
            self._context = await self._browser.new_context(
                viewport={"width": width, "height": height},
                ignore_https_errors=True,
            )
            # Step timeouts are enforced by the job queue.
            self._context.set_default_navigation_timeout(0)
            self._page = await self._context.new_page()
        except EngineError:
            raise
        except Exception as e:
            msg = f"Failed to start PlaywrightDriver: {e}"
            raise EngineError(msg) from e

        self._page.on("console", self._handle_console)
        self._page.on("load", self._handle_load)

    async def set_viewport(self, width: int, height: int) -> None:
        await self.page.set_viewport_size({"width": width, "height": height})

    def on_console(self, listener: ConsoleListener) -> None:
        self._console_listeners.append(listener)

    async def open(self, url: str) -> PageLoad:
        """Navigate to URL and wait for the load event."""
        try:
            await self.page.goto(url, wait_until="load")
        except PlaywrightError as e:
            logger.warning("Navigation to %s failed: %s", url, e)
            return PageLoad(url=self.page.url or url, ok=False, error=str(e))
        return PageLoad(url=self.page.url)

    async def wait_for_load(self, after: int) -> PageLoad:
        if self._load_count <= after:
            waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
            entry = (after, waiter)
            self._load_waiters.append(entry)
            try:
                await waiter
            finally:
                if entry in self._load_waiters:
                    self._load_waiters.remove(entry)
        return PageLoad(url=self.page.url)

    async def evaluate(self, script: str) -> Any:
        try:
            return await self.page.evaluate(script)
        except PlaywrightError as e:
            msg = f"Evaluation failed: {e}"
            raise EngineError(msg) from e

    async def query(self, query: ElementQuery) -> Any:
        try:
            return await run_query(self.page, query)
        except PlaywrightError as e:
            msg = f"{query.op} on {query.selector!r} failed: {e}"
            raise EngineError(msg) from e

    async def render(self, path: Path) -> Path:
        """Save a screenshot (png/jpeg) or a PDF print of the page."""
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            if path.suffix.lower() == ".pdf":
                await self.page.pdf(path=str(path))
            else:
                kind = "jpeg" if path.suffix.lower() in (".jpg", ".jpeg") else "png"
                await self.page.screenshot(path=str(path), type=kind, full_page=False)
        except PlaywrightError as e:
            msg = f"Render to {path} failed: {e}"
            raise EngineError(msg) from e
        return path

    async def release(self) -> None:
        """Close browser and cleanup."""
        try:
            if self._context:
                await self._context.close()
            if self._browser:
                await self._browser.close()
            if self._playwright:
                await self._playwright.stop()
        except Exception as e:
            msg = f"Failed to stop PlaywrightDriver: {e}"
            raise EngineError(msg) from e
        finally:
            for _, waiter in self._load_waiters:
                waiter.cancel()
            self._load_waiters.clear()
            self._page = None
            self._context = None
            self._browser = None
            self._playwright = None

    def _handle_console(self, message: ConsoleMessage) -> None:
        for listener in self._console_listeners:
            listener(message.text)

    def _handle_load(self, _page: Page) -> None:
        self._load_count += 1
        still_waiting = []
        for after, waiter in self._load_waiters:
            if self._load_count > after:
                if not waiter.done():
                    waiter.set_result(None)
            else:
                still_waiting.append((after, waiter))
        self._load_waiters = still_waiting
