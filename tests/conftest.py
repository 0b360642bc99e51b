"""Shared fixtures: an in-memory page driver so sessions run without a browser."""

from __future__ import annotations

import asyncio
import io
from pathlib import Path
from typing import Any

import pytest

from pagetap.core.exceptions import EngineError
from pagetap.core.models import ElementOp, ElementQuery, PageLoad
from pagetap.engine.base import ConsoleListener, PageDriver
from pagetap.engine.bridge import QUERY_SET
from pagetap.reporters.tap import TapReporter


class FakeDriver(PageDriver):
    """PageDriver backed by dicts.

    ``links`` maps a selector to the URL a click on it loads (after a short
    delay, like a real navigation). ``console`` messages are emitted on
    every open().
    """

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.texts: dict[str, str] = {}
        self.values: dict[str, Any] = {}
        self.scripts: dict[str, Any] = {}
        self.links: dict[str, str] = {}
        self.console: list[str] = []
        self.hang_open = False
        self.fail_query: str | None = None
        self.released = False
        self._listeners: list[ConsoleListener] = []
        self._started = False
        self._load_count = 0
        self._url = "about:blank"

    @property
    def started(self) -> bool:
        return self._started

    @property
    def load_count(self) -> int:
        return self._load_count

    async def start(self, width: int, height: int) -> None:
        self.calls.append(("start", width, height))
        self._started = True

    async def set_viewport(self, width: int, height: int) -> None:
        self.calls.append(("set_viewport", width, height))

    def on_console(self, listener: ConsoleListener) -> None:
        self._listeners.append(listener)

    async def open(self, url: str) -> PageLoad:
        self.calls.append(("open", url))
        if self.hang_open:
            await asyncio.Event().wait()
        for message in self.console:
            for listener in self._listeners:
                listener(message)
        self._load(url)
        return PageLoad(url=url)

    async def wait_for_load(self, after: int) -> PageLoad:
        while self._load_count <= after:
            await asyncio.sleep(0.001)
        return PageLoad(url=self._url)

    async def evaluate(self, script: str) -> Any:
        self.calls.append(("evaluate", script))
        return self.scripts[script]

    async def query(self, query: ElementQuery) -> Any:
        self.calls.append(("query", query.op.value, query.selector))
        if self.fail_query == query.selector:
            msg = f"{query.op} on {query.selector!r} failed: boom"
            raise EngineError(msg)
        if query.op == ElementOp.TEXT:
            return self.texts.get(query.selector, "")
        if query.op == ElementOp.VAL:
            if query.args:
                self.values[query.selector] = query.args[0]
                return QUERY_SET
            return self.values.get(query.selector)
        if query.selector in self.links:
            target = self.links[query.selector]
            asyncio.get_running_loop().call_later(0.01, self._load, target)
        return QUERY_SET

    async def render(self, path: Path) -> Path:
        self.calls.append(("render", path))
        return path

    async def release(self) -> None:
        self.calls.append(("release",))
        self.released = True
        self._started = False

    def _load(self, url: str) -> None:
        self._url = url
        self._load_count += 1


@pytest.fixture
def fake_driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def reporter(stream: io.StringIO) -> TapReporter:
    return TapReporter(stream)
