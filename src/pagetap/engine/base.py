"""PageDriver ABC — headless page control interface.

PlaywrightDriver implements this. The session only talks to the page
through these methods, so tests can substitute an in-memory driver.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path  # noqa: TC003
from typing import Any

from pagetap.core.models import ElementQuery, PageLoad

ConsoleListener = Callable[[str], None]


class PageDriver(ABC):
    """Single-page browser driver abstract interface."""

    @property
    @abstractmethod
    def started(self) -> bool:
        """True once start() has created the page."""
        ...

    @property
    @abstractmethod
    def load_count(self) -> int:
        """Number of page loads finished so far."""
        ...

    @abstractmethod
    async def start(self, width: int, height: int) -> None:
        """Launch the browser and create the page."""
        ...

    @abstractmethod
    async def set_viewport(self, width: int, height: int) -> None:
        """Resize the page viewport."""
        ...

    @abstractmethod
    def on_console(self, listener: ConsoleListener) -> None:
        """Register a callback for in-page console messages."""
        ...

    @abstractmethod
    async def open(self, url: str) -> PageLoad:
        """Navigate to url and return once the load has finished."""
        ...

    @abstractmethod
    async def wait_for_load(self, after: int) -> PageLoad:
        """Return once load_count exceeds ``after``."""
        ...

    @abstractmethod
    async def evaluate(self, script: str) -> Any:
        """Evaluate a JavaScript expression in the page and return its value."""
        ...

    @abstractmethod
    async def query(self, query: ElementQuery) -> Any:
        """Run an element operation through the query bridge."""
        ...

    @abstractmethod
    async def render(self, path: Path) -> Path:
        """Render the page to a file (png, jpeg or pdf by extension)."""
        ...

    @abstractmethod
    async def release(self) -> None:
        """Close the page and the browser."""
        ...
