"""BaseReporter ABC — assertion result reporting interface.

TapReporter implements this.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

# Marks got/expected as not supplied (None is a legitimate value).
MISSING: Any = object()


class AssertionCounters(BaseModel):
    """Running assertion totals. passed + failed == total."""

    total: int = Field(default=0, ge=0)
    passed: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)


class BaseReporter(ABC):
    """Assertion reporter abstract interface."""

    @property
    @abstractmethod
    def counters(self) -> AssertionCounters:
        """Current totals."""
        ...

    @abstractmethod
    def record(
        self,
        success: bool,
        description: str,
        got: Any = MISSING,
        expected: Any = MISSING,
    ) -> int:
        """Record one assertion and return its 1-based test number."""
        ...

    @abstractmethod
    def diag(self, message: str, indent: int = 0) -> None:
        """Emit a free-form diagnostic, one line per message line."""
        ...

    @abstractmethod
    def finish(self) -> int:
        """Emit the summary and return the exit status (0 = all passed)."""
        ...

    @abstractmethod
    def write_line(self, line: str) -> None:
        """Emit a raw protocol line."""
        ...

    @property
    @abstractmethod
    def format_name(self) -> str:
        """Report format name: 'tap'."""
        ...
