"""TapReporter — TAP-compatible assertion output.

    ok 1 Homepage loaded
    not ok 2 Search results
    # 	Got: Repositories (0)
    # 	Expected: Repositories (1)
    1..2
    # Looks like you failed 1 test(s) of 2.
"""

from __future__ import annotations

import logging
import re
import sys
from typing import Any, TextIO

from pagetap.core.exceptions import ReporterError
from pagetap.reporters.base import MISSING, AssertionCounters, BaseReporter

logger = logging.getLogger(__name__)

_LINE_SPLIT = re.compile(r"\r?\n")


class TapReporter(BaseReporter):
    """Write TAP lines to a text stream as results arrive."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._counters = AssertionCounters()

    @property
    def format_name(self) -> str:
        return "tap"

    @property
    def counters(self) -> AssertionCounters:
        return self._counters.model_copy()

    def record(
        self,
        success: bool,
        description: str,
        got: Any = MISSING,
        expected: Any = MISSING,
    ) -> int:
        self._counters.total += 1
        n = self._counters.total
        if success:
            self.write_line(f"ok {n} {description}")
            self._counters.passed += 1
        else:
            self.write_line(f"not ok {n} {description}")
            if got is not MISSING and expected is not MISSING:
                self.diag(f"Got: {_show(got)}\nExpected: {_show(expected)}", indent=1)
            self._counters.failed += 1
        return n

    def diag(self, message: str, indent: int = 0) -> None:
        prefix = "\t" * indent
        for line in _LINE_SPLIT.split(str(message)):
            self.write_line(f"# {prefix}{line}")

    def finish(self) -> int:
        total = self._counters.total
        failed = self._counters.failed
        if total == 0:
            self.write_line("1..0")
            self.diag("No tests run!")
            return 0
        self.write_line(f"1..{total}")
        if failed:
            self.diag(f"Looks like you failed {failed} test(s) of {total}.")
            return 1
        return 0

    def write_line(self, line: str) -> None:
        try:
            self._stream.write(line + "\n")
            self._stream.flush()
        except (OSError, ValueError) as e:
            msg = f"Cannot write report line: {e}"
            raise ReporterError(msg) from e


def _show(value: Any) -> str:
    """Render a value for the got/expected block."""
    if isinstance(value, re.Pattern):
        return f"/{value.pattern}/"
    return str(value)
