"""DeferredValue — single-assignment placeholder for a job's result.

A job that produces a value asynchronously hands out a DeferredValue at
enqueue time. Any job queued after it may read the value, because the queue
runs jobs strictly in order.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pagetap.core.exceptions import UnresolvedValueError


class DeferredState(StrEnum):
    PENDING = "pending"
    RESOLVED = "resolved"


class DeferredValue:
    """A value that will eventually be set."""

    def __init__(self, label: str | None = None) -> None:
        self.label = label
        self._state = DeferredState.PENDING
        self._value: Any = None

    @property
    def state(self) -> DeferredState:
        return self._state

    @property
    def resolved(self) -> bool:
        return self._state is DeferredState.RESOLVED

    def resolve(self, value: Any) -> None:
        """Assign the value. A second call re-assigns it."""
        self._value = value
        self._state = DeferredState.RESOLVED

    def read(self) -> Any:
        """Return the assigned value.

        Raises:
            UnresolvedValueError: If called before resolve().
        """
        match self._state:
            case DeferredState.RESOLVED:
                return self._value
            case _:
                raise UnresolvedValueError(self.label)

    def __repr__(self) -> str:
        if self.resolved:
            return f"DeferredValue({self._value!r})"
        return f"DeferredValue(<pending {self.label or ''}>)"


def read_through(value: Any) -> Any:
    """Return the concrete value behind a DeferredValue, or value itself."""
    if isinstance(value, DeferredValue):
        return value.read()
    return value
