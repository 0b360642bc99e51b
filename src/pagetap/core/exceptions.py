"""pagetap custom exception hierarchy.

All exceptions inherit from PageTapError.
Assertion failures are not exceptions: they are recorded by the reporter.
"""


class PageTapError(Exception):
    """Base exception for all pagetap errors."""


class ConfigError(PageTapError):
    """Configuration file load/validation error."""


class EngineError(PageTapError):
    """Page driver error (browser launch failure, evaluation failure, etc.)."""


class UnresolvedValueError(PageTapError):
    """A DeferredValue was read before its producing job resolved it."""

    def __init__(self, label: str | None = None) -> None:
        self.label = label
        message = "Unresolved value queried"
        if label:
            message = f"{message}: {label}"
        super().__init__(message)


class SessionError(PageTapError):
    """Session misuse (finish() queued twice, etc.)."""


class ReporterError(PageTapError):
    """Report stream write error."""


class ScriptError(PageTapError):
    """Test script could not be loaded."""
