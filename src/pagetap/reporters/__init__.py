"""Reporter plugin registry."""

from pagetap.reporters.tap import TapReporter

REPORTER_REGISTRY: dict[str, type] = {
    "tap": TapReporter,
}

__all__ = ["REPORTER_REGISTRY", "TapReporter"]
