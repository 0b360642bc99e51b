"""Page driver plugin registry."""

from pagetap.engine.web import PlaywrightDriver

DRIVER_REGISTRY: dict[str, type] = {
    "playwright": PlaywrightDriver,
}

__all__ = ["DRIVER_REGISTRY", "PlaywrightDriver"]
