"""pagetap — sequential browser acceptance tests with TAP output."""

from pagetap.core.deferred import DeferredValue
from pagetap.core.session import Session

__version__ = "0.1.0"

__all__ = ["DeferredValue", "Session", "__version__"]
