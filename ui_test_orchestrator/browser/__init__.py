"""Browser automation backends."""

from ui_test_orchestrator.browser.base import (
    BrowserBackend,
    BrowserError,
    ElementNotFoundError,
    InterceptedError,
    NotInteractableError,
    PageLoadTimeoutError,
    StaleElementError,
    TransientBrowserError,
    TypedValueMismatchError,
)
from ui_test_orchestrator.browser.config import BrowserConfig

__all__ = [
    "BrowserBackend",
    "BrowserConfig",
    "BrowserError",
    "ElementNotFoundError",
    "InterceptedError",
    "NotInteractableError",
    "PageLoadTimeoutError",
    "StaleElementError",
    "TransientBrowserError",
    "TypedValueMismatchError",
]
