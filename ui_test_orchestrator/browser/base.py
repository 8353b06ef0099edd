"""Abstract base class for browser automation backends."""

from abc import ABC, abstractmethod
from typing import Any, Literal

from ui_test_orchestrator.models.locator import Locator

type WaitCondition = Literal["present", "visible", "clickable"]


class BrowserError(Exception):
    """Base class for backend-neutral browser errors."""


class ElementNotFoundError(BrowserError):
    """Element did not reach the awaited condition within the wait timeout."""


class NotInteractableError(BrowserError):
    """Element exists but cannot receive the interaction."""


class TransientBrowserError(BrowserError):
    """Failure that is expected to clear up on retry."""


class StaleElementError(TransientBrowserError):
    """Element reference no longer attached to the document."""


class InterceptedError(TransientBrowserError):
    """Another element would receive the click."""


class TypedValueMismatchError(TransientBrowserError):
    """Value observed in the field differs from the value typed."""


class PageLoadTimeoutError(TransientBrowserError):
    """Document did not reach the complete ready state in time."""


class BrowserBackend(ABC):
    """Opaque browser automation capability driven by one worker.

    Element references are whatever the backend returns from ``find`` or
    ``wait_for``; callers only pass them back into the same backend.
    """

    kind: str

    @abstractmethod
    def navigate(self, url: str) -> None:
        """Load ``url`` in the current window."""

    @abstractmethod
    def wait_for(
        self, locator: Locator, condition: WaitCondition, timeout: float
    ) -> Any:
        """Wait until the element satisfies ``condition`` and return it.

        Raises:
            ElementNotFoundError: If the condition does not hold within timeout

        """

    @abstractmethod
    def find(self, locator: Locator) -> Any | None:
        """Return the element right now, or None when it is absent."""

    @abstractmethod
    def click(self, element: Any) -> None:
        """Click the element."""

    @abstractmethod
    def clear(self, element: Any) -> None:
        """Clear an input element."""

    @abstractmethod
    def type(self, element: Any, text: str) -> None:
        """Send keystrokes to the element."""

    @abstractmethod
    def read_text(self, element: Any) -> str:
        """Return the element's visible text."""

    @abstractmethod
    def read_attribute(self, element: Any, name: str) -> str | None:
        """Return an attribute or property of the element."""

    @abstractmethod
    def current_url(self) -> str:
        """Return the URL of the current document."""

    @abstractmethod
    def screenshot(self) -> bytes:
        """Capture the viewport as PNG bytes."""

    @abstractmethod
    def execute_script(self, source: str, *args: Any) -> Any:
        """Run JavaScript in the page with ``arguments[n]`` bound to args."""

    @abstractmethod
    def quit(self) -> None:
        """Terminate the browser process."""

    def document_ready(self) -> bool:
        """Return whether the current document finished loading."""
        return bool(self.execute_script("return document.readyState === 'complete'"))
