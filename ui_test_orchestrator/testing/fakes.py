"""In-memory browser backend for tests."""

import threading
from collections import defaultdict, deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from ui_test_orchestrator.browser.base import BrowserBackend, ElementNotFoundError
from ui_test_orchestrator.browser.config import BrowserConfig
from ui_test_orchestrator.models.locator import Locator

PNG_HEADER = b"\x89PNG\r\n\x1a\n"


@dataclass(eq=False, kw_only=True)
class FakeElement:
    """Element of a fake page."""

    locator: Locator
    text: str = ""
    value: str = ""
    visible: bool = True
    accepts_input: bool = True
    attributes: dict[str, str] = field(default_factory=dict)
    clicks: int = 0
    on_click: Callable[[], None] | None = None


class FakeBackend(BrowserBackend):
    """Browser backend over a dict of elements with scriptable failures.

    ``fail(operation, locator, *errors)`` queues errors raised by successive
    calls of ``operation`` (``wait_for``, ``click``, ``clear``, ``type``,
    ``read_text``, ``screenshot``) against the element at ``locator``.
    """

    def __init__(
        self,
        kind: str = "chrome",
        *,
        elements: Iterable[FakeElement] = (),
        url: str = "about:blank",
        ready: bool = True,
        screenshot_error: Exception | None = None,
    ):
        self.kind = kind
        self.elements: dict[Locator, FakeElement] = {e.locator: e for e in elements}
        self.url = url
        self.ready = ready
        self.screenshot_error = screenshot_error
        self.calls: list[tuple[str, Any]] = []
        self.scripts: list[str] = []
        self.screenshots = 0
        self.quit_called = False
        self._failures: dict[tuple[str, Locator | None], deque[Exception]] = (
            defaultdict(deque)
        )
        self._lock = threading.Lock()

    def add(self, element: FakeElement) -> FakeElement:
        self.elements[element.locator] = element
        return element

    def fail(self, operation: str, locator: Locator | None, *errors: Exception) -> None:
        self._failures[(operation, locator)].extend(errors)

    def count(self, operation: str) -> int:
        """Number of recorded calls of ``operation``."""
        return sum(1 for name, _ in self.calls if name == operation)

    def _record(
        self, operation: str, locator: Locator | None, detail: Any = None
    ) -> None:
        with self._lock:
            self.calls.append((operation, detail if detail is not None else locator))
            queue = self._failures.get((operation, locator))
            error = queue.popleft() if queue else None
        if error is not None:
            raise error

    def navigate(self, url: str) -> None:
        self._record("navigate", None, url)
        self.url = url

    def wait_for(self, locator: Locator, condition: str, timeout: float) -> FakeElement:
        self._record("wait_for", locator)
        element = self.elements.get(locator)
        if element is None or (condition != "present" and not element.visible):
            raise ElementNotFoundError(
                f"element not found: {locator} was not {condition} within {timeout}s"
            )
        return element

    def find(self, locator: Locator) -> FakeElement | None:
        return self.elements.get(locator)

    def click(self, element: FakeElement) -> None:
        self._record("click", element.locator)
        element.clicks += 1
        if element.on_click is not None:
            element.on_click()

    def clear(self, element: FakeElement) -> None:
        self._record("clear", element.locator)
        element.value = ""

    def type(self, element: FakeElement, text: str) -> None:
        self._record("type", element.locator)
        if element.accepts_input:
            element.value += text

    def read_text(self, element: FakeElement) -> str:
        self._record("read_text", element.locator)
        return element.text

    def read_attribute(self, element: FakeElement, name: str) -> str | None:
        if name == "value":
            return element.value
        return element.attributes.get(name)

    def current_url(self) -> str:
        return self.url

    def screenshot(self) -> bytes:
        self._record("screenshot", None)
        if self.screenshot_error is not None:
            raise self.screenshot_error
        self.screenshots += 1
        return PNG_HEADER + f"fake-{self.screenshots}".encode()

    def execute_script(self, source: str, *args: Any) -> Any:
        self.scripts.append(source)
        element = args[0] if args and isinstance(args[0], FakeElement) else None
        if "readyState" in source:
            return self.ready
        if element is None:
            return None
        if "click()" in source:
            element.clicks += 1
            if element.on_click is not None:
                element.on_click()
        elif "arguments[0].value = arguments[1]" in source:
            element.value = args[1]
        elif "setAttribute('style'" in source:
            element.attributes["style"] = args[1]
        elif "removeAttribute('style')" in source:
            element.attributes.pop("style", None)
        return None

    def quit(self) -> None:
        self.quit_called = True


class FakeBackendFactory:
    """Session factory producing a fresh fake backend per session."""

    def __init__(self, build: Callable[[], FakeBackend] = FakeBackend):
        self.build = build
        self.created: list[FakeBackend] = []

    def __call__(self, config: BrowserConfig) -> FakeBackend:
        backend = self.build()
        backend.kind = config.kind
        self.created.append(backend)
        return backend
