"""Resilient execution of atomic UI operations."""

import logging
import time
from collections.abc import Callable
from typing import Any, Protocol

from ui_test_orchestrator.actions.highlight import highlight_and_capture, mask_sensitive
from ui_test_orchestrator.actions.strategy import (
    ActionStrategy,
    Operation,
    SettlePolicy,
    StrategySelector,
)
from ui_test_orchestrator.browser.base import (
    BrowserBackend,
    BrowserError,
    ElementNotFoundError,
    PageLoadTimeoutError,
    TransientBrowserError,
    TypedValueMismatchError,
)
from ui_test_orchestrator.errors import ActionError, VerificationError
from ui_test_orchestrator.models.locator import Locator
from ui_test_orchestrator.sessions import SessionRegistry

log = logging.getLogger(__name__)

RETRYABLE_ERRORS = (TransientBrowserError, ElementNotFoundError)
READY_POLL_INTERVAL = 0.5


class FailureSink(Protocol):
    """Receives the first failure of the running scenario."""

    def record_failure(self, error: BaseException) -> None: ...


class EvidenceSink(Protocol):
    """Receives screenshots captured while acting."""

    def attach_evidence(self, caption: str, data: bytes) -> None: ...


class ResilientActionExecutor:
    """Wraps UI operations with bounded retry, backoff and evidence capture.

    Every operation resolves a strategy for the current browser kind, waits
    for the element-ready precondition, highlights and captures the target,
    then acts. Transient failures and element-wait timeouts are retried with
    ``attempt * base_delay`` backoff until the strategy's bound; exhaustion
    raises ActionError after reporting it to the failure sink.

    Worst-case latency of one call is the strategy's total backoff plus one
    wait timeout per attempt.
    """

    def __init__(
        self,
        *,
        sessions: SessionRegistry,
        strategies: StrategySelector,
        failure_sink: FailureSink,
        evidence_sink: EvidenceSink | None = None,
        settle: SettlePolicy | None = None,
        wait_timeout: float | None = None,
        capture_screenshots: bool = True,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.sessions = sessions
        self.strategies = strategies
        self.failure_sink = failure_sink
        self.evidence_sink = evidence_sink
        self.settle = settle or SettlePolicy()
        self.wait_timeout = wait_timeout or sessions.config.wait_timeout
        self.capture_screenshots = capture_screenshots
        self._sleep = sleep
        self._clock = clock

    def locate(self, locator: Locator) -> Any:
        """Return the element once it is present in the document."""

        def attempt(backend: BrowserBackend, strategy: ActionStrategy) -> Any:
            element = self._wait(backend, strategy, "locate", locator)
            self._capture(backend, element, f"Located element: {locator}")
            return element

        return self._perform("locate", locator, attempt)

    def click(self, locator: Locator) -> None:
        def attempt(backend: BrowserBackend, strategy: ActionStrategy) -> None:
            element = self._wait(backend, strategy, "click", locator)
            strategy.prepare(backend, element)
            self._capture(backend, element, f"Clicking on element: {locator}")
            strategy.click(backend, element)

        self._perform("click", locator, attempt)

    def type(self, locator: Locator, text: str) -> None:
        """Replace the field's value with ``text`` and verify it was accepted."""
        masked = mask_sensitive(text)

        def attempt(backend: BrowserBackend, strategy: ActionStrategy) -> None:
            element = self._wait(backend, strategy, "type", locator)
            strategy.prepare(backend, element)
            self._capture(backend, element, f"Typing into: {locator} | Text: {masked}")
            strategy.type(backend, element, text)

            entered = backend.read_attribute(element, "value")
            if entered is None or entered.strip() != text.strip():
                raise TypedValueMismatchError(
                    f"typed value mismatch in {locator}: expected {masked!r}"
                )

        self._perform("type", locator, attempt)

    def read_text(self, locator: Locator) -> str:
        def attempt(backend: BrowserBackend, strategy: ActionStrategy) -> str:
            element = self._wait(backend, strategy, "read_text", locator)
            text = backend.read_text(element).strip()
            self._capture(
                backend, element, f"Getting text from: {locator} | Text: {text}"
            )
            return text

        return self._perform("read_text", locator, attempt)

    def read_attribute(self, locator: Locator, name: str) -> str | None:
        def attempt(backend: BrowserBackend, strategy: ActionStrategy) -> str | None:
            element = self._wait(backend, strategy, "read_attribute", locator)
            value = backend.read_attribute(element, name)
            self._capture(
                backend, element, f"Getting attribute '{name}' from: {locator}"
            )
            return value

        return self._perform("read_attribute", locator, attempt)

    def exists(self, locator: Locator, timeout: float | None = None) -> bool:
        """Return whether the element appears within ``timeout`` seconds.

        Absence is an answer, not a failure: nothing is retried or recorded.
        """
        backend = self.sessions.acquire().backend
        wait = timeout if timeout is not None else self.wait_timeout
        try:
            element = backend.wait_for(locator, "present", wait)
        except BrowserError as e:
            log.info("Element does not exist: %s (%s)", locator, e)
            return False
        self._capture(backend, element, f"Element exists: {locator}")
        return True

    def navigate(self, url: str) -> None:
        """Load ``url`` and wait for the document to finish loading."""

        def attempt(backend: BrowserBackend, strategy: ActionStrategy) -> None:
            log.info("[%s] Navigating to: %s", strategy.name, url)
            backend.navigate(url)
            self._wait_until_ready(backend, url)
            self._capture_page(backend, f"Page loaded: {url}")

        self._perform("navigate", None, attempt)

    def scroll_to(self, locator: Locator) -> None:
        def attempt(backend: BrowserBackend, strategy: ActionStrategy) -> None:
            element = self._wait(backend, strategy, "locate", locator)
            backend.execute_script(
                "arguments[0].scrollIntoView({block: 'center'});", element
            )
            self.settle.after_scroll()
            self._capture(backend, element, f"Scrolled to element: {locator}")

        self._perform("locate", locator, attempt)

    def verify_text_contains(self, locator: Locator, expected: str) -> str:
        """Assert that the element's text contains ``expected``.

        Raises:
            VerificationError: If the text does not contain the expected value
            ActionError: If the element cannot be read

        """
        actual = self.read_text(locator)
        if expected not in actual:
            error = VerificationError(
                f"Expected text '{expected}' but got '{actual}' - Locator: {locator}"
            )
            self.failure_sink.record_failure(error)
            raise error
        log.info("Text verification passed: %s", expected)
        return actual

    def verify_url_contains(self, expected: str) -> str:
        backend = self.sessions.acquire().backend
        current = backend.current_url()
        self._capture_page(backend, f"Verifying URL contains: {expected}")
        if expected not in current:
            error = VerificationError(
                f"Expected URL to contain '{expected}' but actual URL is '{current}'"
            )
            self.failure_sink.record_failure(error)
            raise error
        return current

    def _perform[T](
        self,
        operation: Operation,
        locator: Locator | None,
        attempt_fn: Callable[[BrowserBackend, ActionStrategy], T],
    ) -> T:
        backend = self.sessions.acquire().backend
        strategy = self.strategies.for_kind(self.sessions.current_browser_kind())
        bound = strategy.retry.max_attempts
        target = locator if locator is not None else "page"

        attempt = 1
        while True:
            try:
                result = attempt_fn(backend, strategy)
            except RETRYABLE_ERRORS as e:
                log.warning(
                    "[%s] Attempt %d/%d failed for %s on %s: %s",
                    strategy.name,
                    attempt,
                    bound,
                    operation,
                    target,
                    e,
                )
                if attempt >= bound:
                    raise self._exhausted(operation, locator, e, attempt) from e
                self._sleep(strategy.retry.delay(attempt))
                attempt += 1
                continue
            except Exception as e:
                log.warning(
                    "[%s] %s on %s failed without retry: %s",
                    strategy.name,
                    operation,
                    target,
                    e,
                )
                raise self._exhausted(operation, locator, e, attempt) from e

            log.info(
                "[%s] %s succeeded on %s (attempt %d)",
                strategy.name,
                operation,
                target,
                attempt,
            )
            return result

    def _exhausted(
        self,
        operation: Operation,
        locator: Locator | None,
        cause: Exception,
        attempts: int,
    ) -> ActionError:
        error = ActionError(operation, locator, cause, attempts)
        log.error("%s", error)
        self.failure_sink.record_failure(error)
        return error

    def _wait(
        self,
        backend: BrowserBackend,
        strategy: ActionStrategy,
        operation: Operation,
        locator: Locator,
    ) -> Any:
        return backend.wait_for(
            locator, strategy.condition_for(operation), self.wait_timeout
        )

    def _wait_until_ready(self, backend: BrowserBackend, url: str) -> None:
        deadline = self._clock() + self.wait_timeout
        while not backend.document_ready():
            if self._clock() >= deadline:
                raise PageLoadTimeoutError(
                    f"page load timeout: {url} not ready "
                    f"within {self.wait_timeout:.1f}s"
                )
            self._sleep(READY_POLL_INTERVAL)

    def _capture(self, backend: BrowserBackend, element: Any, caption: str) -> None:
        if not self.capture_screenshots or self.evidence_sink is None:
            return
        screenshot = highlight_and_capture(backend, element, self.settle)
        if screenshot is not None:
            self.evidence_sink.attach_evidence(caption, screenshot)

    def _capture_page(self, backend: BrowserBackend, caption: str) -> None:
        if not self.capture_screenshots or self.evidence_sink is None:
            return
        try:
            screenshot = backend.screenshot()
        except Exception as e:
            log.warning("Failed to capture screenshot: %s", e)
            return
        self.evidence_sink.attach_evidence(caption, screenshot)
