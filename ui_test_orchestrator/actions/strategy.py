"""Backend-specific interaction strategies for resilient actions."""

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Literal

from ui_test_orchestrator.actions.config import RetryConfig, SettleConfig
from ui_test_orchestrator.browser.base import (
    BrowserBackend,
    BrowserError,
    InterceptedError,
    WaitCondition,
)

log = logging.getLogger(__name__)

type Operation = Literal[
    "locate", "click", "type", "read_text", "read_attribute", "exists", "navigate"
]

SCRIPT_SCROLL_INTO_VIEW = "arguments[0].scrollIntoView(true);"
SCRIPT_FOCUS_WINDOW = "window.focus();"
SCRIPT_CLICK = "arguments[0].click();"
SCRIPT_SET_VALUE = (
    "arguments[0].value = arguments[1];"
    "arguments[0].dispatchEvent(new Event('input', { bubbles: true }));"
    "arguments[0].dispatchEvent(new Event('change', { bubbles: true }));"
)


@dataclass(frozen=True, kw_only=True)
class RetryPolicy:
    """Attempt bound with linearly increasing backoff."""

    max_attempts: int
    base_delay: float

    def delay(self, attempt: int) -> float:
        """Backoff to apply after the given failed attempt (1-based)."""
        return attempt * self.base_delay

    def worst_case_backoff(self) -> float:
        """Total backoff if every attempt fails."""
        return sum(self.delay(n) for n in range(1, self.max_attempts))


@dataclass(frozen=True, kw_only=True)
class SettlePolicy:
    """Injectable pauses that let scrolling, focus and highlights render."""

    config: SettleConfig = field(default_factory=SettleConfig)
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def _pause(self, seconds: float) -> None:
        if seconds > 0:
            self.sleep(seconds)

    def after_scroll(self) -> None:
        self._pause(self.config.scroll)

    def after_highlight(self) -> None:
        self._pause(self.config.highlight)

    def after_focus(self) -> None:
        self._pause(self.config.focus)

    def after_restore(self) -> None:
        self._pause(self.config.restore)


@dataclass(frozen=True, kw_only=True)
class ActionStrategy(ABC):
    """How to wait for and interact with elements on one kind of backend."""

    name: str
    retry: RetryPolicy
    settle: SettlePolicy

    @abstractmethod
    def condition_for(self, operation: Operation) -> WaitCondition:
        """Element-ready precondition to await before ``operation``."""

    def prepare(self, backend: BrowserBackend, element: Any) -> None:
        """Bring the element into an interactable state before acting."""

    def click(self, backend: BrowserBackend, element: Any) -> None:
        backend.click(element)

    def type(self, backend: BrowserBackend, element: Any, text: str) -> None:
        backend.clear(element)
        backend.type(element, text)


@dataclass(frozen=True, kw_only=True)
class DefaultStrategy(ActionStrategy):
    """Waits for the operation's natural precondition and acts directly."""

    name: str = "standard"

    def condition_for(self, operation: Operation) -> WaitCondition:
        match operation:
            case "click":
                return "clickable"
            case "type":
                return "visible"
            case _:
                return "present"


@dataclass(frozen=True, kw_only=True)
class FocusFallbackStrategy(ActionStrategy):
    """Re-focuses the window and falls back to script-driven interaction.

    Used for backends that lose window focus and report spurious click
    interception.
    """

    name: str = "focus-fallback"

    def condition_for(self, operation: Operation) -> WaitCondition:
        return "present"

    def prepare(self, backend: BrowserBackend, element: Any) -> None:
        backend.execute_script(SCRIPT_SCROLL_INTO_VIEW, element)
        backend.execute_script(SCRIPT_FOCUS_WINDOW)
        self.settle.after_focus()

    def click(self, backend: BrowserBackend, element: Any) -> None:
        try:
            backend.click(element)
        except InterceptedError:
            log.info("[%s] Click intercepted, clicking through script", self.name)
            backend.execute_script(SCRIPT_CLICK, element)

    def type(self, backend: BrowserBackend, element: Any, text: str) -> None:
        backend.click(element)
        backend.clear(element)
        try:
            backend.type(element, text)
        except BrowserError as e:
            log.info(
                "[%s] Typing failed (%s), setting value through script", self.name, e
            )
            backend.execute_script(SCRIPT_SET_VALUE, element, text)


@dataclass(frozen=True, kw_only=True)
class StrategySelector:
    """Chooses the interaction strategy for a browser kind."""

    default: ActionStrategy
    fallback: ActionStrategy
    fallback_kinds: frozenset[str] = frozenset({"safari"})

    @classmethod
    def from_config(
        cls, retry: RetryConfig, settle: SettlePolicy
    ) -> "StrategySelector":
        """Build both strategies from retry configuration."""
        return cls(
            default=DefaultStrategy(
                retry=RetryPolicy(
                    max_attempts=retry.default_attempts,
                    base_delay=retry.default_base_delay,
                ),
                settle=settle,
            ),
            fallback=FocusFallbackStrategy(
                retry=RetryPolicy(
                    max_attempts=retry.fallback_attempts,
                    base_delay=retry.fallback_base_delay,
                ),
                settle=settle,
            ),
            fallback_kinds=frozenset(k.lower() for k in retry.focus_fallback_kinds),
        )

    def for_kind(self, browser_kind: str) -> ActionStrategy:
        kind = browser_kind.lower()
        if any(fallback in kind for fallback in self.fallback_kinds):
            return self.fallback
        return self.default
