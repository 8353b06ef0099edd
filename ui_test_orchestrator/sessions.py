"""Per-worker browser session ownership."""

import itertools
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field

from ui_test_orchestrator.browser.base import BrowserBackend
from ui_test_orchestrator.browser.config import BrowserConfig
from ui_test_orchestrator.errors import SessionInitError

log = logging.getLogger(__name__)

type BackendFactory = Callable[[BrowserConfig], BrowserBackend]


@dataclass(frozen=True, kw_only=True)
class Session:
    """One browser instance owned by a single worker thread."""

    id: int
    browser_kind: str
    is_headless: bool
    backend: BrowserBackend = field(repr=False)


class SessionRegistry:
    """Owns one lazily created browser session per worker thread.

    A session lives for one scenario: the worker acquires it on first use
    and releases it when the scenario ends. Sessions are never visible to
    other threads.
    """

    def __init__(self, config: BrowserConfig, backend_factory: BackendFactory):
        self.config = config
        self._backend_factory = backend_factory
        self._local = threading.local()
        self._ids = itertools.count(1)
        self._open_lock = threading.Lock()
        self._open_sessions = 0

    @property
    def open_sessions(self) -> int:
        """Number of sessions currently open in this process."""
        with self._open_lock:
            return self._open_sessions

    def acquire(self) -> Session:
        """Return the current worker's session, creating it if needed.

        Raises:
            SessionInitError: If the browser cannot be started

        """
        session: Session | None = getattr(self._local, "session", None)
        if session is not None:
            return session

        try:
            backend = self._backend_factory(self.config)
        except Exception as e:
            log.error("Failed to start %s browser: %s", self.config.kind, e)
            raise SessionInitError(
                f"Failed to initialize {self.config.kind} browser: {e}"
            ) from e

        session = Session(
            id=next(self._ids),
            browser_kind=self.config.kind,
            is_headless=self.config.headless,
            backend=backend,
        )
        self._local.session = session
        with self._open_lock:
            self._open_sessions += 1
            open_count = self._open_sessions

        log.info(
            "Opened session %d (%s%s), %d open",
            session.id,
            session.browser_kind,
            ", headless" if session.is_headless else "",
            open_count,
        )
        return session

    def peek(self) -> Session | None:
        """Return the current worker's session without creating one."""
        return getattr(self._local, "session", None)

    def release(self) -> None:
        """Tear down and forget the current worker's session, if any."""
        session: Session | None = getattr(self._local, "session", None)
        if session is None:
            return

        self._local.session = None
        with self._open_lock:
            self._open_sessions -= 1

        try:
            session.backend.quit()
        except Exception as e:
            log.warning("Error closing session %d: %s", session.id, e)
        else:
            log.info("Closed session %d", session.id)

    def current_browser_kind(self) -> str:
        """Return the browser kind used for sessions of this registry."""
        session = self.peek()
        return session.browser_kind if session is not None else self.config.kind
