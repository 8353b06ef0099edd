"""Step boundary recording for running scenarios."""

import logging
import threading
import time
from collections.abc import Callable
from datetime import datetime, timezone

from ui_test_orchestrator.classifier import classify
from ui_test_orchestrator.models.failure import FailureContext
from ui_test_orchestrator.models.report import Step
from ui_test_orchestrator.report.aggregator import ReportAggregator
from ui_test_orchestrator.report.entry import ReportEntry
from ui_test_orchestrator.sessions import SessionRegistry

log = logging.getLogger(__name__)

UNNAMED_STEP = "Unnamed Step"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StepEventRecorder:
    """Times steps and routes their outcomes to the report.

    All state is thread-local: each worker runs one scenario at a time and
    its step events are totally ordered, while events from different
    workers interleave freely.
    """

    def __init__(
        self,
        report: ReportAggregator,
        sessions: SessionRegistry,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.report = report
        self.sessions = sessions
        self._clock = clock
        self._now = now
        self._local = threading.local()

    @property
    def current_entry(self) -> ReportEntry | None:
        return getattr(self._local, "entry", None)

    @property
    def current_step(self) -> str | None:
        return getattr(self._local, "step_text", None)

    def begin_scenario(self, entry: ReportEntry) -> None:
        """Bind the worker to ``entry`` and clear leftover failure context."""
        self._reset(entry)

    def end_scenario(self) -> FailureContext | None:
        """Unbind the worker and return the scenario's first failure."""
        failure = self.failure_context()
        self._reset(None)
        return failure

    def _reset(self, entry: ReportEntry | None) -> None:
        self._local.entry = entry
        self._local.step_text = None
        self._local.step_started = None
        self._local.step_started_at = None
        self._local.failure = None

    def failure_context(self) -> FailureContext | None:
        return getattr(self._local, "failure", None)

    def on_step_start(self, text: str) -> None:
        self._local.step_text = text
        self._local.step_started = self._clock()
        self._local.step_started_at = self._now()
        log.info("Step started: %s", text)

    def on_step_finish(self, error: BaseException | None) -> Step:
        """Finalize the running step and append it to the scenario's entry."""
        text = self.current_step or UNNAMED_STEP
        started = getattr(self._local, "step_started", None)
        started_at = getattr(self._local, "step_started_at", None) or self._now()
        duration_ms = 0
        if started is not None:
            duration_ms = int((self._clock() - started) * 1000)

        step = Step(
            text=text,
            started_at=started_at,
            duration_ms=duration_ms,
            outcome="fail" if error is not None else "pass",
            error=f"{type(error).__name__}: {error}" if error is not None else None,
            screenshot=self._screenshot(),
        )

        if error is not None:
            self.record_failure(error)
            log.error("Step failed: %s (%d ms): %s", text, duration_ms, error)
        else:
            log.info("Step passed: %s (%d ms)", text, duration_ms)

        self._append(step)
        self._local.step_text = None
        self._local.step_started = None
        self._local.step_started_at = None
        return step

    def on_step_skipped(self, text: str) -> Step:
        """Record a step that did not run because an earlier step failed."""
        step = Step(text=text, started_at=self._now(), duration_ms=0, outcome="skipped")
        self._append(step)
        return step

    def record_failure(self, error: BaseException) -> None:
        """Store ``error`` as the scenario's failure unless one is already kept."""
        if self.failure_context() is not None:
            return
        self._local.failure = FailureContext(
            step=self.current_step or UNNAMED_STEP,
            error=error,
            classification=classify(error),
        )

    def attach_evidence(self, caption: str, data: bytes) -> None:
        """Attach an action screenshot to the running scenario's entry."""
        entry = self.current_entry
        if entry is None:
            log.debug("No active scenario for evidence: %s", caption)
            return
        self.report.attach_artifact(entry, data, caption)

    def _append(self, step: Step) -> None:
        entry = self.current_entry
        if entry is None:
            log.warning("No active scenario found for step: %s", step.text)
            return
        self.report.append_step(entry, step)

    def _screenshot(self) -> bytes | None:
        session = self.sessions.peek()
        if session is None:
            return None
        try:
            return session.backend.screenshot()
        except Exception as e:
            log.warning("Screenshot capture failed: %s", e)
            return None
