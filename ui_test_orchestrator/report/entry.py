"""Report entry shared between a scenario's worker and the report sink."""

import threading
from collections.abc import Sequence

from ui_test_orchestrator.models.report import Artifact, Note, Step, StepOutcome


class ReportEntry:
    """Ordered step records, artifacts and notes of one scenario.

    Appends are guarded by a per-entry lock so unrelated scenarios never
    contend with each other.
    """

    def __init__(self, name: str, tags: Sequence[str] = ()):
        self.name = name
        self.tags = tuple(tags)
        self._lock = threading.Lock()
        self._steps: list[Step] = []
        self._artifacts: list[Artifact] = []
        self._notes: list[Note] = []

    def __repr__(self) -> str:
        return f"ReportEntry(name={self.name!r})"

    def append_step(self, step: Step) -> None:
        with self._lock:
            self._steps.append(step)

    def append_artifact(self, artifact: Artifact) -> None:
        with self._lock:
            self._artifacts.append(artifact)

    def append_note(self, note: Note) -> None:
        with self._lock:
            self._notes.append(note)

    @property
    def steps(self) -> Sequence[Step]:
        with self._lock:
            return tuple(self._steps)

    @property
    def artifacts(self) -> Sequence[Artifact]:
        with self._lock:
            return tuple(self._artifacts)

    @property
    def notes(self) -> Sequence[Note]:
        with self._lock:
            return tuple(self._notes)

    @property
    def overall_outcome(self) -> StepOutcome:
        """Fail if any step or note failed, pass if any step passed."""
        with self._lock:
            outcomes = {step.outcome for step in self._steps}
            failed_note = any(note.level == "fail" for note in self._notes)
        if "fail" in outcomes or failed_note:
            return "fail"
        if "pass" in outcomes:
            return "pass"
        return "skipped"
