"""Thread-safe collection of scenario report entries."""

import logging
import threading
from collections.abc import Sequence
from pathlib import Path

from ui_test_orchestrator.models.report import Artifact, Note, NoteLevel, Step
from ui_test_orchestrator.report.entry import ReportEntry
from ui_test_orchestrator.report.sink import ReportSink

log = logging.getLogger(__name__)

MIN_REPORT_BYTES = 1000


class ReportAggregator:
    """Collects entries from concurrent scenario workers and flushes them once.

    ``flush`` must only run after every worker writing to the aggregator has
    finished; the suite lifecycle joins its workers before calling it.
    """

    def __init__(self, sink: ReportSink):
        self.sink = sink
        self._entries: dict[str, ReportEntry] = {}
        self._lock = threading.Lock()
        self._flushed = False

    def create_entry(self, name: str, tags: Sequence[str] = ()) -> ReportEntry:
        """Register an entry for ``name``, returning the existing one if present."""
        with self._lock:
            if (entry := self._entries.get(name)) is not None:
                return entry
            entry = ReportEntry(name, tags)
            self._entries[name] = entry
            return entry

    @property
    def entries(self) -> Sequence[ReportEntry]:
        """Entries in registration order."""
        with self._lock:
            return tuple(self._entries.values())

    def append_step(self, entry: ReportEntry, step: Step) -> None:
        entry.append_step(step)

    def attach_artifact(
        self,
        entry: ReportEntry,
        data: bytes,
        caption: str,
        media_type: str = "image/png",
    ) -> Artifact:
        """Store inline evidence for the entry."""
        artifact = Artifact(caption=caption, data=data, media_type=media_type)
        entry.append_artifact(artifact)
        return artifact

    def add_note(self, entry: ReportEntry, level: NoteLevel, message: str) -> None:
        entry.append_note(Note(level=level, message=message))

    def render_entry(self, entry: ReportEntry) -> bytes:
        """Render a single entry, e.g. to attach it to a remote result."""
        return self.sink.render([entry])

    def flush(self) -> Path:
        """Write every entry through the sink.

        Raises:
            RuntimeError: If the report was already flushed

        """
        with self._lock:
            if self._flushed:
                raise RuntimeError("Report already flushed")
            self._flushed = True
            entries = tuple(self._entries.values())

        path = self.sink.write(entries)
        size = path.stat().st_size if path.exists() else 0
        if size < MIN_REPORT_BYTES:
            log.warning(
                "Report at %s looks empty (%d bytes, %d entries)",
                path,
                size,
                len(entries),
            )
        else:
            log.info("Report flushed: %d entries, %d KB", len(entries), size // 1024)
        return path
