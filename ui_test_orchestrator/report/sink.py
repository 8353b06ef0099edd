"""Report sinks that serialize aggregated entries."""

import base64
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, ClassVar

from ui_test_orchestrator.models.report import Artifact, Step
from ui_test_orchestrator.report.entry import ReportEntry

log = logging.getLogger(__name__)


class ReportSink(ABC):
    """Destination for the rendered suite report."""

    media_type: ClassVar[str]
    suffix: ClassVar[str]

    @abstractmethod
    def render(self, entries: Sequence[ReportEntry]) -> bytes:
        """Render entries into the sink's document format."""

    @abstractmethod
    def write(self, entries: Sequence[ReportEntry]) -> Path:
        """Render entries and persist them, returning the written file."""


def _encode(data: bytes | None) -> str | None:
    return base64.b64encode(data).decode("ascii") if data is not None else None


def _step_to_dict(step: Step) -> dict[str, Any]:
    return {
        "text": step.text,
        "started_at": step.started_at.isoformat(),
        "duration_ms": step.duration_ms,
        "outcome": step.outcome,
        "error": step.error,
        "screenshot": _encode(step.screenshot),
    }


def _artifact_to_dict(artifact: Artifact) -> dict[str, Any]:
    return {
        "caption": artifact.caption,
        "media_type": artifact.media_type,
        "filename": artifact.filename,
        "data": _encode(artifact.data),
    }


@dataclass(frozen=True, kw_only=True)
class JsonReportSink(ReportSink):
    """Writes the report as one JSON document with inline base64 evidence."""

    media_type: ClassVar[str] = "application/json"
    suffix: ClassVar[str] = ".json"

    path: Path
    title: str = "Automation Execution Report"
    system_info: Mapping[str, str] = field(default_factory=dict)

    def render(self, entries: Sequence[ReportEntry]) -> bytes:
        document = {
            "title": self.title,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "system_info": dict(self.system_info),
            "entries": [
                {
                    "name": entry.name,
                    "tags": list(entry.tags),
                    "outcome": entry.overall_outcome,
                    "notes": [
                        {"level": note.level, "message": note.message}
                        for note in entry.notes
                    ],
                    "steps": [_step_to_dict(step) for step in entry.steps],
                    "artifacts": [
                        _artifact_to_dict(artifact) for artifact in entry.artifacts
                    ],
                }
                for entry in entries
            ],
        }
        return json.dumps(document, indent=2).encode("utf-8")

    def write(self, entries: Sequence[ReportEntry]) -> Path:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(self.render(entries))
        log.info("Report written to %s", self.path)
        return self.path
