"""Models for step-level report records."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

type StepOutcome = Literal["pass", "fail", "skipped"]
type NoteLevel = Literal["info", "pass", "fail"]


@dataclass(frozen=True, kw_only=True)
class Step:
    """One finalized step of a scenario."""

    text: str
    started_at: datetime
    duration_ms: int
    outcome: StepOutcome
    error: str | None = None
    screenshot: bytes | None = field(default=None, repr=False)


@dataclass(frozen=True, kw_only=True)
class Artifact:
    """Binary evidence attached to a report entry or a remote result."""

    caption: str
    data: bytes = field(repr=False)
    media_type: str = "image/png"
    filename: str | None = None


@dataclass(frozen=True, kw_only=True)
class Note:
    """Scenario-level log line."""

    level: NoteLevel
    message: str
