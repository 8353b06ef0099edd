"""Models for failure classification and captured failure context."""

from dataclasses import dataclass
from typing import Literal

type FailureKind = Literal[
    "ElementNotFound",
    "Timeout",
    "StaleElement",
    "AssertionFailure",
    "NotInteractable",
    "Unknown",
]
type Priority = Literal["High", "Medium", "Low"]


@dataclass(frozen=True, kw_only=True)
class Classification:
    """Failure kind and the priority derived from it."""

    kind: FailureKind
    priority: Priority


@dataclass(frozen=True, kw_only=True)
class FailureContext:
    """First failure captured in a scenario, kept for defect generation."""

    step: str
    error: BaseException
    classification: Classification

