"""Models for remote test-management runs."""

from dataclasses import dataclass
from typing import Literal

type RunStatus = Literal["open", "closed", "invalid"]


@dataclass(frozen=True, kw_only=True)
class Run:
    """Snapshot of a remote run as known by the synchronizer."""

    id: int
    case_ids: frozenset[int]
    status: RunStatus = "open"
