"""Loading of trackers from entry points."""

from importlib.metadata import entry_points
from typing import Any

from ui_test_orchestrator.tracking.manifest import TrackerManifest

ENTRY_POINT_GROUP = "ui_test_orchestrator.trackers"


class TrackerNotFoundError(Exception):
    """Raised when a tracker is not found."""


def load_tracker_manifest(key: str) -> TrackerManifest[Any]:
    """Load a tracker manifest by key.

    Args:
        key: The tracker key as registered in pyproject.toml (e.g., "testrail")

    Returns:
        The tracker manifest instance

    Raises:
        TrackerNotFoundError: If no tracker with the given key is found

    """
    entries = entry_points(group=ENTRY_POINT_GROUP)

    for entry in entries:
        if entry.name == key:
            manifest: TrackerManifest[Any] = entry.load()
            return manifest

    available = [e.name for e in entries]
    raise TrackerNotFoundError(
        f"Tracker '{key}' not found. Available trackers: {available}"
    )
