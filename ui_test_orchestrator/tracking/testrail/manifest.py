"""TestRail tracker manifest."""

from ui_test_orchestrator.tracking.manifest import TrackerManifest
from ui_test_orchestrator.tracking.testrail.client import TestRailClient
from ui_test_orchestrator.tracking.testrail.config import TestRailConfig

testrail_manifest = TrackerManifest(
    config_cls=TestRailConfig,
    client_factory=TestRailClient.from_config,
)
