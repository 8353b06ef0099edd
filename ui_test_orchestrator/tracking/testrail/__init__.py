"""TestRail tracker module."""

from ui_test_orchestrator.tracking.testrail.client import TestRailClient
from ui_test_orchestrator.tracking.testrail.config import TestRailConfig
from ui_test_orchestrator.tracking.testrail.manifest import testrail_manifest

__all__ = ["TestRailClient", "TestRailConfig", "testrail_manifest"]
