"""Suite configuration loaded from a JSON file."""

from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field

from ui_test_orchestrator.actions.config import RetryConfig, SettleConfig
from ui_test_orchestrator.browser.config import BrowserConfig
from ui_test_orchestrator.models.locator import Locator
from ui_test_orchestrator.models.scenario import Scenario
from ui_test_orchestrator.tracking.config import TrackerSettings

DEFAULT_DATA_KEY = "default"


class SuiteConfig(BaseModel):
    """Everything needed to run a suite, apart from the scenarios themselves."""

    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    settle: SettleConfig = Field(default_factory=SettleConfig)
    workers: int = Field(default=1, ge=1, description="Parallel scenario workers")
    base_url: str | None = Field(default=None, description="Base for relative URLs")
    report_path: Path = Path("reports/report.json")
    report_title: str = "UI Test Report"
    capture_action_screenshots: bool = True
    locators: Mapping[str, Locator] = Field(default_factory=dict)
    # Placeholder values keyed by "C<case id>" or "default"
    test_data: Mapping[str, Mapping[str, str]] = Field(default_factory=dict)
    tracker: TrackerSettings | None = None

    @classmethod
    def from_file(cls, path: Path) -> "SuiteConfig":
        return cls.model_validate_json(path.read_text(encoding="utf-8"))

    def data_for(self, scenario: Scenario) -> Mapping[str, str]:
        """Placeholder values for ``scenario``; case-specific values win."""
        data = dict(self.test_data.get(DEFAULT_DATA_KEY, {}))
        if scenario.case_id is not None:
            data.update(self.test_data.get(f"C{scenario.case_id}", {}))
        return data
