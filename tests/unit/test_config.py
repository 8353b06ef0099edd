"""Tests for suite configuration."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from ui_test_orchestrator.config import SuiteConfig
from ui_test_orchestrator.models.locator import Locator
from ui_test_orchestrator.models.scenario import Scenario


def test_from_file(tmp_path: Path) -> None:
    """Loads a JSON configuration file."""
    path = tmp_path / "suite.json"
    path.write_text(
        json.dumps(
            {
                "browser": {"kind": "safari", "wait_timeout": 5},
                "workers": 2,
                "locators": {"login.submit": {"strategy": "id", "value": "submitbtn"}},
                "tracker": {
                    "provider": "testrail",
                    "config": {"project_id": 1},
                    "case_ids": [296, 297],
                },
            }
        )
    )

    config = SuiteConfig.from_file(path)

    assert config.browser.kind == "safari"
    assert config.browser.wait_timeout == 5.0
    assert config.workers == 2
    assert config.locators["login.submit"] == Locator.id("submitbtn")
    assert config.tracker is not None
    assert config.tracker.case_ids == [296, 297]
    assert config.tracker.run_name_prefix == "AutoRun"


def test_rejects_invalid_values() -> None:
    """Validates worker count and browser kind."""
    with pytest.raises(ValidationError):
        SuiteConfig(workers=0)
    with pytest.raises(ValidationError):
        SuiteConfig.model_validate({"browser": {"kind": "lynx"}})


def test_data_for_merges_case_values_over_defaults() -> None:
    """Prefers values keyed by the scenario's case id."""
    config = SuiteConfig(
        test_data={
            "default": {"user": "ada", "password": "s3cret"},
            "C297": {"user": "grace"},
        }
    )

    tagged = Scenario(name="Tagged", tags=frozenset({"@C297"}))
    untagged = Scenario(name="Untagged")

    assert config.data_for(tagged) == {"user": "grace", "password": "s3cret"}
    assert config.data_for(untagged) == {"user": "ada", "password": "s3cret"}
