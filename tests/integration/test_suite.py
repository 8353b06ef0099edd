"""End-to-end suite runs against fake browsers and a mocked tracker."""

import json
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock, call

import pytest

from ui_test_orchestrator.actions.config import SettleConfig
from ui_test_orchestrator.browser.base import StaleElementError
from ui_test_orchestrator.config import SuiteConfig
from ui_test_orchestrator.models.locator import Locator
from ui_test_orchestrator.models.scenario import Scenario
from ui_test_orchestrator.orchestrator import SuiteOrchestrator
from ui_test_orchestrator.testing.fakes import (
    FakeBackend,
    FakeBackendFactory,
    FakeElement,
)
from ui_test_orchestrator.tracking.base import RemoteServiceError, TestManagementClient
from ui_test_orchestrator.tracking.defects import Environment
from ui_test_orchestrator.tracking.synchronizer import TestManagementSynchronizer

USERNAME = Locator.id("username")
PASSWORD = Locator.id("password")
SUBMIT = Locator.id("submitbtn")
DASHBOARD = Locator.css(".dashboard")

LOGIN = Scenario(
    name="Login with valid credentials",
    tags=frozenset({"@C296", "@smoke"}),
    steps=(
        'Given User opens the "/login" page',
        'When User enters valid credentials "ada" and "s3cret"',
        "Then User should be logged in successfully",
    ),
)

CLOSED_RUN = RemoteServiceError(
    "add_result_for_case", 400, '{"error": "Field :run_id is not a valid test run."}'
)


def login_page(kind: str = "chrome") -> FakeBackend:
    """Build a login form that shows the dashboard once submitted."""
    backend = FakeBackend(
        kind,
        elements=[
            FakeElement(locator=USERNAME),
            FakeElement(locator=PASSWORD),
            FakeElement(locator=SUBMIT, text="Login"),
        ],
    )
    backend.elements[SUBMIT].on_click = lambda: backend.add(
        FakeElement(locator=DASHBOARD, text="Dashboard")
    )
    return backend


def flaky_safari_login_page() -> FakeBackend:
    """Build a login form whose submit button goes stale four times."""
    backend = login_page("safari")
    stale = [StaleElementError("stale element reference") for _ in range(4)]
    backend.fail("click", SUBMIT, *stale)
    return backend


def dead_login_page() -> FakeBackend:
    """Build a login form whose submit button does nothing."""
    backend = login_page()
    backend.elements[SUBMIT].on_click = None
    return backend


@pytest.fixture
def config(tmp_path: Path) -> SuiteConfig:
    """Create a suite configuration writing its report to a temp dir."""
    return SuiteConfig(
        base_url="https://app.test",
        settle=SettleConfig.instant(),
        report_path=tmp_path / "report.json",
        locators={
            "login.username": USERNAME,
            "login.password": PASSWORD,
            "login.submit": SUBMIT,
            "login.success": DASHBOARD,
        },
    )


@pytest.fixture
def client() -> Mock:
    """Create a tracker client that accepts everything."""
    client = Mock(spec=TestManagementClient)
    client.create_run.return_value = 101
    client.submit_result.return_value = 5001
    return client


@pytest.fixture
def synchronizer(client: Mock) -> TestManagementSynchronizer:
    """Create a synchronizer with a fixed clock."""
    return TestManagementSynchronizer(
        client,
        Environment(browser_kind="chrome", headless=True),
        now=lambda: datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc),
    )


class SteppingClock:
    """Monotonic clock that only advances when slept on."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def read_report(config: SuiteConfig) -> dict:
    return json.loads(config.report_path.read_text())


async def test_login_scenario_passes(
    config: SuiteConfig, client: Mock, synchronizer: TestManagementSynchronizer
) -> None:
    """Types both credentials, clicks once and files no defect."""
    factory = FakeBackendFactory(login_page)
    orchestrator = SuiteOrchestrator.from_config(
        config, backend_factory=factory, synchronizer=synchronizer, sleep=Mock()
    )

    (outcome,) = await orchestrator.run_suite([LOGIN])

    assert outcome.passed
    assert outcome.result_id == 5001
    assert not outcome.defect_filed

    (backend,) = factory.created
    assert backend.count("type") == 2
    assert backend.count("click") == 1
    assert backend.elements[SUBMIT].clicks == 1

    client.create_run.assert_awaited_once_with("AutoRun - 2026-10-19 08:00:00", [296])
    client.submit_result.assert_awaited_once()
    run_id, case_id, passed, comment, defects = client.submit_result.call_args.args
    assert (run_id, case_id, passed, defects) == (101, 296, True, None)
    assert "**Status:** PASSED" in comment
    client.close_run.assert_awaited_once_with(101)


async def test_safari_click_recovers_on_last_attempt(
    config: SuiteConfig,
) -> None:
    """Records a single passing step spanning four backoff delays."""
    config = config.model_copy(
        update={"browser": config.browser.model_copy(update={"kind": "safari"})}
    )
    clock = SteppingClock()
    sleep = Mock(side_effect=clock.advance)
    factory = FakeBackendFactory(flaky_safari_login_page)
    orchestrator = SuiteOrchestrator.from_config(
        config, backend_factory=factory, sleep=sleep, clock=clock
    )

    (outcome,) = await orchestrator.run_suite([LOGIN])

    assert outcome.passed
    assert sleep.call_args_list == [call(1.5), call(3.0), call(4.5), call(6.0)]
    (backend,) = factory.created
    # two focusing clicks before typing, then five submit attempts
    assert backend.count("click") == 7
    assert backend.elements[SUBMIT].clicks == 1

    (entry,) = read_report(config)["entries"]
    credentials = [s for s in entry["steps"] if "credentials" in s["text"]]
    assert len(credentials) == 1
    assert credentials[0]["outcome"] == "pass"
    assert credentials[0]["duration_ms"] == 15000


async def test_closed_run_is_recovered_and_defect_filed(
    config: SuiteConfig, client: Mock, synchronizer: TestManagementSynchronizer
) -> None:
    """Moves to a recovery run and files the defect despite a failed upload."""
    client.create_run.side_effect = [101, 102]
    client.submit_result.side_effect = [CLOSED_RUN, 5001, 5002]
    client.upload_attachment.side_effect = RemoteServiceError(
        "add_attachment_to_result", 413, "Request Entity Too Large"
    )
    orchestrator = SuiteOrchestrator.from_config(
        config,
        backend_factory=FakeBackendFactory(dead_login_page),
        synchronizer=synchronizer,
        sleep=Mock(),
    )

    (outcome,) = await orchestrator.run_suite([LOGIN])

    assert not outcome.passed
    assert outcome.failure_kind == "ElementNotFound"
    assert outcome.result_id == 5001
    assert outcome.defect_filed
    assert outcome.sync_error is None

    assert client.create_run.await_args_list[1].args == (
        "AutoRecoveryRun - 2026-10-19 08:00:00",
        [296],
    )
    submissions = client.submit_result.await_args_list
    assert [c.args[:3] for c in submissions] == [
        (101, 296, False),
        (102, 296, False),
        (102, 296, False),
    ]
    defect_reference = submissions[2].args[4]
    assert defect_reference.startswith("AUTO-DEFECT-C296-")
    assert "Test Case ID: C296" in submissions[2].args[3]
    assert "Failure Type: ElementNotFound" in submissions[2].args[3]

    client.upload_attachment.assert_awaited_once()
    assert client.upload_attachment.await_args.args[0] == 5001
    client.close_run.assert_awaited_once_with(102)
    assert [r.status for r in synchronizer.runs] == ["invalid", "closed"]


async def test_report_holds_each_scenario_once_in_step_order(
    config: SuiteConfig, synchronizer: TestManagementSynchronizer
) -> None:
    """Flushes one entry per scenario with steps in execution order."""
    config = config.model_copy(update={"workers": 3})
    passing = [
        LOGIN.model_copy(
            update={"name": f"Login {n}", "tags": frozenset({f"@C{n}"})}
        )
        for n in range(300, 304)
    ]
    failing = Scenario(
        name="Login then explore",
        tags=frozenset({"@C296"}),
        steps=(*LOGIN.steps, 'When user clicks on "login.submit"'),
    )
    orchestrator = SuiteOrchestrator.from_config(
        config,
        backend_factory=FakeBackendFactory(dead_login_page),
        synchronizer=synchronizer,
        sleep=Mock(),
    )
    ok_report = config.report_path.with_name("ok.json")
    orchestrator_ok = SuiteOrchestrator.from_config(
        config.model_copy(update={"report_path": ok_report}),
        backend_factory=FakeBackendFactory(login_page),
        sleep=Mock(),
    )

    await orchestrator.run_suite([failing])
    await orchestrator_ok.run_suite(passing)

    (entry,) = read_report(config)["entries"]
    assert [(s["text"], s["outcome"]) for s in entry["steps"]] == [
        ('Given User opens the "/login" page', "pass"),
        ('When User enters valid credentials "ada" and "s3cret"', "pass"),
        ("Then User should be logged in successfully", "fail"),
        ('When user clicks on "login.submit"', "skipped"),
    ]
    captions = [a["caption"] for a in entry["artifacts"]]
    assert captions.count("Final Failure Screenshot") == 1

    ok_entries = json.loads(ok_report.read_text())["entries"]
    assert sorted(e["name"] for e in ok_entries) == [s.name for s in passing]
    for ok_entry in ok_entries:
        assert [s["text"] for s in ok_entry["steps"]] == list(LOGIN.steps)
        assert ok_entry["outcome"] == "pass"
