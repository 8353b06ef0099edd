"""Tests for the resilient action executor."""

from unittest.mock import Mock, call

import pytest

from ui_test_orchestrator.actions.config import RetryConfig, SettleConfig
from ui_test_orchestrator.actions.executor import ResilientActionExecutor
from ui_test_orchestrator.actions.strategy import SettlePolicy, StrategySelector
from ui_test_orchestrator.browser.base import (
    InterceptedError,
    NotInteractableError,
    StaleElementError,
)
from ui_test_orchestrator.browser.config import BrowserConfig, BrowserKind
from ui_test_orchestrator.errors import ActionError, VerificationError
from ui_test_orchestrator.models.locator import Locator
from ui_test_orchestrator.sessions import SessionRegistry
from ui_test_orchestrator.testing.fakes import (
    FakeBackend,
    FakeBackendFactory,
    FakeElement,
)

SUBMIT = Locator.id("submitbtn")
USERNAME = Locator.id("username")
BANNER = Locator.css(".banner")


@pytest.fixture
def backend() -> FakeBackend:
    """Create a fake page with a login form."""
    return FakeBackend(
        elements=[
            FakeElement(locator=SUBMIT, text="Login"),
            FakeElement(locator=USERNAME),
            FakeElement(locator=BANNER, text="Welcome back, Ada"),
        ],
        url="https://app.test/login",
    )


@pytest.fixture
def sleep() -> Mock:
    """Record backoff delays instead of sleeping."""
    return Mock()


@pytest.fixture
def failure_sink() -> Mock:
    """Create a failure sink."""
    return Mock()


@pytest.fixture
def evidence_sink() -> Mock:
    """Create an evidence sink."""
    return Mock()


def make_executor(
    backend: FakeBackend,
    sleep: Mock,
    failure_sink: Mock,
    evidence_sink: Mock | None = None,
    kind: BrowserKind = "chrome",
) -> ResilientActionExecutor:
    settle = SettlePolicy(config=SettleConfig.instant(), sleep=sleep)
    sessions = SessionRegistry(
        BrowserConfig(kind=kind, wait_timeout=2.0), FakeBackendFactory(lambda: backend)
    )
    return ResilientActionExecutor(
        sessions=sessions,
        strategies=StrategySelector.from_config(RetryConfig(), settle),
        failure_sink=failure_sink,
        evidence_sink=evidence_sink,
        settle=settle,
        sleep=sleep,
    )


@pytest.fixture
def executor(
    backend: FakeBackend, sleep: Mock, failure_sink: Mock, evidence_sink: Mock
) -> ResilientActionExecutor:
    """Create an executor using the default strategy."""
    return make_executor(backend, sleep, failure_sink, evidence_sink)


def test_click_succeeds_on_first_attempt(
    executor: ResilientActionExecutor,
    backend: FakeBackend,
    sleep: Mock,
    evidence_sink: Mock,
) -> None:
    """Clicks once, captures highlighted evidence and restores the style."""
    executor.click(SUBMIT)

    element = backend.elements[SUBMIT]
    assert element.clicks == 1
    assert "style" not in element.attributes
    sleep.assert_not_called()
    evidence_sink.attach_evidence.assert_called_once()
    caption, data = evidence_sink.attach_evidence.call_args.args
    assert caption == f"Clicking on element: {SUBMIT}"
    assert data.startswith(b"\x89PNG")


def test_retries_transient_failures_with_linear_backoff(
    executor: ResilientActionExecutor,
    backend: FakeBackend,
    sleep: Mock,
    failure_sink: Mock,
) -> None:
    """Retries stale references and sleeps attempt times base delay."""
    backend.fail(
        "click",
        SUBMIT,
        StaleElementError("stale element reference"),
        StaleElementError("stale element reference"),
    )

    executor.click(SUBMIT)

    assert backend.elements[SUBMIT].clicks == 1
    assert sleep.call_args_list == [call(1.0), call(2.0)]
    failure_sink.record_failure.assert_not_called()


def test_exhaustion_raises_action_error_and_records_failure(
    executor: ResilientActionExecutor,
    sleep: Mock,
    failure_sink: Mock,
) -> None:
    """Gives up after the default bound without sleeping after the last attempt."""
    missing = Locator.css("#missing")

    with pytest.raises(ActionError) as exc_info:
        executor.click(missing)

    error = exc_info.value
    assert error.operation == "click"
    assert error.locator == missing
    assert error.attempts == 3
    assert "element not found" in str(error.last_cause)
    assert sleep.call_args_list == [call(1.0), call(2.0)]
    failure_sink.record_failure.assert_called_once_with(error)


def test_non_transient_error_stops_retrying(
    executor: ResilientActionExecutor,
    backend: FakeBackend,
    sleep: Mock,
) -> None:
    """Stops at once on errors that retrying cannot fix."""
    backend.fail("click", SUBMIT, NotInteractableError("element not interactable"))

    with pytest.raises(ActionError) as exc_info:
        executor.click(SUBMIT)

    assert exc_info.value.attempts == 1
    assert isinstance(exc_info.value.last_cause, NotInteractableError)
    sleep.assert_not_called()


def test_non_transient_error_after_retry_reports_attempt_count(
    executor: ResilientActionExecutor,
    backend: FakeBackend,
    sleep: Mock,
    failure_sink: Mock,
) -> None:
    """Reports the attempt that failed and chains the last cause."""
    not_interactable = NotInteractableError("element not interactable")
    backend.fail(
        "click", SUBMIT, StaleElementError("stale element reference"), not_interactable
    )

    with pytest.raises(ActionError) as exc_info:
        executor.click(SUBMIT)

    error = exc_info.value
    assert error.attempts == 2
    assert error.last_cause is not_interactable
    assert error.__cause__ is not_interactable
    assert sleep.call_args_list == [call(1.0)]
    failure_sink.record_failure.assert_called_once_with(error)


def test_focus_fallback_strategy_allows_five_attempts(
    backend: FakeBackend, sleep: Mock, failure_sink: Mock
) -> None:
    """Uses the larger bound and base delay for focus-fallback browsers."""
    executor = make_executor(backend, sleep, failure_sink, kind="safari")
    backend.fail(
        "wait_for", SUBMIT, *(StaleElementError("stale element") for _ in range(4))
    )

    executor.click(SUBMIT)

    assert backend.elements[SUBMIT].clicks == 1
    assert sleep.call_args_list == [call(1.5), call(3.0), call(4.5), call(6.0)]
    assert "window.focus();" in backend.scripts


def test_focus_fallback_clicks_through_script_when_intercepted(
    backend: FakeBackend, sleep: Mock, failure_sink: Mock
) -> None:
    """Falls back to a script click when another element intercepts it."""
    executor = make_executor(backend, sleep, failure_sink, kind="safari")
    backend.fail("click", SUBMIT, InterceptedError("element click intercepted"))

    executor.click(SUBMIT)

    assert backend.elements[SUBMIT].clicks == 1
    assert "arguments[0].click();" in backend.scripts
    sleep.assert_not_called()


def test_type_replaces_value_and_masks_caption(
    executor: ResilientActionExecutor,
    backend: FakeBackend,
    evidence_sink: Mock,
) -> None:
    """Clears the field, types the text and hides it in evidence captions."""
    backend.elements[USERNAME].value = "stale input"

    executor.type(USERNAME, "secret-password")

    assert backend.elements[USERNAME].value == "secret-password"
    caption = evidence_sink.attach_evidence.call_args.args[0]
    assert "****rd" in caption
    assert "secret-password" not in caption


def test_type_retries_when_value_is_not_accepted(
    executor: ResilientActionExecutor,
    backend: FakeBackend,
    sleep: Mock,
) -> None:
    """Treats a field that ignores input as a transient mismatch."""
    backend.elements[USERNAME].accepts_input = False

    with pytest.raises(ActionError) as exc_info:
        executor.type(USERNAME, "ada")

    assert exc_info.value.attempts == 3
    assert "typed value mismatch" in str(exc_info.value)
    assert sleep.call_count == 2


def test_focus_fallback_sets_value_through_script_when_typing_fails(
    backend: FakeBackend, sleep: Mock, failure_sink: Mock
) -> None:
    """Sets the field value by script when keystrokes are rejected."""
    executor = make_executor(backend, sleep, failure_sink, kind="safari")
    backend.fail("type", USERNAME, NotInteractableError("element not interactable"))

    executor.type(USERNAME, "ada")

    assert backend.elements[USERNAME].value == "ada"
    failure_sink.record_failure.assert_not_called()


def test_exists_returns_false_without_recording_failure(
    executor: ResilientActionExecutor, sleep: Mock, failure_sink: Mock
) -> None:
    """Answers absence without retrying or recording a failure."""
    assert executor.exists(Locator.css("#nowhere"), timeout=0.1) is False
    assert executor.exists(BANNER) is True
    sleep.assert_not_called()
    failure_sink.record_failure.assert_not_called()


def test_read_text_strips_whitespace(
    executor: ResilientActionExecutor, backend: FakeBackend
) -> None:
    """Returns the element text without surrounding whitespace."""
    backend.elements[BANNER].text = "  Welcome back, Ada \n"

    assert executor.read_text(BANNER) == "Welcome back, Ada"


def test_navigate_waits_for_document_ready(
    executor: ResilientActionExecutor, backend: FakeBackend
) -> None:
    """Loads the page and checks the ready state."""
    executor.navigate("https://app.test/dashboard")

    assert backend.url == "https://app.test/dashboard"
    assert any("readyState" in script for script in backend.scripts)


def test_verify_text_contains_records_mismatch(
    executor: ResilientActionExecutor, failure_sink: Mock
) -> None:
    """Raises and records a verification error when the text differs."""
    with pytest.raises(VerificationError, match="Expected text 'Goodbye'"):
        executor.verify_text_contains(BANNER, "Goodbye")

    failure_sink.record_failure.assert_called_once()


def test_verify_url_contains(
    executor: ResilientActionExecutor, failure_sink: Mock
) -> None:
    """Passes when the current URL contains the fragment."""
    assert executor.verify_url_contains("/login") == "https://app.test/login"

    with pytest.raises(VerificationError):
        executor.verify_url_contains("/dashboard")
    failure_sink.record_failure.assert_called_once()


def test_scroll_to_centers_element(
    executor: ResilientActionExecutor, backend: FakeBackend, evidence_sink: Mock
) -> None:
    """Scrolls the element into the middle of the viewport."""
    executor.scroll_to(BANNER)

    assert "arguments[0].scrollIntoView({block: 'center'});" in backend.scripts
    caption, _ = evidence_sink.attach_evidence.call_args.args
    assert caption == f"Scrolled to element: {BANNER}"
