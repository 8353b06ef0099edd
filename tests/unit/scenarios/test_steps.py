"""Tests for step definitions."""

from unittest.mock import Mock, call

import pytest

from ui_test_orchestrator.actions.executor import ResilientActionExecutor
from ui_test_orchestrator.errors import (
    UndefinedStepError,
    UnknownLocatorError,
    VerificationError,
)
from ui_test_orchestrator.models.locator import Locator
from ui_test_orchestrator.scenarios.locators import LocatorCatalog, by_text
from ui_test_orchestrator.scenarios.steps import (
    ScenarioContext,
    StepLibrary,
    default_library,
    strip_keyword,
)
from ui_test_orchestrator.testing.factories import ScenarioFactory

USERNAME = Locator.id("username")
PASSWORD = Locator.id("password")
SUBMIT = Locator.id("submitbtn")
DASHBOARD = Locator.css(".dashboard")


@pytest.fixture
def actions() -> Mock:
    """Create a mock action executor."""
    return Mock(spec=ResilientActionExecutor)


@pytest.fixture
def context(actions: Mock) -> ScenarioContext:
    """Create a scenario context with login locators."""
    return ScenarioContext(
        scenario=ScenarioFactory.build(),
        actions=actions,
        locators=LocatorCatalog(
            {
                "login.username": USERNAME,
                "login.password": PASSWORD,
                "login.submit": SUBMIT,
                "login.success": DASHBOARD,
                "search box": Locator.css("#search"),
            }
        ),
        base_url="https://app.test/",
    )


@pytest.fixture
def library() -> StepLibrary:
    """Create the built-in step library."""
    return default_library()


def test_strip_keyword() -> None:
    """Removes the leading keyword only."""
    assert strip_keyword("  And user clicks on Then") == "user clicks on Then"
    assert strip_keyword("* user waits") == "user waits"


def test_open_page_resolves_against_base_url(
    library: StepLibrary, context: ScenarioContext, actions: Mock
) -> None:
    """Navigates to the page relative to the base URL."""
    library.run(context, 'Given User opens the "/login" page')

    actions.navigate.assert_called_once_with("https://app.test/login")


def test_enter_credentials(
    library: StepLibrary, context: ScenarioContext, actions: Mock
) -> None:
    """Types both credentials and submits the form."""
    library.run(context, 'When User enters valid credentials "ada" and "s3cret"')

    assert actions.type.call_args_list == [
        call(USERNAME, "ada"),
        call(PASSWORD, "s3cret"),
    ]
    actions.click.assert_called_once_with(SUBMIT)


def test_logged_in(
    library: StepLibrary, context: ScenarioContext, actions: Mock
) -> None:
    """Locates the post-login marker."""
    library.run(context, "Then User should be logged in successfully")

    actions.locate.assert_called_once_with(DASHBOARD)


def test_type_into_named_locator(
    library: StepLibrary, context: ScenarioContext, actions: Mock
) -> None:
    """Resolves the target field through the catalog."""
    library.run(context, 'When the user types "shoes" into the "Search Box" field')

    actions.type.assert_called_once_with(Locator.css("#search"), "shoes")


def test_unknown_locator_name_fails_step(
    library: StepLibrary, context: ScenarioContext
) -> None:
    """Raises for names missing from the catalog."""
    with pytest.raises(UnknownLocatorError, match="Unknown locator 'Logout'"):
        library.run(context, 'When user clicks on "Logout"')


def test_verify_text_anywhere(
    library: StepLibrary, context: ScenarioContext, actions: Mock
) -> None:
    """Fails when the text is not on the page."""
    actions.exists.return_value = False

    with pytest.raises(VerificationError, match="Text 'Welcome' is not displayed"):
        library.run(context, 'Then user should see text "Welcome"')

    actions.exists.assert_called_once_with(by_text("Welcome"))


def test_verify_url(
    library: StepLibrary, context: ScenarioContext, actions: Mock
) -> None:
    """Checks the URL fragment."""
    library.run(context, 'Then the current URL should contain "/dashboard"')

    actions.verify_url_contains.assert_called_once_with("/dashboard")


def test_undefined_step(library: StepLibrary, context: ScenarioContext) -> None:
    """Raises for text no definition matches."""
    with pytest.raises(UndefinedStepError, match="Undefined step: When user dances"):
        library.run(context, "When user dances")


def test_required_locators(library: StepLibrary) -> None:
    """Collects fixed and captured locator names of matching steps."""
    names = library.required_locators(
        [
            'When User enters valid credentials "a" and "b"',
            'When user clicks on "Profile Icon"',
            "When user dances",
        ]
    )

    assert names == {
        "login.username",
        "login.password",
        "login.submit",
        "Profile Icon",
    }


def test_first_registered_definition_wins() -> None:
    """Uses registration order to break ties."""
    library = StepLibrary()
    first, second = Mock(), Mock()
    library.step(r"user waits")(first)
    library.step(r"user .*")(second)

    library.run(Mock(spec=ScenarioContext), "Given user waits")

    first.assert_called_once()
    second.assert_not_called()
