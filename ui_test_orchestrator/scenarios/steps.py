"""Regex-registered step definitions and the built-in step vocabulary."""

import logging
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from urllib.parse import urljoin

from ui_test_orchestrator.actions.executor import ResilientActionExecutor
from ui_test_orchestrator.errors import UndefinedStepError, VerificationError
from ui_test_orchestrator.models.scenario import Scenario
from ui_test_orchestrator.scenarios.locators import (
    LocatorCatalog,
    button_by_text,
    by_text,
    link_by_text,
)

log = logging.getLogger(__name__)

KEYWORD_PATTERN = re.compile(r"^(?:Given|When|Then|And|But|\*)\s+", re.IGNORECASE)
QUOTED = r'"(?P<{}>[^"]*)"'

LOGIN_USERNAME = "login.username"
LOGIN_PASSWORD = "login.password"
LOGIN_SUBMIT = "login.submit"
LOGIN_SUCCESS = "login.success"


@dataclass(kw_only=True)
class ScenarioContext:
    """What a step handler may touch while its scenario runs."""

    scenario: Scenario
    actions: ResilientActionExecutor
    locators: LocatorCatalog
    base_url: str | None = None

    def url(self, target: str) -> str:
        """Resolve ``target`` against the suite's base URL."""
        return urljoin(self.base_url, target) if self.base_url else target


type StepHandler = Callable[..., None]


@dataclass(frozen=True, kw_only=True)
class StepDefinition:
    """A step pattern bound to its handler.

    ``requires`` lists catalog names the handler always uses;
    ``locator_params`` names the captured groups holding catalog names.
    """

    pattern: re.Pattern[str]
    handler: StepHandler
    requires: frozenset[str] = frozenset()
    locator_params: tuple[str, ...] = ()

    def locator_names(self, params: Mapping[str, str]) -> set[str]:
        return set(self.requires) | {params[p] for p in self.locator_params}


def strip_keyword(text: str) -> str:
    """Remove the leading Given/When/Then/And/But/* keyword."""
    return KEYWORD_PATTERN.sub("", text.strip(), count=1)


class StepLibrary:
    """Ordered registry of step definitions; the first full match wins."""

    def __init__(self) -> None:
        self._definitions: list[StepDefinition] = []

    def __len__(self) -> int:
        return len(self._definitions)

    def step(
        self,
        pattern: str,
        *,
        requires: Iterable[str] = (),
        locator_params: Sequence[str] = (),
    ) -> Callable[[StepHandler], StepHandler]:
        """Register the decorated handler for step texts matching ``pattern``."""

        def decorator(handler: StepHandler) -> StepHandler:
            self._definitions.append(
                StepDefinition(
                    pattern=re.compile(pattern, re.IGNORECASE),
                    handler=handler,
                    requires=frozenset(requires),
                    locator_params=tuple(locator_params),
                )
            )
            return handler

        return decorator

    def match(self, text: str) -> tuple[StepDefinition, dict[str, str]]:
        """Find the definition for ``text``.

        Raises:
            UndefinedStepError: If no definition matches

        """
        body = strip_keyword(text)
        for definition in self._definitions:
            if match := definition.pattern.fullmatch(body):
                return definition, match.groupdict()
        raise UndefinedStepError(f"Undefined step: {text}")

    def run(self, context: ScenarioContext, text: str) -> None:
        definition, params = self.match(text)
        definition.handler(context, **params)

    def required_locators(self, steps: Iterable[str]) -> set[str]:
        """Catalog names the given steps will resolve; unmatched steps are skipped."""
        names: set[str] = set()
        for text in steps:
            try:
                definition, params = self.match(text)
            except UndefinedStepError:
                continue
            names |= definition.locator_names(params)
        return names


def default_library() -> StepLibrary:
    """Build the library of built-in steps."""
    steps = StepLibrary()

    @steps.step(r"(?:the )?user opens the " + QUOTED.format("target") + r" page")
    def open_page(context: ScenarioContext, target: str) -> None:
        context.actions.navigate(context.url(target))

    @steps.step(
        r"(?:the )?user enters (?:valid )?credentials "
        + QUOTED.format("username")
        + " and "
        + QUOTED.format("password"),
        requires=(LOGIN_USERNAME, LOGIN_PASSWORD, LOGIN_SUBMIT),
    )
    def enter_credentials(
        context: ScenarioContext, username: str, password: str
    ) -> None:
        context.actions.type(context.locators.resolve(LOGIN_USERNAME), username)
        context.actions.type(context.locators.resolve(LOGIN_PASSWORD), password)
        context.actions.click(context.locators.resolve(LOGIN_SUBMIT))

    @steps.step(
        r"(?:the )?user should be logged in successfully", requires=(LOGIN_SUCCESS,)
    )
    def logged_in(context: ScenarioContext) -> None:
        context.actions.locate(context.locators.resolve(LOGIN_SUCCESS))

    @steps.step(
        r"(?:the )?user clicks? (?:on )?the button labell?ed " + QUOTED.format("label")
    )
    def click_button(context: ScenarioContext, label: str) -> None:
        context.actions.click(button_by_text(label))

    @steps.step(
        r"(?:the )?user clicks? (?:on )?the link labell?ed " + QUOTED.format("label")
    )
    def click_link(context: ScenarioContext, label: str) -> None:
        context.actions.click(link_by_text(label))

    @steps.step(
        r"(?:the )?user clicks? (?:on )?(?:the )?" + QUOTED.format("name") + r".*",
        locator_params=("name",),
    )
    def click_named(context: ScenarioContext, name: str) -> None:
        context.actions.click(context.locators.resolve(name))

    @steps.step(
        r"(?:the )?user (?:types|enters) "
        + QUOTED.format("text")
        + r" (?:into|in) (?:the )?"
        + QUOTED.format("name")
        + r".*",
        locator_params=("name",),
    )
    def type_into(context: ScenarioContext, text: str, name: str) -> None:
        context.actions.type(context.locators.resolve(name), text)

    @steps.step(
        r"(?:the )?user should see "
        + QUOTED.format("expected")
        + r" in (?:the )?"
        + QUOTED.format("name")
        + r".*",
        locator_params=("name",),
    )
    def verify_text(context: ScenarioContext, expected: str, name: str) -> None:
        context.actions.verify_text_contains(context.locators.resolve(name), expected)

    @steps.step(r"(?:the )?user should see (?:the )?text " + QUOTED.format("text"))
    def verify_text_anywhere(context: ScenarioContext, text: str) -> None:
        if not context.actions.exists(by_text(text)):
            raise VerificationError(f"Text '{text}' is not displayed")

    @steps.step(
        r"(?:the )?(?:user verifies )?"
        + QUOTED.format("name")
        + r" (?:should be|is) (?:visible|displayed|displaying).*",
        locator_params=("name",),
    )
    def verify_visible(context: ScenarioContext, name: str) -> None:
        if not context.actions.exists(context.locators.resolve(name)):
            raise VerificationError(f"'{name}' is not displayed")

    @steps.step(
        r"(?:the )?(?:current )?URL should contain " + QUOTED.format("fragment")
    )
    def verify_url(context: ScenarioContext, fragment: str) -> None:
        context.actions.verify_url_contains(fragment)

    return steps
