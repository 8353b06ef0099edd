"""Named locator lookup for step definitions."""

import logging
from collections.abc import Iterable, Mapping

from ui_test_orchestrator.errors import UnknownLocatorError
from ui_test_orchestrator.models.locator import Locator

log = logging.getLogger(__name__)


def normalize_name(name: str) -> str:
    """Fold case and whitespace so step text can name locators loosely."""
    return " ".join(name.lower().split())


def xpath_literal(text: str) -> str:
    """Quote ``text`` as an XPath string literal."""
    if "'" not in text:
        return f"'{text}'"
    if '"' not in text:
        return f'"{text}"'
    parts = text.split("'")
    return "concat(" + ", \"'\", ".join(f"'{part}'" for part in parts) + ")"


def by_text(text: str, *, exact: bool = False) -> Locator:
    """Any element whose own text contains (or equals) ``text``."""
    literal = xpath_literal(text)
    if exact:
        return Locator.xpath(f"//*[normalize-space(text())={literal}]")
    return Locator.xpath(f"//*[contains(text(),{literal})]")


def button_by_text(text: str) -> Locator:
    """A button, or a button/submit input, labelled with ``text``."""
    literal = xpath_literal(text)
    return Locator.xpath(
        f"//button[contains(normalize-space(.),{literal})]"
        f" | //input[@type='button' and contains(@value,{literal})]"
        f" | //input[@type='submit' and contains(@value,{literal})]"
    )


def link_by_text(text: str) -> Locator:
    """An anchor whose text contains ``text``."""
    return Locator.xpath(f"//a[contains(normalize-space(.),{xpath_literal(text)})]")


class LocatorCatalog:
    """Explicit name to locator table.

    Names are matched ignoring case and repeated whitespace. Unknown names
    raise instead of degrading to a text search, so a typo in a scenario
    fails the step that uses it.
    """

    def __init__(self, locators: Mapping[str, Locator]):
        self._locators: dict[str, Locator] = {}
        for name, locator in locators.items():
            key = normalize_name(name)
            if not key:
                raise ValueError("Locator names must not be blank")
            if key in self._locators:
                raise ValueError(f"Duplicate locator name: {name!r}")
            self._locators[key] = locator

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and normalize_name(name) in self._locators

    def __len__(self) -> int:
        return len(self._locators)

    def resolve(self, name: str) -> Locator:
        """Return the locator registered under ``name``.

        Raises:
            UnknownLocatorError: If no locator has that name

        """
        try:
            return self._locators[normalize_name(name)]
        except KeyError:
            raise UnknownLocatorError(
                f"Unknown locator '{name}'. Known locators: {sorted(self._locators)}"
            ) from None

    def validate(self, required: Iterable[str]) -> None:
        """Check that every name in ``required`` resolves.

        Raises:
            UnknownLocatorError: Listing every missing name

        """
        missing = sorted(
            {n for n in required if normalize_name(n) not in self._locators}
        )
        if missing:
            raise UnknownLocatorError(f"Missing required locators: {missing}")
        log.info("Locator catalog validated: %d locators", len(self._locators))
