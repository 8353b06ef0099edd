"""Element locators understood by every browser backend."""

from typing import Literal

from pydantic import Field

from ui_test_orchestrator.models.base import Model

type LocatorStrategy = Literal["css", "xpath", "id", "name", "link_text"]


class Locator(Model):
    """Backend-neutral reference to an element on the page."""

    strategy: LocatorStrategy = Field(..., description="How to interpret value")
    value: str = Field(..., min_length=1, description="Selector expression")

    def __str__(self) -> str:
        return f"{self.strategy}={self.value}"

    @classmethod
    def css(cls, value: str) -> "Locator":
        """Build a CSS selector locator."""
        return cls(strategy="css", value=value)

    @classmethod
    def xpath(cls, value: str) -> "Locator":
        """Build an XPath locator."""
        return cls(strategy="xpath", value=value)

    @classmethod
    def id(cls, value: str) -> "Locator":
        """Build an element id locator."""
        return cls(strategy="id", value=value)
