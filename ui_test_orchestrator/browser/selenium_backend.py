"""Selenium WebDriver backend."""

import logging
from collections.abc import Callable, Generator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from selenium import webdriver
from selenium.common.exceptions import (
    ElementClickInterceptedException,
    ElementNotInteractableException,
    NoSuchElementException,
    StaleElementReferenceException,
    TimeoutException,
)
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.remote.webelement import WebElement
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from ui_test_orchestrator.browser.base import (
    BrowserBackend,
    ElementNotFoundError,
    InterceptedError,
    NotInteractableError,
    StaleElementError,
    WaitCondition,
)
from ui_test_orchestrator.browser.config import BrowserConfig, BrowserKind
from ui_test_orchestrator.models.locator import Locator, LocatorStrategy

log = logging.getLogger(__name__)

BY_STRATEGY: Mapping[LocatorStrategy, str] = {
    "css": By.CSS_SELECTOR,
    "xpath": By.XPATH,
    "id": By.ID,
    "name": By.NAME,
    "link_text": By.LINK_TEXT,
}

CONDITIONS: Mapping[WaitCondition, Callable[[tuple[str, str]], Any]] = {
    "present": EC.presence_of_element_located,
    "visible": EC.visibility_of_element_located,
    "clickable": EC.element_to_be_clickable,
}


def _chrome(config: BrowserConfig) -> WebDriver:
    options = webdriver.ChromeOptions()
    if config.headless:
        options.add_argument("--headless=new")
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-dev-shm-usage")
        options.add_argument("--disable-gpu")
        options.add_argument(
            f"--window-size={config.window_width},{config.window_height}"
        )
    else:
        options.add_argument("--start-maximized")
    options.add_argument("--disable-notifications")
    options.add_argument("--disable-popup-blocking")
    return webdriver.Chrome(options=options)


def _firefox(config: BrowserConfig) -> WebDriver:
    options = webdriver.FirefoxOptions()
    if config.headless:
        options.add_argument("--headless")
    options.add_argument(f"--width={config.window_width}")
    options.add_argument(f"--height={config.window_height}")
    return webdriver.Firefox(options=options)


def _edge(config: BrowserConfig) -> WebDriver:
    options = webdriver.EdgeOptions()
    if config.headless:
        options.add_argument("--headless=new")
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-dev-shm-usage")
        options.add_argument("--disable-gpu")
        options.add_argument(
            f"--window-size={config.window_width},{config.window_height}"
        )
    else:
        options.add_argument("--start-maximized")
    options.add_argument("--disable-notifications")
    options.add_argument("--disable-popup-blocking")
    return webdriver.Edge(options=options)


def _safari(config: BrowserConfig) -> WebDriver:
    if config.headless:
        log.warning("Safari does not support headless mode, starting headed")
    driver = webdriver.Safari()
    driver.set_window_size(config.window_width, config.window_height)
    return driver


DRIVER_FACTORIES: Mapping[BrowserKind, Callable[[BrowserConfig], WebDriver]] = {
    "chrome": _chrome,
    "firefox": _firefox,
    "edge": _edge,
    "safari": _safari,
}


@contextmanager
def _translated(locator: Locator | None = None) -> Generator[None]:
    """Re-raise selenium exceptions as backend-neutral browser errors."""
    target = str(locator) if locator is not None else "element"
    try:
        yield
    except StaleElementReferenceException as e:
        raise StaleElementError(f"stale element reference: {target}") from e
    except ElementClickInterceptedException as e:
        raise InterceptedError(f"element click intercepted: {target}") from e
    except ElementNotInteractableException as e:
        raise NotInteractableError(f"element not interactable: {target}") from e
    except NoSuchElementException as e:
        raise ElementNotFoundError(f"element not found: {target}") from e


@dataclass(kw_only=True)
class SeleniumBackend(BrowserBackend):
    """Browser backend driving a local Selenium WebDriver."""

    kind: str
    driver: WebDriver = field(repr=False)

    @classmethod
    def from_config(cls, config: BrowserConfig) -> "SeleniumBackend":
        """Start a browser for the configured kind."""
        log.info(
            "Starting %s browser%s",
            config.kind,
            " (headless)" if config.headless else "",
        )
        driver = DRIVER_FACTORIES[config.kind](config)
        return cls(kind=config.kind, driver=driver)

    def navigate(self, url: str) -> None:
        self.driver.get(url)

    def wait_for(
        self, locator: Locator, condition: WaitCondition, timeout: float
    ) -> WebElement:
        by = (BY_STRATEGY[locator.strategy], locator.value)
        try:
            with _translated(locator):
                element: WebElement = WebDriverWait(self.driver, timeout).until(
                    CONDITIONS[condition](by)
                )
        except TimeoutException as e:
            raise ElementNotFoundError(
                f"element not found: {locator} was not {condition} "
                f"within {timeout:.1f}s"
            ) from e
        return element

    def find(self, locator: Locator) -> WebElement | None:
        elements = self.driver.find_elements(
            BY_STRATEGY[locator.strategy], locator.value
        )
        return elements[0] if elements else None

    def click(self, element: WebElement) -> None:
        with _translated():
            element.click()

    def clear(self, element: WebElement) -> None:
        with _translated():
            element.clear()

    def type(self, element: WebElement, text: str) -> None:
        with _translated():
            element.send_keys(text)

    def read_text(self, element: WebElement) -> str:
        with _translated():
            return str(element.text)

    def read_attribute(self, element: WebElement, name: str) -> str | None:
        with _translated():
            value = element.get_attribute(name)
        return None if value is None else str(value)

    def current_url(self) -> str:
        return str(self.driver.current_url)

    def screenshot(self) -> bytes:
        return bytes(self.driver.get_screenshot_as_png())

    def execute_script(self, source: str, *args: Any) -> Any:
        with _translated():
            return self.driver.execute_script(source, *args)

    def quit(self) -> None:
        self.driver.quit()
