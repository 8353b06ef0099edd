"""Visual highlighting of action targets for step evidence."""

import logging
from typing import Any

from ui_test_orchestrator.actions.strategy import SettlePolicy
from ui_test_orchestrator.browser.base import BrowserBackend

log = logging.getLogger(__name__)

HIGHLIGHT_STYLE = "background: yellow; border: 3px solid red; border-radius: 4px;"
SCRIPT_SCROLL_CENTER = "arguments[0].scrollIntoView({block: 'center'});"
SCRIPT_SET_STYLE = "arguments[0].setAttribute('style', arguments[1]);"
SCRIPT_REMOVE_STYLE = "arguments[0].removeAttribute('style');"


def highlight_and_capture(
    backend: BrowserBackend, element: Any, settle: SettlePolicy
) -> bytes | None:
    """Mark the element, take a screenshot and restore its original style.

    Best-effort: any failure is logged and None is returned.
    """
    highlighted = False
    original_style: str | None = None
    screenshot: bytes | None = None
    try:
        original_style = backend.read_attribute(element, "style")
        backend.execute_script(SCRIPT_SCROLL_CENTER, element)
        settle.after_scroll()
        backend.execute_script(SCRIPT_SET_STYLE, element, HIGHLIGHT_STYLE)
        highlighted = True
        settle.after_highlight()
        screenshot = backend.screenshot()
    except Exception as e:
        log.warning("Could not highlight and capture element: %s", e)
    finally:
        if highlighted:
            _restore_style(backend, element, original_style, settle)
    return screenshot


def _restore_style(
    backend: BrowserBackend,
    element: Any,
    original_style: str | None,
    settle: SettlePolicy,
) -> None:
    try:
        if original_style:
            backend.execute_script(SCRIPT_SET_STYLE, element, original_style)
        else:
            backend.execute_script(SCRIPT_REMOVE_STYLE, element)
        settle.after_restore()
    except Exception as e:
        log.warning("Could not remove highlight: %s", e)


def mask_sensitive(text: str) -> str:
    """Hide all but the last two characters of values longer than four."""
    if len(text) > 4:
        return "****" + text[-2:]
    return text
