"""Classification of captured errors into failure kinds and priorities."""

from collections.abc import Mapping, Sequence

from ui_test_orchestrator.errors import ActionError
from ui_test_orchestrator.models.failure import Classification, FailureKind, Priority

# Checked in order, first match wins.
FAILURE_PHRASES: Sequence[tuple[FailureKind, Sequence[str]]] = (
    (
        "ElementNotFound",
        (
            "elementnotfound",
            "element not found",
            "nosuchelement",
            "no such element",
            "unable to locate",
        ),
    ),
    ("Timeout", ("timeout", "timed out")),
    ("StaleElement", ("stale",)),
    (
        "NotInteractable",
        ("notinteractable", "not interactable", "intercepted", "not clickable"),
    ),
    ("AssertionFailure", ("assert", "expected", "verification")),
)

PRIORITY_BY_KIND: Mapping[FailureKind, Priority] = {
    "ElementNotFound": "High",
    "Timeout": "High",
    "StaleElement": "High",
    "AssertionFailure": "Medium",
    "NotInteractable": "Medium",
    "Unknown": "Low",
}


def classify(error: BaseException) -> Classification:
    """Map an error to its failure kind and priority.

    Looks at the error's type name and message, case-insensitively. An
    exhausted action is classified by its last cause, with the locator text
    removed so selector names cannot match a phrase.
    """
    haystack = _describe(error).lower()

    for kind, phrases in FAILURE_PHRASES:
        if any(phrase in haystack for phrase in phrases):
            return Classification(kind=kind, priority=PRIORITY_BY_KIND[kind])

    return Classification(kind="Unknown", priority=PRIORITY_BY_KIND["Unknown"])


def _describe(error: BaseException) -> str:
    if not isinstance(error, ActionError):
        return f"{type(error).__name__} {error}"
    cause = error.last_cause
    text = f"{type(cause).__name__} {cause}"
    if error.locator is not None:
        text = text.replace(str(error.locator), "")
    return text
