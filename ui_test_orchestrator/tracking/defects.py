"""Rendering of result comments and defect descriptions."""

import platform
import traceback
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime

from ui_test_orchestrator.models.failure import FailureContext, FailureKind, Priority

MAX_STACK_LINES = 25
RULE = "-" * 60

REMEDIATION: Mapping[FailureKind, Sequence[str]] = {
    "ElementNotFound": (
        "Check whether the locator still matches the current page markup",
        "Confirm the page finished loading before the step ran",
        "Compare the step screenshot with the expected page",
    ),
    "Timeout": (
        "Check application and network responsiveness in the test environment",
        "Review the configured wait timeout for this page",
        "Look for long-running requests in the browser console",
    ),
    "StaleElement": (
        "Check whether the page re-renders the element after the previous action",
        "Re-locate the element after navigation or dynamic updates",
    ),
    "NotInteractable": (
        "Check for overlays, modals or banners covering the element",
        "Confirm the element is enabled and visible at the time of the action",
    ),
    "AssertionFailure": (
        "Verify the expected values and test data against the application",
        "Review recent changes to the page content or copy",
    ),
    "Unknown": (
        "Review the failure message and stack trace",
        "Reproduce the issue manually if needed",
    ),
}


@dataclass(frozen=True, kw_only=True)
class Environment:
    """Where a scenario ran, printed into defect descriptions."""

    browser_kind: str
    headless: bool
    run_id: int | None = None

    def lines(self) -> Sequence[str]:
        return (
            f"Browser: {self.browser_kind}{' (headless)' if self.headless else ''}",
            f"Platform: {platform.platform()}",
            f"Python: {platform.python_version()}",
            f"Run: R{self.run_id}" if self.run_id is not None else "Run: none",
        )


def stack_excerpt(error: BaseException, max_lines: int = MAX_STACK_LINES) -> str:
    """Format the traceback of ``error``, keeping only its last lines."""
    lines = "".join(traceback.format_exception(error)).rstrip().splitlines()
    if len(lines) <= max_lines:
        return "\n".join(lines)
    omitted = len(lines) - max_lines
    return "\n".join([f"... {omitted} lines omitted ...", *lines[-max_lines:]])


def build_result_comment(
    scenario_name: str,
    passed: bool,
    finished_at: datetime,
    failure: FailureContext | None = None,
) -> str:
    """Summarize a scenario outcome for its remote result."""
    lines = [
        f"**Scenario:** {scenario_name}",
        f"**Status:** {'PASSED' if passed else 'FAILED'}",
        f"**Execution Time:** {finished_at:%Y-%m-%d %H:%M:%S}",
    ]
    if not passed and failure is not None:
        lines.append(f"**Failed Step:** {failure.step}")
        lines.append(f"**Error:** {failure.error}")
    return "\n".join(lines) + "\n"


def build_defect_description(
    *,
    case_id: int,
    scenario_name: str,
    failure_kind: FailureKind,
    priority: Priority,
    failed_step: str,
    message: str,
    stack: str,
    environment: Environment,
    timestamp: datetime,
) -> str:
    """Render the structured defect description filed with a failing result.

    Sections: test information, failure details, stack trace (when
    present), environment, reproduction pointer and recommended actions
    keyed by the failure kind.
    """
    parts = [
        "AUTOMATED TEST FAILURE - DEFECT REPORT",
        "",
        "TEST INFORMATION:",
        f"  - Test Case ID: C{case_id}",
        f"  - Scenario: {scenario_name}",
        f"  - Failure Type: {failure_kind}",
        f"  - Priority: {priority}",
        f"  - Timestamp: {timestamp:%Y-%m-%d %H:%M:%S}",
        "",
        "FAILURE DETAILS:",
        RULE,
        f"Failed Step: {failed_step}",
        message,
        RULE,
        "",
    ]
    if stack:
        parts += ["STACK TRACE:", RULE, stack, RULE, ""]

    parts.append("ENVIRONMENT:")
    parts += [f"  - {line}" for line in environment.lines()]
    parts += [
        "",
        "REPRODUCTION:",
        f"  Run scenario '{scenario_name}' (case C{case_id}) and compare with the "
        "attached report and step screenshots.",
        "",
        "RECOMMENDED ACTIONS:",
    ]
    parts += [
        f"  {n}. {action}"
        for n, action in enumerate(REMEDIATION[failure_kind], start=1)
    ]
    return "\n".join(parts) + "\n"
