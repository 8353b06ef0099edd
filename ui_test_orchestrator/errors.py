"""Error taxonomy for scenario orchestration."""

from ui_test_orchestrator.models.locator import Locator


class OrchestratorError(Exception):
    """Base class for all orchestration errors."""


class SessionInitError(OrchestratorError):
    """Raised when a browser session cannot be created for a worker."""


class ActionError(OrchestratorError):
    """Raised when a resilient UI action exhausts its retry budget."""

    def __init__(
        self,
        operation: str,
        locator: Locator | None,
        last_cause: BaseException,
        attempts: int = 1,
    ) -> None:
        self.operation = operation
        self.locator = locator
        self.last_cause = last_cause
        self.attempts = attempts
        target = f" on {locator}" if locator is not None else ""
        super().__init__(
            f"{operation} failed{target} after {attempts} attempt(s): "
            f"{type(last_cause).__name__}: {last_cause}"
        )


class SyncError(OrchestratorError):
    """Raised when a result cannot be recorded in the test-management service."""


class DefectFilingError(OrchestratorError):
    """Raised internally when a defect record is rejected."""


class AttachmentUploadError(OrchestratorError):
    """Raised internally when an attachment upload is rejected."""


class UnknownLocatorError(OrchestratorError, KeyError):
    """Raised when a locator name is not present in the catalog."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class UndefinedStepError(OrchestratorError):
    """Raised when no step definition matches a step's text."""


class ScenarioParseError(OrchestratorError):
    """Raised when scenario text cannot be turned into ordered steps."""


class VerificationError(AssertionError):
    """Raised when an expected UI state does not hold."""
