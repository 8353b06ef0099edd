"""Abstract base class for test-management service clients."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass


class RemoteServiceError(Exception):
    """Raised when the test-management service rejects a request."""

    def __init__(self, operation: str, status: int, message: str):
        self.operation = operation
        self.status = status
        self.message = message
        super().__init__(f"{operation} failed: {status} {message}")


@dataclass(frozen=True, kw_only=True)
class CaseDefinition:
    """A test case as stored in the test-management service."""

    id: int
    title: str
    bdd: str = ""
    labels: Sequence[str] = ()


class TestManagementClient(ABC):
    """Client for a remote service tracking runs, results and attachments."""

    __test__ = False

    @abstractmethod
    async def create_run(self, name: str, case_ids: Sequence[int]) -> int:
        """Create a run covering ``case_ids`` and return its id."""

    @abstractmethod
    async def close_run(self, run_id: int) -> None:
        """Close the run so no more results can be added."""

    @abstractmethod
    async def get_case(self, case_id: int) -> CaseDefinition:
        """Fetch a single case definition."""

    @abstractmethod
    async def get_cases_by_label(self, label: str) -> Sequence[int]:
        """Return ids of the cases carrying ``label`` (case-insensitive)."""

    @abstractmethod
    async def submit_result(
        self,
        run_id: int,
        case_id: int,
        passed: bool,
        comment: str,
        defects: str | None = None,
    ) -> int:
        """Add a result for the case in the run and return the result id.

        Raises:
            RemoteServiceError: If the service rejects the result

        """

    @abstractmethod
    async def upload_attachment(
        self, result_id: int, filename: str, data: bytes, media_type: str
    ) -> None:
        """Attach a file to an existing result."""
