"""Synchronization of scenario outcomes with a test-management service."""

import asyncio
import dataclasses
import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from ui_test_orchestrator.errors import (
    AttachmentUploadError,
    DefectFilingError,
    SyncError,
)
from ui_test_orchestrator.models.failure import FailureKind, Priority
from ui_test_orchestrator.models.report import Artifact
from ui_test_orchestrator.models.run import Run
from ui_test_orchestrator.models.scenario import Scenario
from ui_test_orchestrator.scenarios.parser import scenario_from_case
from ui_test_orchestrator.tracking.base import RemoteServiceError, TestManagementClient
from ui_test_orchestrator.tracking.defects import Environment, build_defect_description

log = logging.getLogger(__name__)

INVALID_RUN_PHRASES = ("run_id", "test run", "closed")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_invalid_run_error(error: RemoteServiceError) -> bool:
    """Return whether the service rejected a request because the run is gone.

    A missing run answers 404; a closed or foreign run answers 400 with a
    message naming the run.
    """
    if error.status == 404:
        return True
    if error.status == 400:
        message = error.message.lower()
        return any(phrase in message for phrase in INVALID_RUN_PHRASES)
    return False


class TestManagementSynchronizer:
    """Keeps the shared remote run and pushes results, defects and attachments.

    The synchronizer runs on the event loop. The active run is replaced only
    while holding ``_lock``, so concurrent recoveries never overwrite a run
    another worker already installed.
    """

    __test__ = False

    def __init__(
        self,
        client: TestManagementClient,
        environment: Environment,
        run_name_prefix: str = "AutoRun",
        now: Callable[[], datetime] = _utcnow,
    ):
        self.client = client
        self.environment = environment
        self.run_name_prefix = run_name_prefix
        self._now = now
        self._lock = asyncio.Lock()
        self._run: Run | None = None
        self._created: list[Run] = []

    @property
    def run(self) -> Run | None:
        """The run results are currently submitted to."""
        return self._run

    @property
    def runs(self) -> Sequence[Run]:
        """Every run created by this synchronizer, in creation order."""
        return tuple(self._created)

    async def resolve_case_ids(
        self, label: str | None, fallback: Sequence[int] = ()
    ) -> Sequence[int]:
        """Return the cases carrying ``label``, or ``fallback`` if there are none."""
        if label:
            try:
                case_ids = await self.client.get_cases_by_label(label)
            except RemoteServiceError as e:
                raise SyncError(f"Failed to list cases for label '{label}': {e}") from e
            if case_ids:
                log.info("Found %d cases for label '%s'", len(case_ids), label)
                return case_ids
            log.warning("No cases found for label '%s', using fallback ids", label)
        return tuple(fallback)

    async def fetch_scenario(self, case_id: int) -> Scenario:
        """Build an executable scenario from the case's BDD text.

        Raises:
            SyncError: If the case cannot be fetched
            ScenarioParseError: If the case has no recognizable steps

        """
        try:
            case = await self.client.get_case(case_id)
        except RemoteServiceError as e:
            raise SyncError(f"Failed to fetch case C{case_id}: {e}") from e
        return scenario_from_case(case)

    async def ensure_run(self, case_ids: Sequence[int]) -> int:
        """Return the active run id, creating a run for ``case_ids`` if needed.

        Raises:
            SyncError: If the run cannot be created

        """
        async with self._lock:
            if self._run is not None and self._run.status == "open":
                return self._run.id
            name = f"{self.run_name_prefix} - {self._now():%Y-%m-%d %H:%M:%S}"
            run = await self._create_run(name, case_ids)
            self._run = run
            return run.id

    async def submit_result(
        self,
        case_id: int,
        passed: bool,
        comment: str,
        defects: str | None = None,
    ) -> int:
        """Record the outcome of a case, recovering once from a stale run.

        Args:
            case_id: The case the result belongs to
            passed: Whether the scenario passed
            comment: Result comment
            defects: Defect reference to link to the result

        Returns:
            The id of the created result

        Raises:
            SyncError: If there is no active run, or submission fails after
                the single recovery attempt

        """
        run = self._run
        if run is None:
            raise SyncError(f"No active run to submit result for case C{case_id}")

        try:
            return await self.client.submit_result(
                run.id, case_id, passed, comment, defects
            )
        except RemoteServiceError as e:
            if not is_invalid_run_error(e):
                raise SyncError(
                    f"Failed to submit result for case C{case_id}: {e}"
                ) from e
            log.warning(
                "Run R%d rejected result for case C%d (%s), creating recovery run",
                run.id,
                case_id,
                e,
            )

        recovery_id = await self._recover(run.id, case_id)
        try:
            result_id = await self.client.submit_result(
                recovery_id, case_id, passed, comment, defects
            )
        except RemoteServiceError as e:
            raise SyncError(
                f"Failed to submit result for case C{case_id} "
                f"after recovering run R{recovery_id}: {e}"
            ) from e
        log.info(
            "Recovered with run R%d (result %d) for case C%d",
            recovery_id,
            result_id,
            case_id,
        )
        return result_id

    async def file_defect(
        self,
        *,
        case_id: int,
        scenario_name: str,
        failed_step: str,
        failure_kind: FailureKind,
        priority: Priority,
        description: str,
        stack_excerpt: str,
    ) -> bool:
        """File a defect as a failing result carrying a defect reference.

        Never raises; returns whether the service accepted the defect.
        """
        timestamp = self._now()
        reference = f"AUTO-DEFECT-C{case_id}-{int(timestamp.timestamp() * 1000)}"
        run_id = self._run.id if self._run is not None else None
        comment = build_defect_description(
            case_id=case_id,
            scenario_name=scenario_name,
            failure_kind=failure_kind,
            priority=priority,
            failed_step=failed_step,
            message=description,
            stack=stack_excerpt,
            environment=dataclasses.replace(self.environment, run_id=run_id),
            timestamp=timestamp,
        )
        try:
            result_id = await self._submit_defect(case_id, comment, reference)
        except DefectFilingError:
            log.exception("Failed to file defect for case C%d", case_id)
            return False

        log.info(
            "Filed defect %s for case C%d (%s, %s priority, result %d)",
            reference,
            case_id,
            failure_kind,
            priority,
            result_id,
        )
        return True

    async def upload_attachment(self, result_id: int, artifact: Artifact) -> bool:
        """Attach an artifact to a result. Never raises."""
        filename = artifact.filename or f"{artifact.caption}.bin"
        try:
            await self._upload(result_id, filename, artifact)
        except AttachmentUploadError as e:
            log.warning("%s", e)
            return False
        return True

    async def close_run(self) -> None:
        """Close every open run this synchronizer created.

        Safe to call repeatedly; runs already closed are skipped.

        Raises:
            SyncError: If a run cannot be closed

        """
        async with self._lock:
            failures: list[str] = []
            for index, run in enumerate(self._created):
                if run.status != "open":
                    continue
                try:
                    await self.client.close_run(run.id)
                except RemoteServiceError as e:
                    log.error("Failed to close run R%d: %s", run.id, e)
                    failures.append(f"R{run.id}: {e}")
                    continue
                closed = dataclasses.replace(run, status="closed")
                self._created[index] = closed
                if self._run is not None and self._run.id == run.id:
                    self._run = closed
            if failures:
                raise SyncError(f"Failed to close runs: {'; '.join(failures)}")

    async def _submit_defect(self, case_id: int, comment: str, reference: str) -> int:
        try:
            return await self.submit_result(
                case_id, passed=False, comment=comment, defects=reference
            )
        except Exception as e:
            raise DefectFilingError(
                f"Defect {reference} for case C{case_id} was rejected: {e}"
            ) from e

    async def _upload(self, result_id: int, filename: str, artifact: Artifact) -> None:
        try:
            await self.client.upload_attachment(
                result_id, filename, artifact.data, artifact.media_type
            )
        except Exception as e:
            raise AttachmentUploadError(
                f"Failed to upload {filename} to result {result_id}: {e}"
            ) from e

    async def _create_run(self, name: str, case_ids: Sequence[int]) -> Run:
        try:
            run_id = await self.client.create_run(name, case_ids)
        except RemoteServiceError as e:
            raise SyncError(f"Failed to create run '{name}': {e}") from e
        run = Run(id=run_id, case_ids=frozenset(case_ids))
        self._created.append(run)
        return run

    async def _recover(self, stale_id: int, case_id: int) -> int:
        """Create a run scoped to ``case_id`` and install it if still stale."""
        async with self._lock:
            name = f"AutoRecoveryRun - {self._now():%Y-%m-%d %H:%M:%S}"
            recovery = await self._create_run(name, [case_id])
            for index, run in enumerate(self._created):
                if run.id == stale_id:
                    self._created[index] = dataclasses.replace(run, status="invalid")
            if self._run is not None and self._run.id == stale_id:
                self._run = recovery
            else:
                log.info(
                    "Run R%d was already replaced, keeping it as the active run",
                    stale_id,
                )
            return recovery.id
