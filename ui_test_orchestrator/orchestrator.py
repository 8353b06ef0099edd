"""Suite orchestrator coordinating scenario workers and result synchronization."""

import asyncio
import dataclasses
import logging
import re
import time
from collections import Counter
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone

from ui_test_orchestrator.actions.executor import ResilientActionExecutor
from ui_test_orchestrator.actions.strategy import SettlePolicy, StrategySelector
from ui_test_orchestrator.config import SuiteConfig
from ui_test_orchestrator.errors import SyncError
from ui_test_orchestrator.models.failure import FailureContext, FailureKind
from ui_test_orchestrator.models.report import Artifact
from ui_test_orchestrator.models.scenario import Scenario
from ui_test_orchestrator.recorder import StepEventRecorder
from ui_test_orchestrator.report.aggregator import ReportAggregator
from ui_test_orchestrator.report.entry import ReportEntry
from ui_test_orchestrator.report.sink import JsonReportSink
from ui_test_orchestrator.scenarios.locators import LocatorCatalog
from ui_test_orchestrator.scenarios.parser import fill_placeholders
from ui_test_orchestrator.scenarios.steps import (
    ScenarioContext,
    StepLibrary,
    default_library,
)
from ui_test_orchestrator.sessions import BackendFactory, SessionRegistry
from ui_test_orchestrator.tracking.defects import build_result_comment, stack_excerpt
from ui_test_orchestrator.tracking.synchronizer import TestManagementSynchronizer

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, kw_only=True)
class ScenarioOutcome:
    """Final state of one scenario after execution and synchronization."""

    scenario: str
    case_id: int | None
    passed: bool
    duration: float
    failed_step: str | None = None
    failure_kind: FailureKind | None = None
    message: str | None = None
    result_id: int | None = None
    defect_filed: bool = False
    sync_error: str | None = None


@dataclass(frozen=True, kw_only=True)
class ScenarioExecution:
    """What a worker hands back to the event loop when a scenario ends."""

    scenario: Scenario
    entry: ReportEntry
    duration: float
    failure: FailureContext | None

    @property
    def passed(self) -> bool:
        return self.failure is None


class SuiteOrchestrator:
    """Runs scenarios on worker threads and synchronizes each outcome.

    UI work blocks, so every scenario runs end-to-end on one thread of a
    ThreadPoolExecutor; synchronization with the tracker happens on the
    event loop as soon as that scenario finishes. The report is flushed
    once, after every worker has been joined.
    """

    def __init__(
        self,
        *,
        config: SuiteConfig,
        report: ReportAggregator,
        sessions: SessionRegistry,
        recorder: StepEventRecorder,
        actions: ResilientActionExecutor,
        steps: StepLibrary,
        locators: LocatorCatalog,
        synchronizer: TestManagementSynchronizer | None = None,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.config = config
        self.report = report
        self.sessions = sessions
        self.recorder = recorder
        self.actions = actions
        self.steps = steps
        self.locators = locators
        self.synchronizer = synchronizer
        self._clock = clock
        self._now = now

    @classmethod
    def from_config(
        cls,
        config: SuiteConfig,
        *,
        backend_factory: BackendFactory,
        synchronizer: TestManagementSynchronizer | None = None,
        steps: StepLibrary | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> "SuiteOrchestrator":
        """Wire the session, report, recorder and executor layers."""
        sink = JsonReportSink(
            path=config.report_path,
            title=config.report_title,
            system_info={
                "Browser": config.browser.kind,
                "Headless": str(config.browser.headless),
            },
        )
        report = ReportAggregator(sink)
        sessions = SessionRegistry(config.browser, backend_factory)
        recorder = StepEventRecorder(report, sessions, clock=clock)
        settle = SettlePolicy(config=config.settle, sleep=sleep)
        actions = ResilientActionExecutor(
            sessions=sessions,
            strategies=StrategySelector.from_config(config.retry, settle),
            failure_sink=recorder,
            evidence_sink=recorder,
            settle=settle,
            capture_screenshots=config.capture_action_screenshots,
            sleep=sleep,
            clock=clock,
        )
        return cls(
            config=config,
            report=report,
            sessions=sessions,
            recorder=recorder,
            actions=actions,
            steps=steps or default_library(),
            locators=LocatorCatalog(config.locators),
            synchronizer=synchronizer,
            clock=clock,
        )

    async def run_suite(
        self, scenarios: Sequence[Scenario]
    ) -> Sequence[ScenarioOutcome]:
        """Run all scenarios and return their outcomes in input order.

        Args:
            scenarios: Scenarios to run; names must be unique

        Returns:
            One outcome per scenario

        Raises:
            ValueError: If two scenarios share a name
            UnknownLocatorError: If a step names a locator missing from the catalog

        """
        counts = Counter(s.name for s in scenarios)
        duplicates = sorted(name for name, count in counts.items() if count > 1)
        if duplicates:
            raise ValueError(f"Duplicate scenario names: {duplicates}")
        if not scenarios:
            log.info("No scenarios to run")
            return []

        prepared = [
            s.model_copy(
                update={
                    "steps": tuple(fill_placeholders(s.steps, self.config.data_for(s)))
                }
            )
            for s in scenarios
        ]
        self.locators.validate(
            self.steps.required_locators(step for s in prepared for step in s.steps)
        )

        await self._ensure_run(prepared)

        log.info(
            "Running %d scenario(s) on %d worker(s)...",
            len(prepared),
            self.config.workers,
        )
        loop = asyncio.get_running_loop()
        executor = ThreadPoolExecutor(
            max_workers=self.config.workers, thread_name_prefix="scenario"
        )
        try:
            results = await asyncio.gather(
                *(self._run_scenario(loop, executor, s) for s in prepared),
                return_exceptions=True,
            )
        finally:
            executor.shutdown(wait=True)
        log.info("Scenario execution completed")

        outcomes = self._process_results(prepared, results)

        try:
            self.report.flush()
        finally:
            await self._close_run()
        return outcomes

    def _process_results(
        self,
        scenarios: Sequence[Scenario],
        results: Sequence[ScenarioOutcome | BaseException],
    ) -> Sequence[ScenarioOutcome]:
        """Turn worker exceptions into failed outcomes."""
        outcomes: list[ScenarioOutcome] = []
        for scenario, result in zip(scenarios, results, strict=True):
            if isinstance(result, ScenarioOutcome):
                log.info(
                    "Scenario completed: name=%s passed=%s duration=%.1fs",
                    result.scenario,
                    result.passed,
                    result.duration,
                )
                outcomes.append(result)
            elif isinstance(result, Exception):
                log.error(
                    "Scenario execution failed: %s: %s",
                    scenario.name,
                    result,
                    exc_info=result,
                )
                outcomes.append(
                    ScenarioOutcome(
                        scenario=scenario.name,
                        case_id=scenario.case_id,
                        passed=False,
                        duration=0.0,
                        message=str(result),
                    )
                )
            else:
                raise result
        return outcomes

    async def _run_scenario(
        self,
        loop: asyncio.AbstractEventLoop,
        executor: ThreadPoolExecutor,
        scenario: Scenario,
    ) -> ScenarioOutcome:
        execution = await loop.run_in_executor(executor, self._execute, scenario)
        return await self._synchronize(execution)

    def _execute(self, scenario: Scenario) -> ScenarioExecution:
        """Run every step of ``scenario`` on the calling worker thread."""
        entry = self.report.create_entry(scenario.name, sorted(scenario.tags))
        self.recorder.begin_scenario(entry)
        context = ScenarioContext(
            scenario=scenario,
            actions=self.actions,
            locators=self.locators,
            base_url=self.config.base_url,
        )
        log.info("Scenario started: %s", scenario.name)
        started = self._clock()
        failed = False
        try:
            for text in scenario.steps:
                if failed:
                    self.recorder.on_step_skipped(text)
                    continue
                self.recorder.on_step_start(text)
                try:
                    self.steps.run(context, text)
                except Exception as e:
                    failed = True
                    self.recorder.on_step_finish(e)
                else:
                    self.recorder.on_step_finish(None)
        finally:
            failure = self.recorder.end_scenario()
            if failure is not None:
                self._capture_final(entry)
                self.report.add_note(
                    entry, "fail", f"Scenario failed at step: {failure.step}"
                )
            else:
                self.report.add_note(entry, "pass", "Scenario passed successfully")
            self.sessions.release()

        duration = self._clock() - started
        log.info(
            "Scenario %s: %s (%.1fs)",
            "failed" if failure is not None else "passed",
            scenario.name,
            duration,
        )
        return ScenarioExecution(
            scenario=scenario, entry=entry, duration=duration, failure=failure
        )

    def _capture_final(self, entry: ReportEntry) -> None:
        session = self.sessions.peek()
        if session is None:
            return
        try:
            screenshot = session.backend.screenshot()
        except Exception as e:
            log.warning("Final failure screenshot failed: %s", e)
            return
        self.report.attach_artifact(entry, screenshot, "Final Failure Screenshot")

    async def _ensure_run(self, scenarios: Sequence[Scenario]) -> None:
        if self.synchronizer is None:
            return
        case_ids = sorted({s.case_id for s in scenarios if s.case_id is not None})
        if not case_ids:
            log.info("No scenario carries a case id, skipping run creation")
            return
        try:
            run_id = await self.synchronizer.ensure_run(case_ids)
        except SyncError as e:
            log.error("Could not create run, results will not be synchronized: %s", e)
            return
        log.info("Using run R%d for %d case(s)", run_id, len(case_ids))

    async def _close_run(self) -> None:
        if self.synchronizer is None:
            return
        try:
            await self.synchronizer.close_run()
        except SyncError as e:
            log.error("%s", e)

    async def _synchronize(self, execution: ScenarioExecution) -> ScenarioOutcome:
        scenario = execution.scenario
        failure = execution.failure
        outcome = ScenarioOutcome(
            scenario=scenario.name,
            case_id=scenario.case_id,
            passed=execution.passed,
            duration=execution.duration,
            failed_step=failure.step if failure is not None else None,
            failure_kind=failure.classification.kind if failure is not None else None,
            message=str(failure.error) if failure is not None else None,
        )
        if self.synchronizer is None or scenario.case_id is None:
            return outcome

        case_id = scenario.case_id
        comment = build_result_comment(
            scenario.name, execution.passed, self._now(), failure
        )
        try:
            result_id = await self.synchronizer.submit_result(
                case_id, execution.passed, comment
            )
        except SyncError as e:
            log.error("Result for %s not synchronized: %s", scenario.name, e)
            return dataclasses.replace(outcome, sync_error=str(e))

        defect_filed = False
        if failure is not None:
            defect_filed = await self.synchronizer.file_defect(
                case_id=case_id,
                scenario_name=scenario.name,
                failed_step=failure.step,
                failure_kind=failure.classification.kind,
                priority=failure.classification.priority,
                description=f"{type(failure.error).__name__}: {failure.error}",
                stack_excerpt=stack_excerpt(failure.error),
            )

        await self.synchronizer.upload_attachment(
            result_id, self._report_artifact(execution.entry)
        )
        return dataclasses.replace(
            outcome, result_id=result_id, defect_filed=defect_filed
        )

    def _report_artifact(self, entry: ReportEntry) -> Artifact:
        sink = self.report.sink
        slug = re.sub(r"[^A-Za-z0-9]+", "-", entry.name).strip("-").lower()
        return Artifact(
            caption=f"Report for {entry.name}",
            data=self.report.render_entry(entry),
            media_type=sink.media_type,
            filename=f"{slug or 'scenario'}{sink.suffix}",
        )
