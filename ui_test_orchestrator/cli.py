"""CLI entry point for the UI test orchestrator."""

import argparse
import asyncio
import json
import logging
import os
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from ui_test_orchestrator.actions.config import SettleConfig
from ui_test_orchestrator.browser.selenium_backend import SeleniumBackend
from ui_test_orchestrator.config import SuiteConfig
from ui_test_orchestrator.models.scenario import Scenario
from ui_test_orchestrator.orchestrator import ScenarioOutcome, SuiteOrchestrator
from ui_test_orchestrator.scenarios.parser import load_features
from ui_test_orchestrator.sessions import BackendFactory
from ui_test_orchestrator.tracking.base import TestManagementClient
from ui_test_orchestrator.tracking.defects import Environment
from ui_test_orchestrator.tracking.loading import load_tracker_manifest
from ui_test_orchestrator.tracking.synchronizer import TestManagementSynchronizer

CI_ENV_VARS = ("CI", "GITHUB_ACTIONS")


def log_results_summary(
    log: logging.Logger, outcomes: Sequence[ScenarioOutcome]
) -> None:
    """Log a formatted summary of scenario outcomes."""
    log.info("=" * 80)
    log.info("Scenario Results Summary:")
    log.info("=" * 80)

    for outcome in outcomes:
        log.info(
            "%s %s: %s (%.2fs)",
            "✅" if outcome.passed else "❌",
            outcome.scenario,
            "passed" if outcome.passed else "failed",
            outcome.duration,
        )
        if outcome.failed_step:
            log.info("  Failed step: %s", outcome.failed_step)
        if outcome.message:
            log.info("  Message: %s", outcome.message)
        if outcome.sync_error:
            log.info("  Not synchronized: %s", outcome.sync_error)


def format_output(outcomes: Sequence[ScenarioOutcome]) -> dict[str, Any]:
    """Format scenario outcomes for JSON output."""
    results = [
        {
            "scenario": outcome.scenario,
            "case_id": outcome.case_id,
            "status": "passed" if outcome.passed else "failed",
            "duration": outcome.duration,
            "failed_step": outcome.failed_step,
            "failure_kind": outcome.failure_kind,
            "message": outcome.message,
            "result_id": outcome.result_id,
            "defect_filed": outcome.defect_filed,
        }
        for outcome in outcomes
    ]
    return {
        "total": len(results),
        "passed": sum(1 for r in results if r["status"] == "passed"),
        "failed": sum(1 for r in results if r["status"] == "failed"),
        "results": results,
    }


def running_in_ci(environ: Mapping[str, str]) -> bool:
    """Return whether a CI system is driving this process."""
    return any(environ.get(name) for name in CI_ENV_VARS)


def apply_overrides(
    config: SuiteConfig,
    *,
    browser: str | None = None,
    headless: bool = False,
    workers: int | None = None,
    environ: Mapping[str, str] = os.environ,
) -> SuiteConfig:
    """Apply command line flags and CI detection on top of the file config."""
    browser_update: dict[str, Any] = {}
    update: dict[str, Any] = {}
    if browser is not None:
        browser_update["kind"] = browser
    if headless or running_in_ci(environ):
        browser_update["headless"] = True
    if running_in_ci(environ):
        update["settle"] = SettleConfig.instant()
    if workers is not None:
        update["workers"] = workers
    if browser_update:
        update["browser"] = config.browser.model_copy(update=browser_update)
    return config.model_copy(update=update)


async def fetch_tracker_scenarios(
    synchronizer: TestManagementSynchronizer,
    label: str | None,
    case_ids: Sequence[int],
) -> Sequence[Scenario]:
    """Build scenarios from the cases selected by label or explicit ids."""
    selected = await synchronizer.resolve_case_ids(label, case_ids)
    return await asyncio.gather(*(synchronizer.fetch_scenario(c) for c in selected))


async def run_scenarios(
    log: logging.Logger,
    config: SuiteConfig,
    scenarios: Sequence[Scenario] | None,
    backend_factory: BackendFactory,
    client: TestManagementClient | None,
) -> Sequence[ScenarioOutcome]:
    synchronizer = None
    if client is not None and config.tracker is not None:
        synchronizer = TestManagementSynchronizer(
            client,
            Environment(
                browser_kind=config.browser.kind, headless=config.browser.headless
            ),
            run_name_prefix=config.tracker.run_name_prefix,
        )
        if scenarios is None:
            log.info("Fetching scenarios from the tracker...")
            scenarios = await fetch_tracker_scenarios(
                synchronizer, config.tracker.label, config.tracker.case_ids
            )

    orchestrator = SuiteOrchestrator.from_config(
        config, backend_factory=backend_factory, synchronizer=synchronizer
    )
    return await orchestrator.run_suite(scenarios or [])


async def run(
    config: SuiteConfig,
    features_dir: Path | None,
    backend_factory: BackendFactory = SeleniumBackend.from_config,
) -> int:
    """Run the suite and return exit code."""
    log = logging.getLogger("ui_test_orchestrator")

    scenarios: Sequence[Scenario] | None = None
    if features_dir is not None:
        log.info("Loading features from %s", features_dir)
        scenarios = load_features(features_dir)

    if config.tracker is None:
        outcomes = await run_scenarios(
            log, config, scenarios, backend_factory, client=None
        )
    else:
        log.info("Loading tracker: %s", config.tracker.provider)
        manifest = load_tracker_manifest(config.tracker.provider)
        tracker_config = manifest.config_cls(**config.tracker.config)
        async with manifest.client_factory(tracker_config) as client:
            outcomes = await run_scenarios(
                log, config, scenarios, backend_factory, client
            )

    if not outcomes:
        log.info("No scenarios were run")
        print(json.dumps({"total": 0, "results": []}))
        return 0

    log_results_summary(log, outcomes)
    print(json.dumps(format_output(outcomes), indent=2))

    return 1 if any(not outcome.passed for outcome in outcomes) else 0


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Run browser scenarios and synchronize results with a tracker"
    )
    parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="Path to the suite configuration JSON file",
    )
    parser.add_argument(
        "--features",
        type=Path,
        help="Directory of .feature files (defaults to cases fetched from the tracker)",
    )
    parser.add_argument(
        "--browser",
        choices=["chrome", "firefox", "edge", "safari"],
        help="Browser kind, overriding the configuration file",
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run browsers headless (implied on CI)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="Number of scenarios run in parallel",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    config = apply_overrides(
        SuiteConfig.from_file(args.config),
        browser=args.browser,
        headless=args.headless,
        workers=args.workers,
    )
    if args.features is None and config.tracker is None:
        parser.error("--features is required when no tracker is configured")

    exit_code = asyncio.run(run(config, args.features))
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
