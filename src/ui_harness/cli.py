"""Command line entry point: run the bundled suite against a page."""
from __future__ import annotations

import argparse
import logging
import sys
from contextlib import ExitStack
from pathlib import Path
from typing import List, Optional

import anyio

from ui_harness.client import PlaywrightClient
from ui_harness.config import HarnessSettings, get_settings, set_settings
from ui_harness.report import ReportSink
from ui_harness.scenario import Scenario, ScenarioRunner, run_suite
from ui_harness.site_server import StaticSiteServer
from ui_harness.suites.static_site import SUITE

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ui-harness", description="Static-site UI validation harness")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run the validation suite")
    run.add_argument("--base-url", help="Page under test (overrides UI_BASE_URL)")
    run.add_argument("--serve", type=Path, help="Serve this directory locally and test it instead of --base-url")
    run.add_argument("--workers", type=int, help="Concurrent sessions (overrides UI_WORKERS)")
    run.add_argument("--artifact-dir", type=Path, help="Screenshot directory (overrides UI_ARTIFACT_DIR)")
    run.add_argument("--results", type=Path, help="Results JSON path (default: <artifact-dir>/results.json)")
    run.add_argument("--grep", help="Only run scenarios whose title contains this text")
    run.add_argument("--headful", action="store_true", help="Show the browser window")
    run.add_argument("--update-baselines", action="store_true", help="Overwrite visual baselines")
    run.add_argument("--verbose", action="store_true", help="Debug logging")

    sub.add_parser("list", help="List scenario titles")
    return parser


def select_scenarios(grep: Optional[str]) -> List[Scenario]:
    if not grep:
        return list(SUITE)
    needle = grep.lower()
    return [s for s in SUITE if needle in s.title.lower()]


async def run_async(settings: HarnessSettings, scenarios: List[Scenario]) -> ReportSink:
    sink = ReportSink()
    async with PlaywrightClient(settings) as client:
        runner = ScenarioRunner(settings, client.session, sink)
        await run_suite(scenarios, runner, workers=settings.workers)
    return sink


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "list":
        for item in SUITE:
            marker = " (expected failure)" if item.expected_failure else ""
            print(f"{item.title}{marker}")
        return 0

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)

    scenarios = select_scenarios(args.grep)
    if not scenarios:
        logger.error(f"No scenario matches {args.grep!r}")
        return 2

    with ExitStack() as stack:
        base_url = args.base_url
        if args.serve:
            base_url = stack.enter_context(StaticSiteServer(args.serve)).url

        settings = get_settings().with_overrides(
            base_url=base_url,
            workers=args.workers,
            artifact_dir=args.artifact_dir,
            headless=False if args.headful else None,
            update_baselines=True if args.update_baselines else None,
        )
        set_settings(settings)
        logger.info(f"Running {len(scenarios)} scenario(s) against {settings.base_url} with {settings.workers} worker(s)")
        sink = anyio.run(run_async, settings, scenarios)

    results_path = args.results or Path(settings.artifact_dir) / "results.json"
    sink.write_json(results_path)

    summary = sink.summary()
    logger.info(
        f"Done. Total: {summary['total']}, Passed: {summary['passed']}, Failed: {summary['failed']}, "
        f"Expected failures: {summary['expected_failure']}, Errored: {summary['errored']}, "
        f"Anomalies: {summary['anomalies']}"
    )
    return 0 if sink.ok else 1


if __name__ == "__main__":
    sys.exit(main())
