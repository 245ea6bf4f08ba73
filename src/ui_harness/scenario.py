"""
Scenario runner.

A scenario is one independent test: a fresh page session, navigation to the
base document, then the body. The runner owns the lifecycle around the body:

* dialog expectations left unverified by the body are checked afterwards;
* the outcome is classified exactly once;
* the teardown screenshot is captured in a ``finally`` block, shielded from
  cancellation, whatever the body did;
* failures are recorded on the result and, when asked, re-raised after capture.
"""
from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple

import anyio

from ui_harness.artifacts import ArtifactCapture
from ui_harness.config import HarnessSettings
from ui_harness.dialogs import DialogInterceptor
from ui_harness.errors import ExpectedFailureViolation, ScenarioCancelled, ScenarioTimeout, describe_error
from ui_harness.negative import attach_diagnostics
from ui_harness.report import TERMINAL_STATES, CaseRecord, CaseState, ReportSink
from ui_harness.session import Element, PageSession
from ui_harness.snapshots import SnapshotResult, SnapshotStore

logger = logging.getLogger(__name__)

ScenarioBody = Callable[["ScenarioContext"], Awaitable[None]]
SessionFactory = Callable[[str], AbstractAsyncContextManager]


@dataclass(frozen=True)
class Scenario:
    title: str
    body: ScenarioBody
    expected_failure: bool = False
    reason: Optional[str] = None
    timeout_ms: Optional[int] = None
    start_path: str = "/"


def scenario(title: str, **options) -> Callable[[ScenarioBody], Scenario]:
    """Decorator turning an ``async def body(ctx)`` into a ``Scenario``."""

    def wrap(body: ScenarioBody) -> Scenario:
        return Scenario(title=title, body=body, **options)

    return wrap


class ScenarioContext:
    """What a scenario body works with."""

    def __init__(
        self,
        session: PageSession,
        record: CaseRecord,
        settings: HarnessSettings,
        sink: ReportSink,
        artifacts: ArtifactCapture,
        snapshots: SnapshotStore,
    ) -> None:
        self.session = session
        self.record = record
        self.settings = settings
        self.sink = sink
        self.artifacts = artifacts
        self.snapshots = snapshots

    @property
    def title(self) -> str:
        return self.record.title

    @property
    def dialogs(self) -> DialogInterceptor:
        return self.session.dialogs

    def locate(self, selector: str) -> Element:
        return self.session.locate(selector)

    async def navigate(self, path: str = "/") -> None:
        await self.session.navigate(path)

    def attach(self, name: str, path: Path, content_type: str = "image/png") -> None:
        self.sink.attach(self.record, name, str(path), content_type)

    async def compare_snapshot(self, name: str, full_page: bool = False) -> SnapshotResult:
        """Capture the page and compare it with the ``name`` baseline."""
        image = await self.session.screenshot(full_page=full_page)
        result = self.snapshots.compare(name, image)
        if not result.passed:
            if result.diff_path:
                self.attach(f"{name} diff", result.diff_path)
            if result.actual_path:
                self.attach(f"{name} actual", result.actual_path)
            raise self.snapshots.mismatch(result)
        return result


class ScenarioRunner:
    def __init__(self, settings: HarnessSettings, session_factory: SessionFactory, sink: Optional[ReportSink] = None) -> None:
        """
        Args:
            settings: Harness settings
            session_factory: Callable taking a scenario title and returning an
                async context manager that yields a fresh ``PageSession``
                (``PlaywrightClient.session`` in production)
            sink: Report sink; a new one is created when omitted
        """
        self.settings = settings
        self.session_factory = session_factory
        self.sink = sink or ReportSink()
        self.artifacts = ArtifactCapture(settings.artifact_dir, self.sink)
        self.snapshots = SnapshotStore(
            settings.snapshot_dir,
            Path(settings.artifact_dir) / "diffs",
            threshold=settings.visual_threshold,
            update=settings.update_baselines,
        )

    async def run(self, scenario: Scenario, reraise: bool = False) -> CaseRecord:
        """Run one scenario to a reported record.

        With ``reraise`` the scenario's failure (or the declared failure of an
        expected-failure scenario) is raised again once the artifact exists,
        so an outer test runner records it.
        """
        record = self.sink.new_record(scenario.title, scenario.expected_failure, scenario.reason)
        record.transition(CaseState.RUNNING)
        started = anyio.current_time()
        to_raise: Optional[BaseException] = None
        try:
            async with self.session_factory(scenario.title) as session:
                ctx = ScenarioContext(session, record, self.settings, self.sink, self.artifacts, self.snapshots)
                error: Optional[BaseException] = None
                completed = False
                try:
                    error = await self._execute(scenario, ctx)
                    completed = True
                finally:
                    if record.state is CaseState.RUNNING:
                        if not completed:
                            error = ScenarioCancelled(scenario.title)
                        outcome, to_raise = self._classify(scenario, record, error)
                        record.transition(outcome)
                    with anyio.CancelScope(shield=True):
                        await self.artifacts.capture_and_attach(session, record, record.outcome)
        except Exception as exc:
            # Opening or closing the session failed.
            if record.state is CaseState.RUNNING:
                outcome, to_raise = self._classify(scenario, record, exc)
                record.transition(outcome)
                await self.artifacts.capture_and_attach(None, record, outcome)
            else:
                logger.warning(f"Teardown of '{scenario.title}' failed: {exc}")
        finally:
            record.duration_s = round(anyio.current_time() - started, 3)
            if record.state in TERMINAL_STATES:
                record.transition(CaseState.REPORTED)

        logger.info(f"{record.outcome.value.upper():<16} {scenario.title} ({record.duration_s:.2f}s)")
        if reraise and to_raise is not None:
            raise to_raise
        return record

    async def _execute(self, scenario: Scenario, ctx: ScenarioContext) -> Optional[BaseException]:
        timeout_ms = scenario.timeout_ms or self.settings.test_timeout_ms
        error: Optional[BaseException] = None
        try:
            with anyio.fail_after(timeout_ms / 1000.0):
                await ctx.navigate(scenario.start_path)
                await scenario.body(ctx)
                await ctx.dialogs.wait_answered()
            ctx.dialogs.verify()
        except TimeoutError:
            error = ScenarioTimeout(scenario.title, timeout_ms)
        except Exception as exc:
            error = exc

        # An unhandled dialog outranks whatever the body failed with.
        fatal = ctx.dialogs.fatal
        if fatal is not None and error is not fatal:
            if error is not None:
                logger.warning(f"'{scenario.title}' also failed with {error!r} after {fatal}")
            return fatal
        return error

    def _classify(
        self, scenario: Scenario, record: CaseRecord, error: Optional[BaseException]
    ) -> Tuple[CaseState, Optional[BaseException]]:
        """Map the body result to a terminal state and the error to re-raise."""
        if error is None:
            if scenario.expected_failure:
                violation = ExpectedFailureViolation(scenario.title, scenario.reason)
                record.error = describe_error(violation)
                record.anomaly = str(violation)
                logger.error(f"{violation}")
                return CaseState.FAILED, violation
            return CaseState.PASSED, None

        record.error = describe_error(error)
        if isinstance(error, AssertionError):
            if scenario.expected_failure:
                logger.info(f"'{scenario.title}' failed as declared: {error}")
                return CaseState.EXPECTED_FAILURE, error
            return CaseState.FAILED, error

        attach_diagnostics(record, error)
        return CaseState.ERRORED, error


async def run_suite(
    scenarios: Iterable[Scenario], runner: ScenarioRunner, workers: Optional[int] = None
) -> List[CaseRecord]:
    """Run scenarios concurrently on at most ``workers`` isolated sessions."""
    scenarios = list(scenarios)
    titles = [s.title for s in scenarios]
    duplicates = sorted({t for t in titles if titles.count(t) > 1})
    if duplicates:
        raise ValueError(f"Scenario titles must be unique (artifact paths derive from them): {duplicates}")

    limiter = anyio.CapacityLimiter(workers or runner.settings.workers)
    records: List[CaseRecord] = []

    async def worker(item: Scenario) -> None:
        async with limiter:
            records.append(await runner.run(item))

    async with anyio.create_task_group() as tg:
        for item in scenarios:
            tg.start_soon(worker, item)

    order = {title: index for index, title in enumerate(titles)}
    return sorted(records, key=lambda r: order[r.title])
