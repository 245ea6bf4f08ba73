"""
Negative-path helpers: absence checks, declared expected failures and
error-state capture.
"""
from __future__ import annotations

import dataclasses
import logging
import traceback
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional

from ui_harness.errors import AssertionMismatch
from ui_harness.polling import PROBE_FAILED, AbsenceResult, AbsenceStatus, poll_absence
from ui_harness.report import CaseRecord

if TYPE_CHECKING:
    from ui_harness.scenario import Scenario, ScenarioContext
    from ui_harness.session import PageSession

logger = logging.getLogger(__name__)


def attach_diagnostics(record: CaseRecord, error: BaseException) -> None:
    """Record type, message, traceback and cause of a fault outside the assertions."""
    cause = error.__cause__ or error.__context__
    record.diagnostics["error"] = {
        "type": type(error).__name__,
        "message": str(error),
        "traceback": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
        "cause": repr(cause) if cause is not None else None,
    }
    logger.error(f"Error trace for '{record.title}': {error!r}", exc_info=(type(error), error, error.__traceback__))


async def watch_absence(session: "PageSession", selector: str, timeout_ms: Optional[float] = None) -> AbsenceResult:
    """Observe ``selector`` for the whole window and classify what was seen."""
    timeout_ms = session.settings.assert_timeout_ms if timeout_ms is None else timeout_ms
    element = session.locate(selector)

    async def present() -> Any:
        visible = await element.is_visible()
        return PROBE_FAILED if visible is PROBE_FAILED else bool(visible)

    result = await poll_absence(
        present,
        window=timeout_ms / 1000.0,
        interval=session.settings.poll_interval,
        abort=session.dialogs.raise_if_fatal,
    )
    logger.debug(f"Absence of {selector!r}: {result.status.value} after {result.polls} polls")
    return result


async def assert_absent(session: "PageSession", selector: str, timeout_ms: Optional[float] = None) -> AbsenceResult:
    """Pass only when ``selector`` was confirmed never visible for the full window."""
    result = await watch_absence(session, selector, timeout_ms)
    if result.status is AbsenceStatus.APPEARED:
        raise AssertionMismatch(
            f"'{selector}' visibility", "never visible", "visible",
            detail=f"appeared after {result.first_seen_after:.3f}s",
        )
    if result.status is AbsenceStatus.INCONCLUSIVE:
        raise AssertionMismatch(
            f"'{selector}' absence", AbsenceStatus.CONFIRMED_ABSENT.value, AbsenceStatus.INCONCLUSIVE.value,
            detail=f"{result.failed_polls} of {result.polls} polls failed over {result.elapsed:.3f}s",
        )
    return result


def declare_expected_failure(scenario: "Scenario", reason: str) -> "Scenario":
    """Copy of ``scenario`` that is expected to fail."""
    return dataclasses.replace(scenario, expected_failure=True, reason=reason)


@asynccontextmanager
async def capture_on_error(ctx: "ScenarioContext") -> AsyncIterator[None]:
    """On error, attach an "Error Screenshot", log the trace and re-raise."""
    try:
        yield
    except Exception as exc:
        await ctx.artifacts.capture_error(ctx.session, ctx.record)
        logger.error(f"Error trace: {exc!r}", exc_info=True)
        raise
