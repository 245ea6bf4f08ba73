"""Absence checks and declared expected failures."""
import pytest

from harness_fakes import FakeElement, FakePage
from ui_harness.errors import AssertionMismatch
from ui_harness.negative import assert_absent, attach_diagnostics, declare_expected_failure, watch_absence
from ui_harness.polling import AbsenceStatus
from ui_harness.report import CaseRecord
from ui_harness.scenario import Scenario
from ui_harness.session import PageSession

pytestmark = pytest.mark.asyncio


def make_session(settings, **elements):
    return PageSession(FakePage(elements), settings)


async def test_never_visible_element_is_confirmed_absent(settings):
    session = make_session(settings, **{"#hidden-msg": FakeElement(visible=False)})

    result = await assert_absent(session, "#hidden-msg", timeout_ms=150)

    assert result.status is AbsenceStatus.CONFIRMED_ABSENT
    assert result.elapsed >= 0.15


async def test_element_appearing_late_in_window_fails(settings):
    session = make_session(settings, **{"#toast": FakeElement(appear_after=0.1)})

    with pytest.raises(AssertionMismatch) as excinfo:
        await assert_absent(session, "#toast", timeout_ms=400)

    assert excinfo.value.observed == "visible"


async def test_unobservable_element_is_inconclusive(settings, monkeypatch):
    from playwright.async_api import Error as PlaywrightError

    async def broken(self):
        raise PlaywrightError("Execution context was destroyed")

    monkeypatch.setattr("harness_fakes.FakeLocator.count", broken)
    session = make_session(settings)

    result = await watch_absence(session, "#hidden-msg", timeout_ms=100)
    assert result.status is AbsenceStatus.INCONCLUSIVE

    with pytest.raises(AssertionMismatch) as excinfo:
        await assert_absent(session, "#hidden-msg", timeout_ms=100)
    assert excinfo.value.observed == "inconclusive"


async def test_declare_expected_failure_copies_scenario():
    async def body(ctx):
        pass

    original = Scenario("Missing element", body)
    declared = declare_expected_failure(original, "element is intentionally absent")

    assert declared.expected_failure is True
    assert declared.reason == "element is intentionally absent"
    assert original.expected_failure is False


async def test_attach_diagnostics_records_cause():
    record = CaseRecord("Broken")
    try:
        try:
            raise KeyError("missing")
        except KeyError as exc:
            raise RuntimeError("lookup failed") from exc
    except RuntimeError as error:
        attach_diagnostics(record, error)

    info = record.diagnostics["error"]
    assert info["type"] == "RuntimeError"
    assert info["cause"] == "KeyError('missing')"
    assert "lookup failed" in info["traceback"]
