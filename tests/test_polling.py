"""Tests for the explicit convergence and absence polling loops."""
import anyio
import pytest

from ui_harness.polling import PROBE_FAILED, AbsenceStatus, poll_absence, poll_until

pytestmark = pytest.mark.asyncio


class Counter:
    def __init__(self, values):
        self.values = list(values)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if len(self.values) > 1:
            return self.values.pop(0)
        return self.values[0]


async def test_poll_until_converges_on_later_value():
    probe = Counter(["a", "b", "done"])

    result = await poll_until(probe, lambda v: v == "done", timeout=1.0, interval=0.01)

    assert result.converged
    assert result.last_value == "done"
    assert result.polls == 3


async def test_poll_until_reports_last_value_on_timeout():
    probe = Counter([1, 2, 3])

    result = await poll_until(probe, lambda v: v == 99, timeout=0.1, interval=0.02)

    assert not result.converged
    assert result.last_value == 3
    assert result.elapsed >= 0.1


async def test_zero_timeout_checks_exactly_once():
    probe = Counter([False])

    result = await poll_until(probe, bool, timeout=0, interval=0.01)

    assert not result.converged
    assert probe.calls == 1


async def test_absence_is_confirmed_only_after_the_full_window():
    probe = Counter([False])
    start = anyio.current_time()

    result = await poll_absence(probe, window=0.2, interval=0.03)

    assert result.status is AbsenceStatus.CONFIRMED_ABSENT
    assert result.confirmed
    assert anyio.current_time() - start >= 0.2
    assert result.polls > 2


async def test_absence_does_not_short_circuit_on_first_empty_check():
    # Absent at first, visible later in the window.
    probe = Counter([False, False, False, True])

    result = await poll_absence(probe, window=0.5, interval=0.02)

    assert result.status is AbsenceStatus.APPEARED
    assert result.first_seen_after is not None
    assert result.polls == 4


async def test_probe_failures_make_absence_inconclusive():
    probe = Counter([False, PROBE_FAILED, False])

    result = await poll_absence(probe, window=0.1, interval=0.02)

    assert result.status is AbsenceStatus.INCONCLUSIVE
    assert result.failed_polls == 1


async def test_zero_window_cannot_confirm_absence():
    result = await poll_absence(Counter([False]), window=0)

    assert result.status is AbsenceStatus.INCONCLUSIVE


async def test_abort_hook_stops_polling():
    probe = Counter([False])
    calls = []

    def abort():
        calls.append(1)
        if len(calls) == 3:
            raise RuntimeError("session is gone")

    with pytest.raises(RuntimeError):
        await poll_until(probe, bool, timeout=5, interval=0.01, abort=abort)
    assert probe.calls == 2

    calls.clear()
    with pytest.raises(RuntimeError):
        await poll_absence(Counter([False]), window=5, interval=0.01, abort=abort)
