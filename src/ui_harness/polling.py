"""Explicit convergence polling.

Assertions never rely on a hidden auto-retrying primitive: they call
``poll_until`` with a probe, a predicate and a deadline, and report the last
observed value when the deadline passes.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import anyio


class _Sentinel:
    def __init__(self, label: str) -> None:
        self.label = label

    def __repr__(self) -> str:
        return f"<{self.label}>"


# Probe results that are not element values.
DETACHED = _Sentinel("detached")
PROBE_FAILED = _Sentinel("probe failed")
NOT_OBSERVED = _Sentinel("not observed")


@dataclass(frozen=True)
class PollResult:
    converged: bool
    last_value: Any
    polls: int
    elapsed: float


async def poll_until(
    probe: Callable[[], Awaitable[Any]],
    predicate: Callable[[Any], bool],
    *,
    timeout: float,
    interval: float = 0.1,
    abort: Optional[Callable[[], None]] = None,
) -> PollResult:
    """Call ``probe`` until ``predicate(value)`` holds or ``timeout`` seconds pass.

    The probe always runs at least once, and once more at the deadline, so a
    zero timeout degenerates to a single immediate check. ``abort`` runs
    before every probe and stops the loop by raising.
    """
    start = anyio.current_time()
    deadline = start + timeout
    last: Any = NOT_OBSERVED
    polls = 0
    while True:
        if abort is not None:
            abort()
        last = await probe()
        polls += 1
        if predicate(last):
            return PollResult(True, last, polls, anyio.current_time() - start)
        remaining = deadline - anyio.current_time()
        if remaining <= 0:
            return PollResult(False, last, polls, anyio.current_time() - start)
        await anyio.sleep(min(interval, remaining))


class AbsenceStatus(str, Enum):
    CONFIRMED_ABSENT = "confirmed_absent"
    APPEARED = "appeared"
    INCONCLUSIVE = "inconclusive"


@dataclass(frozen=True)
class AbsenceResult:
    status: AbsenceStatus
    polls: int
    elapsed: float
    window: float
    failed_polls: int = 0
    first_seen_after: Optional[float] = None

    @property
    def confirmed(self) -> bool:
        return self.status is AbsenceStatus.CONFIRMED_ABSENT


async def poll_absence(
    probe_present: Callable[[], Awaitable[Any]],
    *,
    window: float,
    interval: float = 0.1,
    abort: Optional[Callable[[], None]] = None,
) -> AbsenceResult:
    """Watch for ``window`` seconds and classify whether the target ever showed up.

    ``probe_present`` returns True when the target is observed, False when it
    is not, or ``PROBE_FAILED`` when the observation itself could not be made.
    Absence is only confirmed after the full window elapsed with every poll
    succeeding and none of them seeing the target. A sighting ends the watch
    early because it is conclusive on its own.
    """
    start = anyio.current_time()
    deadline = start + window
    polls = 0
    failed = 0
    while True:
        if abort is not None:
            abort()
        observed = await probe_present()
        polls += 1
        now = anyio.current_time()
        if observed is PROBE_FAILED:
            failed += 1
        elif observed:
            return AbsenceResult(AbsenceStatus.APPEARED, polls, now - start, window, failed, now - start)
        remaining = deadline - now
        if remaining <= 0:
            break
        await anyio.sleep(min(interval, remaining))

    elapsed = anyio.current_time() - start
    status = AbsenceStatus.CONFIRMED_ABSENT
    if failed or polls < 2 or elapsed < window:
        status = AbsenceStatus.INCONCLUSIVE
    return AbsenceResult(status, polls, elapsed, window, failed)
