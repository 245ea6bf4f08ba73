"""
Dialog interception for one page session.

Native dialogs (alert, confirm, prompt) block the page until answered, and
they fire from inside the action that triggers them. The interceptor keeps a
single armed expectation; a test arms it immediately before the triggering
call and settles it afterwards:

    async with session.dialogs.expecting(type="confirm", message="Are you sure?"):
        await session.locate("#confirmBtn").click()

A dialog that arrives with nothing armed is an ``UnhandledDialog``. It is
dismissed so the page does not hang, and the session is marked fatal.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, List, Optional

import anyio

from ui_harness.errors import AssertionMismatch, UnhandledDialog

logger = logging.getLogger(__name__)

DIALOG_TYPES = ("alert", "confirm", "prompt", "beforeunload")


@dataclass(frozen=True)
class Accept:
    """Accept the dialog, optionally typing ``text`` into a prompt."""

    text: Optional[str] = None

    async def apply(self, dialog: Any) -> None:
        if self.text is None:
            await dialog.accept()
        else:
            await dialog.accept(self.text)

    def __str__(self) -> str:
        return "accept" if self.text is None else f"accept({self.text!r})"


@dataclass(frozen=True)
class Dismiss:
    """Dismiss (cancel) the dialog."""

    async def apply(self, dialog: Any) -> None:
        await dialog.dismiss()

    def __str__(self) -> str:
        return "dismiss"


def accept(text: Optional[str] = None) -> Accept:
    return Accept(text)


def dismiss() -> Dismiss:
    return Dismiss()


@dataclass(frozen=True)
class ObservedDialog:
    type: str
    message: str
    default_value: str = ""


@dataclass
class DialogExpectation:
    """One-shot expectation armed before a triggering action."""

    type: Optional[str] = None
    message: Optional[str] = None
    response: Any = field(default_factory=Accept)
    observed: Optional[ObservedDialog] = None
    failure: Optional[BaseException] = None
    reported: bool = False
    discarded: bool = False

    def __post_init__(self) -> None:
        if self.type is not None and self.type not in DIALOG_TYPES:
            raise ValueError(f"Unknown dialog type {self.type!r}; expected one of {DIALOG_TYPES}")
        self._done = anyio.Event()

    @property
    def fired(self) -> bool:
        return self.observed is not None

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def mismatch(self, observed: ObservedDialog) -> Optional[AssertionMismatch]:
        if self.type is not None and observed.type != self.type:
            return AssertionMismatch("dialog type", self.type, observed.type, detail=f"message {observed.message!r}")
        if self.message is not None and observed.message != self.message:
            return AssertionMismatch("dialog message", self.message, observed.message, detail=f"type {observed.type}")
        return None

    def _finish(self, failure: Optional[BaseException] = None) -> None:
        if failure is not None and self.failure is None:
            self.failure = failure
        self._done.set()

    async def wait(self) -> None:
        await self._done.wait()

    def raise_for_failure(self) -> None:
        """Raise the recorded mismatch or response error once."""
        if self.failure is not None and not self.reported:
            self.reported = True
            raise self.failure

    def __str__(self) -> str:
        return f"DialogExpectation(type={self.type}, message={self.message!r}, response={self.response})"


class DialogInterceptor:
    """Single-slot dialog handler bound to one Playwright page."""

    def __init__(self, page: Any, response_delay: float = 0.0, settle_timeout: float = 1.0) -> None:
        """
        Args:
            page: Playwright page emitting "dialog" events
            response_delay: Seconds to pause before answering, simulating a human
            settle_timeout: Seconds an armed expectation waits for its dialog
                before it is silently discarded
        """
        self._page = page
        self.response_delay = response_delay
        self.settle_timeout = settle_timeout
        self._armed: Optional[DialogExpectation] = None
        self._expectations: List[DialogExpectation] = []
        self.history: List[ObservedDialog] = []
        self.fatal: Optional[UnhandledDialog] = None
        self._attached = False

    def attach(self) -> None:
        if not self._attached:
            self._page.on("dialog", self._on_dialog)
            self._attached = True

    def detach(self) -> None:
        if self._attached:
            self._page.remove_listener("dialog", self._on_dialog)
            self._attached = False

    @property
    def armed(self) -> Optional[DialogExpectation]:
        return self._armed

    def expect_dialog(self, type: Optional[str] = None, message: Optional[str] = None, response: Any = None) -> DialogExpectation:
        """Arm a one-shot expectation for the next dialog. Does not block."""
        expectation = DialogExpectation(type=type, message=message, response=response or Accept())
        if self._armed is not None:
            logger.debug(f"Replacing unfired {self._armed}")
            self._discard(self._armed)
        self._armed = expectation
        self._expectations.append(expectation)
        logger.debug(f"Armed {expectation}")
        return expectation

    async def settle(self, expectation: DialogExpectation, timeout: Optional[float] = None) -> Optional[ObservedDialog]:
        """Wait for ``expectation`` to be answered, then surface any mismatch.

        An expectation whose dialog never arrives within ``timeout`` is
        discarded without error.
        """
        wait_for = self.settle_timeout if timeout is None else timeout
        if not expectation.done:
            with anyio.move_on_after(wait_for):
                await expectation.wait()
        if expectation.fired and not expectation.done:
            # Dialog arrived; the answer is still in flight (response delay).
            await expectation.wait()
        if not expectation.done:
            if self._armed is expectation:
                self._armed = None
            self._discard(expectation)
            logger.debug(f"No dialog within {wait_for:g}s, discarded {expectation}")
            return None
        expectation.raise_for_failure()
        return expectation.observed

    @asynccontextmanager
    async def expecting(
        self,
        type: Optional[str] = None,
        message: Optional[str] = None,
        response: Any = None,
        timeout: Optional[float] = None,
    ) -> AsyncIterator[DialogExpectation]:
        """Arm, run the triggering block, then settle."""
        expectation = self.expect_dialog(type=type, message=message, response=response)
        yield expectation
        await self.settle(expectation, timeout=timeout)

    async def wait_answered(self) -> None:
        """Block until every dialog that has arrived has also been answered."""
        for expectation in list(self._expectations):
            if expectation.fired and not expectation.done:
                await expectation.wait()

    def verify(self) -> None:
        """Raise the first unreported failure. Called during teardown.

        Mismatches are recorded on arrival, so a dialog still being answered
        is already visible here.
        """
        if self.fatal is not None:
            raise self.fatal
        for expectation in self._expectations:
            expectation.raise_for_failure()

    def raise_if_fatal(self) -> None:
        if self.fatal is not None:
            raise self.fatal

    def _discard(self, expectation: DialogExpectation) -> None:
        expectation.discarded = True
        if expectation in self._expectations and not expectation.fired:
            self._expectations.remove(expectation)

    async def _on_dialog(self, dialog: Any) -> None:
        observed = ObservedDialog(
            type=dialog.type,
            message=dialog.message,
            default_value=getattr(dialog, "default_value", "") or "",
        )
        self.history.append(observed)
        expectation, self._armed = self._armed, None

        if expectation is None:
            error = UnhandledDialog(observed.type, observed.message)
            if self.fatal is None:
                self.fatal = error
            logger.error(f"{error}; dismissing so the page is not left blocked")
            try:
                await dialog.dismiss()
            except Exception as exc:
                logger.warning(f"Could not dismiss unhandled dialog: {exc}")
            return

        expectation.observed = observed
        # Recorded before answering so verification never misses it.
        failure: Optional[BaseException] = expectation.mismatch(observed)
        if failure is not None:
            expectation.failure = failure
            logger.warning(f"Dialog mismatch: {failure}")
        try:
            if self.response_delay > 0:
                await anyio.sleep(self.response_delay)
            await expectation.response.apply(dialog)
            logger.debug(f"Answered {observed.type} dialog {observed.message!r} with {expectation.response}")
        except Exception as exc:
            logger.error(f"Failed to answer {observed.type} dialog: {exc}")
            failure = failure or exc
        finally:
            expectation._finish(failure)
