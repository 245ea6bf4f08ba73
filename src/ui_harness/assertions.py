"""Polling assertions against the live DOM.

    await expect(session.locate("#keyboard-input")).to_have_value("Hello Playwright")
    await expect(session.locate("#hover-me")).to_have_css("background-color", "rgb(238, 238, 238)")

Each matcher polls until its condition holds or the timeout passes, then
raises ``TimeoutExceeded`` with the last value it saw.
"""
from __future__ import annotations

from typing import Any, Callable, Optional

from ui_harness.errors import TimeoutExceeded
from ui_harness.polling import PollResult, poll_until
from ui_harness.session import Element, ElementState


def normalize_whitespace(value: Any) -> Any:
    if isinstance(value, str):
        return " ".join(value.split())
    return value


class ElementExpectation:
    def __init__(self, element: Element, timeout_ms: Optional[float] = None) -> None:
        self.element = element
        self._session = element._session
        self.timeout_ms = self._session.settings.assert_timeout_ms if timeout_ms is None else timeout_ms

    async def _converge(
        self,
        what: str,
        probe: Callable[[], Any],
        predicate: Callable[[Any], bool],
        expected: Any = None,
        timeout_ms: Optional[float] = None,
    ) -> PollResult:
        timeout_ms = self.timeout_ms if timeout_ms is None else timeout_ms
        result = await poll_until(
            probe,
            predicate,
            timeout=timeout_ms / 1000.0,
            interval=self._session.settings.poll_interval,
            abort=self._session.dialogs.raise_if_fatal,
        )
        if not result.converged:
            raise TimeoutExceeded(f"'{self.element.selector}' {what}", timeout_ms, last_value=result.last_value, expected=expected)
        return result

    async def to_have_value(self, expected: str, timeout_ms: Optional[float] = None) -> str:
        result = await self._converge("to have value", self.element.value, lambda v: v == expected, expected, timeout_ms)
        return result.last_value

    async def to_have_text(self, expected: str, timeout_ms: Optional[float] = None) -> str:
        """Text content equality, whitespace-normalized on both sides."""
        wanted = normalize_whitespace(expected)
        result = await self._converge(
            "to have text", self.element.text, lambda v: normalize_whitespace(v) == wanted, expected, timeout_ms
        )
        return result.last_value

    async def to_have_css(self, prop: str, expected: str, timeout_ms: Optional[float] = None) -> str:
        result = await self._converge(
            f"to have computed {prop}",
            lambda: self.element.computed_style(prop),
            lambda v: isinstance(v, str) and v.strip() == expected,
            expected,
            timeout_ms,
        )
        return result.last_value

    async def to_have_attribute(self, name: str, expected: str, timeout_ms: Optional[float] = None) -> str:
        result = await self._converge(
            f"to have attribute {name}", lambda: self.element.attribute(name), lambda v: v == expected, expected, timeout_ms
        )
        return result.last_value

    async def to_be_visible(self, timeout_ms: Optional[float] = None) -> None:
        await self._converge("to be visible", self.element.is_visible, lambda v: v is True, True, timeout_ms)

    async def to_be_hidden(self, timeout_ms: Optional[float] = None) -> None:
        """Hidden or not attached at all."""
        await self._converge("to be hidden", self.element.is_visible, lambda v: v is False, False, timeout_ms)

    async def to_be_checked(self, timeout_ms: Optional[float] = None) -> None:
        await self._converge("to be checked", self.element.is_checked, lambda v: v is True, True, timeout_ms)

    async def to_be_attached(self, timeout_ms: Optional[float] = None) -> None:
        await self._converge(
            "to be attached", self.element.state, lambda s: isinstance(s, ElementState) and s.attached, True, timeout_ms
        )


def expect(element: Element, timeout_ms: Optional[float] = None) -> ElementExpectation:
    return ElementExpectation(element, timeout_ms=timeout_ms)
