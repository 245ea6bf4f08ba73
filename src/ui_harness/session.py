"""Page session and element handles over a Playwright page."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from playwright.async_api import Error as PlaywrightError

from ui_harness.config import HarnessSettings
from ui_harness.dialogs import DialogInterceptor
from ui_harness.errors import ElementNotInteractable, NavigationError, TimeoutExceeded
from ui_harness.polling import DETACHED, PROBE_FAILED, poll_until

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ElementState:
    attached: bool
    visible: bool = False
    enabled: bool = False

    @property
    def actionable(self) -> bool:
        return self.attached and self.visible and self.enabled

    def reason(self) -> str:
        if not self.attached:
            return "element is not attached to the DOM"
        if not self.visible:
            return "element is not visible"
        if not self.enabled:
            return "element is disabled"
        return "element is actionable"


class PageSession:
    """One isolated browser tab bound to the base URL."""

    def __init__(self, page: Any, settings: HarnessSettings, context: Any = None) -> None:
        self._page = page
        self._context = context
        self.settings = settings
        self.dialogs = DialogInterceptor(
            page,
            response_delay=settings.dialog_delay_ms / 1000.0,
            settle_timeout=settings.dialog_settle_ms / 1000.0,
        )
        self.dialogs.attach()
        self.current_url: Optional[str] = None
        self._closed = False

    @property
    def page(self) -> Any:
        return self._page

    @property
    def is_closed(self) -> bool:
        return self._closed or self._page.is_closed()

    async def navigate(self, path: str = "/", wait_until: str = "load") -> Dict[str, Any]:
        """Load ``path`` relative to the base URL.

        Raises:
            NavigationError: The document could not be loaded or answered >= 400.
        """
        self.dialogs.raise_if_fatal()
        url = self.settings.url(path)
        try:
            response = await self._page.goto(url, wait_until=wait_until, timeout=self.settings.navigation_timeout_ms)
        except PlaywrightError as exc:
            raise NavigationError(url, str(exc)) from exc
        status = response.status if response else None
        if status is not None and status >= 400:
            raise NavigationError(url, f"HTTP {status}")
        self.current_url = self._page.url
        return {"url": self.current_url, "status": status}

    def locate(self, selector: str) -> "Element":
        return Element(self, selector)

    async def wait_for_selector(self, selector: str, state: str = "attached", timeout_ms: Optional[float] = None) -> "Element":
        """Wait until ``selector`` is attached (or visible) and return its handle."""
        if state not in ("attached", "visible"):
            raise ValueError(f"Unsupported state {state!r}")
        element = self.locate(selector)
        timeout_ms = self.settings.assert_timeout_ms if timeout_ms is None else timeout_ms

        def satisfied(value: Any) -> bool:
            if not isinstance(value, ElementState):
                return False
            return value.attached if state == "attached" else value.visible

        result = await poll_until(
            element.state,
            satisfied,
            timeout=timeout_ms / 1000.0,
            interval=self.settings.poll_interval,
            abort=self.dialogs.raise_if_fatal,
        )
        if not result.converged:
            raise TimeoutExceeded(f"'{selector}' to be {state}", timeout_ms, last_value=result.last_value)
        return element

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        """Run ``script`` in the page."""
        self.dialogs.raise_if_fatal()
        return await self._page.evaluate(script, arg)

    async def screenshot(self, path: Optional[Union[str, Path]] = None, full_page: bool = True) -> bytes:
        """Capture the page as PNG bytes, also writing to ``path`` when given."""
        options: Dict[str, Any] = {"full_page": full_page, "type": "png"}
        if path is not None:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            options["path"] = str(path)
        return await self._page.screenshot(**options)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.dialogs.detach()
        target = self._context if self._context is not None else self._page
        try:
            await target.close()
        except Exception as exc:
            logger.warning(f"Error closing session: {exc}")


class Element:
    """Lazy handle for a selector; every call re-resolves against the live DOM."""

    def __init__(self, session: PageSession, selector: str) -> None:
        self._session = session
        self.selector = selector

    def __repr__(self) -> str:
        return f"Element({self.selector!r})"

    @property
    def locator(self) -> Any:
        return self._session.page.locator(self.selector).first

    # ---- probes ------------------------------------------------------------------
    async def _probe(self, read) -> Any:
        """Read a value, mapping a missing element to DETACHED and engine errors to PROBE_FAILED."""
        try:
            if await self._session.page.locator(self.selector).count() == 0:
                return DETACHED
            return await read(self.locator)
        except PlaywrightError as exc:
            if self._session.is_closed:
                raise
            logger.debug(f"Probe of {self.selector!r} failed: {exc}")
            return PROBE_FAILED

    async def state(self) -> Any:
        async def read(loc):
            return ElementState(attached=True, visible=await loc.is_visible(), enabled=await loc.is_enabled())

        result = await self._probe(read)
        if result is DETACHED:
            return ElementState(attached=False)
        return result

    async def is_visible(self) -> Any:
        result = await self._probe(lambda loc: loc.is_visible())
        return False if result is DETACHED else result

    async def value(self) -> Any:
        return await self._probe(lambda loc: loc.input_value(timeout=self._session.settings.action_timeout_ms))

    async def text(self) -> Any:
        return await self._probe(lambda loc: loc.text_content(timeout=self._session.settings.action_timeout_ms))

    async def is_checked(self) -> Any:
        return await self._probe(lambda loc: loc.is_checked(timeout=self._session.settings.action_timeout_ms))

    async def computed_style(self, prop: str) -> Any:
        return await self._probe(
            lambda loc: loc.evaluate("(el, prop) => getComputedStyle(el).getPropertyValue(prop)", prop)
        )

    async def attribute(self, name: str) -> Any:
        return await self._probe(lambda loc: loc.get_attribute(name, timeout=self._session.settings.action_timeout_ms))

    # ---- actions -----------------------------------------------------------------
    async def _ensure_actionable(self, action: str) -> None:
        timeout_ms = self._session.settings.action_timeout_ms
        result = await poll_until(
            self.state,
            lambda s: isinstance(s, ElementState) and s.actionable,
            timeout=timeout_ms / 1000.0,
            interval=self._session.settings.poll_interval,
            abort=self._session.dialogs.raise_if_fatal,
        )
        if not result.converged:
            last = result.last_value
            reason = last.reason() if isinstance(last, ElementState) else f"state unavailable ({last!r})"
            raise ElementNotInteractable(action, self.selector, f"{reason} after {timeout_ms}ms")

    async def _act(self, action: str, perform) -> None:
        await self._ensure_actionable(action)
        try:
            await perform(self.locator)
        except PlaywrightError as exc:
            raise ElementNotInteractable(action, self.selector, str(exc).splitlines()[0]) from exc
        self._session.dialogs.raise_if_fatal()
        logger.debug(f"{action} {self.selector!r}")

    async def fill(self, text: str) -> None:
        timeout = self._session.settings.action_timeout_ms
        await self._act("fill", lambda loc: loc.fill(text, timeout=timeout))

    async def click(self) -> None:
        timeout = self._session.settings.action_timeout_ms
        await self._act("click", lambda loc: loc.click(timeout=timeout))

    async def check(self) -> None:
        timeout = self._session.settings.action_timeout_ms
        await self._act("check", lambda loc: loc.check(timeout=timeout))

    async def select_option(self, value: str) -> None:
        timeout = self._session.settings.action_timeout_ms
        await self._act("select", lambda loc: loc.select_option(value, timeout=timeout))

    async def hover(self) -> None:
        timeout = self._session.settings.action_timeout_ms
        await self._act("hover", lambda loc: loc.hover(timeout=timeout))

    async def screenshot(self, path: Optional[Union[str, Path]] = None) -> bytes:
        """Capture just this element as PNG bytes."""
        await self._ensure_actionable("screenshot")
        options: Dict[str, Any] = {"type": "png", "timeout": self._session.settings.action_timeout_ms}
        if path is not None:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            options["path"] = str(path)
        return await self.locator.screenshot(**options)
