"""
Playwright browser lifecycle.

One ``PlaywrightClient`` owns the Playwright driver and a launched browser.
Every scenario gets its own ``BrowserContext`` from it, so cookies, storage,
the DOM and the dialog stream are never shared between scenarios.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright

from ui_harness.config import HarnessSettings
from ui_harness.session import PageSession

logger = logging.getLogger(__name__)

DEFAULT_VIEWPORT = {"width": 1280, "height": 720}


class PlaywrightClient:
    """
    Launches one browser and hands out isolated page sessions.

    Example:
        async with PlaywrightClient(settings) as client:
            async with client.session() as session:
                await session.navigate("/")
    """

    def __init__(self, settings: HarnessSettings, viewport: Optional[dict] = None):
        self.settings = settings
        self.viewport = viewport or DEFAULT_VIEWPORT
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def __aenter__(self) -> "PlaywrightClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def connect(self) -> None:
        """Start Playwright and launch the configured browser."""
        self._playwright = await async_playwright().start()
        launcher = getattr(self._playwright, self.settings.browser_type)
        try:
            self._browser = await launcher.launch(headless=self.settings.headless)
        except Exception:
            await self._playwright.stop()
            self._playwright = None
            raise
        logger.info(f"Launched {self.settings.browser_type} (headless={self.settings.headless})")

    async def close(self) -> None:
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    @property
    def browser(self) -> Browser:
        if not self._browser:
            raise RuntimeError("Client not connected. Use 'async with' or call connect()")
        return self._browser

    async def new_context(self, **kwargs) -> BrowserContext:
        """New isolated context bound to the base URL."""
        options = {"viewport": self.viewport, "base_url": self.settings.base_url}
        options.update(kwargs)
        context = await self.browser.new_context(**options)
        context.set_default_timeout(self.settings.action_timeout_ms)
        context.set_default_navigation_timeout(self.settings.navigation_timeout_ms)
        return context

    @asynccontextmanager
    async def session(self, title: str = "") -> AsyncIterator[PageSession]:
        """Yield a fresh ``PageSession``; the context is closed on exit."""
        context = await self.new_context()
        try:
            page = await context.new_page()
        except Exception:
            await context.close()
            raise
        session = PageSession(page, self.settings, context=context)
        logger.debug(f"Opened session for '{title}'")
        try:
            yield session
        finally:
            await session.close()
            logger.debug(f"Closed session for '{title}'")
