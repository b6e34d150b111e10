"""Headless Chromium session shared by the collectors of one run."""

from __future__ import annotations

from typing import Optional

import structlog
from playwright.async_api import Browser, Playwright, async_playwright

logger = structlog.get_logger(__name__)


class BrowserSession:
    """Async context manager owning a Playwright instance and one browser."""

    def __init__(self, headless: bool = True):
        self.headless = headless
        self._playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None

    async def __aenter__(self) -> Browser:
        self._playwright = await async_playwright().start()
        try:
            self.browser = await self._playwright.chromium.launch(headless=self.headless)
        except Exception:
            await self._playwright.stop()
            self._playwright = None
            raise
        logger.info("browser_launched", headless=self.headless)
        return self.browser

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self.browser is not None:
            await self.browser.close()
            self.browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
        logger.info("browser_closed")
