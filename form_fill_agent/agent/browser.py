from __future__ import annotations

import logging

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from ..config import settings
from .errors import AcquisitionError


class BrowserSession:
    def __init__(self, headless: bool | None = None) -> None:
        self.browser: Browser | None = None
        self.context: BrowserContext | None = None
        self.page: Page | None = None
        self._playwright: Playwright | None = None
        self.headless = settings.headless if headless is None else headless

    async def __aenter__(self) -> "BrowserSession":
        self._playwright = await async_playwright().start()
        try:
            self.browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=[] if self.headless else ["--start-maximized"],
            )
        except PlaywrightError as exc:
            await self._playwright.stop()
            self._playwright = None
            raise AcquisitionError(f"Could not launch Chromium: {exc}") from exc
        self.context = await self.browser.new_context(no_viewport=not self.headless)
        self.page = await self.context.new_page()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self.context:
            await self.context.close()
            self.context = None
        if self.browser:
            await self.browser.close()
            self.browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
        self.page = None

    async def goto(self, url: str, wait_ms: int | None = None) -> Page:
        """
        Navigate to a URL and give late-rendering content a moment to appear.
        """
        if not self.page:
            raise AcquisitionError("Browser page is not initialized. Use within an async context manager.")

        try:
            await self.page.goto(url, wait_until="domcontentloaded", timeout=settings.navigation_timeout_ms)
        except PlaywrightError as exc:
            raise AcquisitionError(f"Could not load {url}: {exc}") from exc

        try:
            await self.page.wait_for_load_state("networkidle", timeout=5000)
        except PlaywrightTimeoutError:
            logging.info("browser_networkidle_timeout url=%s continuing", url)

        settle_ms = settings.settle_delay_ms if wait_ms is None else wait_ms
        if settle_ms > 0:
            await self.page.wait_for_timeout(settle_ms)
        return self.page

    def __repr__(self) -> str:
        return f"BrowserSession(headless={self.headless})"
