"""
Browser plumbing shared by discovery and the crawl workers.

One ``BrowserSession`` per run owns the Playwright driver and a single
Chromium process, launched lazily on first use. Every worker gets its own
``PlaywrightPageFetcher`` backed by a private ``BrowserContext`` so no two
workers ever share in-page state.
"""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
from typing import Protocol

from loguru import logger
from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from community_crawler.config import BROWSER_ARGS, CrawlSettings

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)


class PageLoadError(Exception):
    """Navigation to a page failed; ``kind`` says how."""

    def __init__(self, url: str, kind: str, message: str = ""):
        super().__init__(f"{kind} loading {url}: {message}" if message else f"{kind} loading {url}")
        self.url = url
        self.kind = kind


@dataclass(slots=True)
class RenderedPage:
    url: str
    html: str
    text: str = ""


class PageFetcher(Protocol):
    async def fetch(self, url: str, timeout_ms: int) -> RenderedPage: ...

    async def close(self) -> None: ...


def classify_playwright_error(exc: BaseException) -> str:
    """Map a Playwright exception onto a short error kind."""
    if isinstance(exc, PlaywrightTimeoutError):
        return "timeout"
    message = str(exc)
    if "403" in message or "Access Denied" in message:
        return "blocked"
    if "net::" in message:
        return "network"
    return "navigation"


class PlaywrightPageFetcher:
    """Sequential page loader bound to one browser context."""

    def __init__(self, context: BrowserContext, page: Page, settle_ms: int = 1000, wait_until: str = "networkidle"):
        self.context = context
        self.page = page
        self.settle_ms = settle_ms
        self.wait_until = wait_until

    async def fetch(self, url: str, timeout_ms: int) -> RenderedPage:
        try:
            await self.page.goto(url, wait_until=self.wait_until, timeout=timeout_ms)
        except PlaywrightError as exc:
            raise PageLoadError(url, classify_playwright_error(exc), str(exc).splitlines()[0]) from exc

        if self.settle_ms:
            await asyncio.sleep(self.settle_ms / 1000)

        try:
            html = await self.page.content()
        except PlaywrightError as exc:
            raise PageLoadError(url, classify_playwright_error(exc), str(exc).splitlines()[0]) from exc

        try:
            text = await self.page.inner_text("body", timeout=5000)
        except PlaywrightError as exc:
            # Extraction falls back to text parsed from the HTML
            logger.debug(f"Could not read body text for {url}: {exc}")
            text = ""
        return RenderedPage(url=self.page.url or url, html=html, text=text)

    async def close(self) -> None:
        with contextlib.suppress(PlaywrightError):
            await self.context.close()


class BrowserSession:
    """
    Owns the Playwright driver and one Chromium instance for a whole run.

    Usage:
        async with BrowserSession(settings) as session:
            fetcher = await session.open_fetcher()
            page = await fetcher.fetch(url, timeout_ms=20000)
    """

    def __init__(self, settings: CrawlSettings):
        self.settings = settings
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._launch_lock = asyncio.Lock()

    async def __aenter__(self) -> "BrowserSession":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def _ensure_browser(self) -> Browser:
        async with self._launch_lock:
            if self._browser is None:
                self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(
                    headless=self.settings.headless,
                    executable_path=self.settings.browser_executable,
                    args=BROWSER_ARGS,
                )
                logger.info(f"Chromium launched (headless={self.settings.headless})")
            return self._browser

    async def open_fetcher(self, settle_ms: int | None = None) -> PlaywrightPageFetcher:
        """Create a fresh context + page for one exclusive user."""
        browser = await self._ensure_browser()
        context = await browser.new_context(
            user_agent=USER_AGENT,
            viewport={"width": 1280, "height": 720},
            locale="en-US",
        )
        page = await context.new_page()
        return PlaywrightPageFetcher(
            context,
            page,
            settle_ms=self.settings.settle_ms if settle_ms is None else settle_ms,
            wait_until=self.settings.wait_until,
        )

    async def close(self) -> None:
        if self._browser is not None:
            with contextlib.suppress(PlaywrightError):
                await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            with contextlib.suppress(Exception):
                await self._playwright.stop()
            self._playwright = None
