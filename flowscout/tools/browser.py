"""Playwright browser session management."""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import structlog

from flowscout.config import Settings

logger = structlog.get_logger()


@dataclass
class BrowserConfig:
    """Configuration for browser instances."""
    headless: bool = True
    slow_mo: int = 0  # Milliseconds between actions
    viewport_width: int = 1920
    viewport_height: int = 1080
    timeout_ms: int = 30000
    navigation_timeout_ms: int = 30000
    ignore_https_errors: bool = True
    video_dir: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings, video_subdir: Optional[str] = None) -> "BrowserConfig":
        """Browser options from settings; videos land under output_dir/videos."""
        video_dir = None
        if settings.record_video:
            video_dir = str(Path(settings.output_dir) / "videos" / (video_subdir or ""))
        return cls(
            headless=settings.headless,
            slow_mo=settings.slow_mo,
            viewport_width=settings.viewport_width,
            viewport_height=settings.viewport_height,
            timeout_ms=settings.default_timeout_ms,
            navigation_timeout_ms=settings.navigation_timeout_ms,
            video_dir=video_dir,
        )


class BrowserManager:
    """
    One isolated browser session: a Chromium browser, a fresh context and a page.

    The crawler keeps one session for a whole crawl so the visited pages and
    the signed-in state share cookies. The runner opens a new session per
    test attempt so nothing leaks between attempts.
    """

    def __init__(self, config: Optional[BrowserConfig] = None):
        self.config = config or BrowserConfig()
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None
        self.log = logger.bind(component="browser")

    async def start(self) -> None:
        """Launch the browser and open the session's context and page."""
        from playwright.async_api import async_playwright

        self.log.info(
            "Starting browser session",
            headless=self.config.headless,
            slow_mo=self.config.slow_mo,
            video_dir=self.config.video_dir,
        )

        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.config.headless,
            slow_mo=self.config.slow_mo,
        )

        options = {
            "viewport": {
                "width": self.config.viewport_width,
                "height": self.config.viewport_height,
            },
            "ignore_https_errors": self.config.ignore_https_errors,
        }
        if self.config.video_dir:
            options["record_video_dir"] = self.config.video_dir

        self._context = await self._browser.new_context(**options)
        self._context.set_default_timeout(self.config.timeout_ms)
        self._context.set_default_navigation_timeout(self.config.navigation_timeout_ms)
        self._page = await self._context.new_page()

    @property
    def page(self):
        """The session's page; None before start()."""
        return self._page

    async def stop(self) -> None:
        """Close the context (flushing any video), then the browser."""
        if self._context:
            await self._context.close()
            self._context = None
            self._page = None
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
        self.log.info("Browser session closed")


@asynccontextmanager
async def create_browser_context(config: Optional[BrowserConfig] = None):
    """
    Open a browser session for the duration of the block.

    This is the default session factory of DiscoveryCrawler and TestRunner.

    Usage:
        async with create_browser_context(BrowserConfig.from_settings(settings)) as session:
            await session.page.goto(settings.base_url)
    """
    session = BrowserManager(config)
    try:
        await session.start()
        yield session
    finally:
        await session.stop()
