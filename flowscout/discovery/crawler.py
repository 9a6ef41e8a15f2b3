"""Breadth-first discovery crawler.

Crawls the public surface of the application from its base URL, logs in
with the configured credentials, re-crawls each authenticated route, and
writes a DiscoveryReport with synthesized flows.
"""

import json
import re
import time
from collections import deque
from datetime import UTC, datetime
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import structlog
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from flowscout.config import Settings, get_settings
from flowscout.discovery.classification import matches_route_pattern
from flowscout.discovery.extractors import PageExtractor
from flowscout.discovery.flows import synthesize_flows
from flowscout.discovery.models import (
    DiscoveredPage,
    DiscoveryError,
    DiscoveryErrorType,
    DiscoveryReport,
)
from flowscout.healing.heuristics import is_visible_within
from flowscout.tools.browser import BrowserConfig, create_browser_context
from flowscout.utils.logging import log_operation

logger = structlog.get_logger()

AUTH_SUCCESS_URL = re.compile(r"/(dashboard|home|app)")
AUTH_REDIRECT_TIMEOUT_MS = 10000
SIGN_IN_TAB_TIMEOUT_MS = 3000


def _now_ms() -> int:
    return int(time.time() * 1000)


def url_path(url: str) -> str:
    return urlparse(url).path or "/"


def save_discovery_report(report: DiscoveryReport, output_dir: str) -> Path:
    """Write the report to a timestamped file and to discovery-latest.json.

    Returns:
        Path of the timestamped file
    """
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)

    content = json.dumps(report.to_dict(), indent=2)
    stamp = datetime.now(UTC).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    report_path = directory / f"discovery-{stamp}.json"
    report_path.write_text(content)
    (directory / "discovery-latest.json").write_text(content)
    return report_path


def load_discovery_report(path: str | Path) -> DiscoveryReport:
    return DiscoveryReport.from_dict(json.loads(Path(path).read_text()))


class DiscoveryCrawler:
    """
    Crawls an application and produces a DiscoveryReport.

    All crawl state (visited URLs, pages, errors) belongs to the instance
    and is reset at the start of every discover() call.

    Usage:
        crawler = DiscoveryCrawler(settings)
        report = await crawler.discover()
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session_factory=None,
    ):
        """
        Initialize the crawler.

        Args:
            settings: Application settings (defaults to get_settings())
            session_factory: Async context manager factory yielding an
                object with a ``page`` attribute
        """
        self.settings = settings or get_settings()
        self._session_factory = session_factory or create_browser_context
        self.base_url = self.settings.base_url.rstrip("/")
        self.page = None
        self._visited_urls: set[str] = set()
        self._pages: list[DiscoveredPage] = []
        self._errors: list[DiscoveryError] = []
        self.log = logger.bind(component="crawler")

    @property
    def visited_urls(self) -> set[str]:
        return set(self._visited_urls)

    # ==========================================================================
    # Entry point
    # ==========================================================================

    async def discover(self, page=None) -> DiscoveryReport:
        """
        Run a full discovery.

        Args:
            page: Existing Playwright page to crawl with; a browser session
                is started (and stopped) when omitted

        Returns:
            The saved DiscoveryReport
        """
        self._visited_urls.clear()
        self._pages = []
        self._errors = []
        started_at = datetime.now(UTC)

        with log_operation(
            "discovery",
            logger=self.log,
            base_url=self.settings.base_url,
            max_depth=self.settings.max_depth,
            max_pages=self.settings.max_pages,
        ) as op:
            if page is not None:
                await self._crawl_application(page)
            else:
                config = BrowserConfig.from_settings(self.settings, video_subdir="discovery")
                async with self._session_factory(config) as browser:
                    await self._crawl_application(browser.page)
            op["pages"] = len(self._pages)

        report = DiscoveryReport(
            app_name=self.settings.app_name,
            base_url=self.settings.base_url,
            started_at=started_at,
            completed_at=datetime.now(UTC),
            pages=list(self._pages),
            suggested_flows=synthesize_flows(self._pages, self.base_url),
            errors=list(self._errors),
        )

        report_path = save_discovery_report(report, self.settings.output_dir)
        self._log_summary(report, report_path)
        return report

    async def _crawl_application(self, page) -> None:
        self.page = page
        await self.crawl(self.settings.base_url, authenticated=False)

        if not self.settings.auth_routes:
            return
        if await self.authenticate():
            for route in self.settings.auth_routes:
                url = f"{self.base_url}{route.replace('/*', '')}"
                if url not in self._visited_urls:
                    await self.crawl(url, authenticated=True)

    # ==========================================================================
    # Traversal
    # ==========================================================================

    async def crawl(self, start_url: str, authenticated: bool) -> None:
        """Breadth-first traversal from ``start_url`` at depth 0."""
        queue: deque[tuple[str, int]] = deque([(start_url, 0)])

        while queue:
            url, depth = queue.popleft()
            if not self._should_visit(url, depth):
                continue

            self._visited_urls.add(url)
            self.log.info(
                "Discovering page",
                url=url,
                depth=depth,
                visited=len(self._visited_urls),
            )

            discovered = await self._discover_page(url, authenticated)
            if discovered is None:
                continue

            for link in discovered.links:
                if link.href and link.href.startswith(self.base_url) and link.href not in self._visited_urls:
                    queue.append((link.href, depth + 1))

    def _should_visit(self, url: str, depth: int) -> bool:
        if depth > self.settings.max_depth:
            return False
        if len(self._visited_urls) >= self.settings.max_pages:
            return False
        if url in self._visited_urls:
            return False

        path = url_path(url)
        if any(matches_route_pattern(path, pattern) for pattern in self.settings.exclude_routes):
            self.log.debug("Skipping excluded route", path=path)
            return False
        return True

    async def _discover_page(self, url: str, authenticated: bool) -> DiscoveredPage | None:
        """Load one URL and extract it; navigation failures become DiscoveryErrors."""
        path = url_path(url)
        extractor = PageExtractor(self.page, self.base_url)

        try:
            load_start = time.monotonic()
            await self.page.goto(url, wait_until="networkidle")
            load_time_ms = int((time.monotonic() - load_start) * 1000)
            await self.page.wait_for_timeout(self.settings.settle_delay_ms)

            discovered = DiscoveredPage(
                url=url,
                path=path,
                title=await self.page.title(),
                description=await extractor.meta_description(),
                is_authenticated=authenticated,
                forms=await extractor.discover_forms(),
                buttons=await extractor.discover_buttons(),
                links=await extractor.discover_links(),
                modals=await extractor.discover_modals(),
                navigation=await extractor.discover_navigation(),
                headings=await extractor.discover_headings(),
                load_time_ms=load_time_ms,
                timestamp=_now_ms(),
            )

            if self.settings.capture_page_screenshots:
                discovered.screenshot = await self._capture_screenshot(path)

        except Exception as e:
            error_type = DiscoveryErrorType.navigation
            if isinstance(e, PlaywrightTimeoutError) or "timeout" in str(e).lower():
                error_type = DiscoveryErrorType.timeout

            self.log.warning(
                "Failed to discover page",
                url=url,
                error_type=error_type.value,
                error=str(e),
            )
            self._errors.append(
                DiscoveryError(
                    type=error_type,
                    message=f"Failed to discover {url}: {e}",
                    page=url,
                    timestamp=_now_ms(),
                )
            )
            return None

        self._pages.append(discovered)
        for modal in discovered.modals:
            self.log.info("Found modal", page=path, modal=modal.text or modal.aria_label or modal.id)
        return discovered

    async def _capture_screenshot(self, path: str) -> str:
        screenshot_dir = Path(self.settings.output_dir) / "screenshots"
        screenshot_dir.mkdir(parents=True, exist_ok=True)
        screenshot_file = screenshot_dir / f"{path.replace('/', '_').strip('_') or 'index'}.png"
        await self.page.screenshot(path=str(screenshot_file), full_page=True)
        return str(screenshot_file)

    # ==========================================================================
    # Authentication
    # ==========================================================================

    async def authenticate(self) -> bool:
        """Sign in through ``{base_url}/auth``; failures are recorded, not raised."""
        self.log.info("Attempting authentication")
        page = self.page

        try:
            await page.goto(f"{self.base_url}/auth", wait_until="networkidle")

            sign_in_tab = page.locator('button:has-text("Sign In"), [role="tab"]:has-text("Sign In")').first
            if await is_visible_within(sign_in_tab, SIGN_IN_TAB_TIMEOUT_MS):
                await sign_in_tab.click()
                await page.wait_for_timeout(500)

            await page.fill('input[type="email"], input[name="email"]', self.settings.test_user_email)
            await page.fill(
                'input[type="password"], input[name="password"]',
                self.settings.test_user_password.get_secret_value(),
            )
            await page.click('button[type="submit"], button:has-text("Sign In")')
            await page.wait_for_url(AUTH_SUCCESS_URL, timeout=AUTH_REDIRECT_TIMEOUT_MS)

        except Exception as e:
            self.log.warning("Authentication failed", error=str(e))
            self._errors.append(
                DiscoveryError(
                    type=DiscoveryErrorType.auth,
                    message=f"Authentication failed: {e}",
                    timestamp=_now_ms(),
                )
            )
            return False

        self.log.info("Authentication successful")
        return True

    def _log_summary(self, report: DiscoveryReport, report_path: Path) -> None:
        totals = report.total_elements
        self.log.info(
            "Discovery summary",
            report=str(report_path),
            pages=len(report.pages),
            forms=totals["forms"],
            buttons=totals["buttons"],
            links=totals["links"],
            inputs=totals["inputs"],
            modals=totals["modals"],
            suggested_flows=len(report.suggested_flows),
            errors=len(report.errors),
            duration_s=round(report.duration_ms / 1000, 2),
        )
