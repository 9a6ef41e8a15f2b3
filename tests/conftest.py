"""Shared fixtures for flowscout tests.

Playwright pages are replaced by a small in-memory DOM: a FakePage maps
selectors to FakeElements, and every locator call returns a FakeLocator
over the matching elements. Selectors with no entry match nothing.
"""

from contextlib import asynccontextmanager
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from flowscout.config import Settings

BASE_URL = "http://localhost:8080"


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "e2e: mark test as an end-to-end scenario over the fake DOM"
    )


class FakeElement:
    """One DOM node with the subset of the Playwright Locator API we use."""

    def __init__(
        self,
        attributes=None,
        text=None,
        visible=True,
        enabled=True,
        children=None,
        value="",
        tag="div",
    ):
        self.attributes = dict(attributes or {})
        self.text = text
        self.visible = visible
        self.enabled = enabled
        self.children = children or {}
        self.value = value
        self.tag = tag
        for action in (
            "click",
            "fill",
            "check",
            "uncheck",
            "hover",
            "focus",
            "blur",
            "press",
            "select_option",
            "set_input_files",
            "scroll_into_view_if_needed",
        ):
            setattr(self, action, AsyncMock())

    async def evaluate(self, script):
        if "tagName" in script:
            return self.tag
        return dict(self.attributes)

    async def text_content(self):
        return self.text

    async def is_visible(self):
        return self.visible

    async def is_enabled(self):
        return self.enabled

    async def bounding_box(self):
        if not self.visible:
            return None
        return {"x": 10, "y": 20, "width": 120, "height": 32}

    async def get_attribute(self, name):
        return self.attributes.get(name)

    async def input_value(self):
        return self.value

    async def wait_for(self, state="visible", timeout=None):
        if (state == "visible") != self.visible:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {state}")

    def locator(self, selector):
        return FakeLocator(self.children.get(selector, []))


class FakeLocator:
    """A selector result: zero or more FakeElements."""

    def __init__(self, elements):
        self.elements = list(elements)

    async def all(self):
        return list(self.elements)

    async def count(self):
        return len(self.elements)

    @property
    def first(self):
        if self.elements:
            return self.elements[0]
        return FakeElement(visible=False)

    def nth(self, index):
        return self.elements[index]


class FakePage:
    """
    A page serving a DOM per URL.

    ``routes`` maps absolute URLs to DOMs (selector -> elements); goto()
    swaps the current DOM. URLs in ``failures`` raise the given exception.
    Role, placeholder and label lookups use the keys ``role:<role>:<name>``,
    ``placeholder:<text>`` and ``label:<text>``.
    """

    def __init__(self, dom=None, url=BASE_URL, title="Test Page", routes=None, failures=None):
        self.dom = dom or {}
        self.url = url
        self._title = title
        self.routes = routes or {}
        self.failures = failures or {}
        self.visited = []
        self.wait_for_timeout = AsyncMock()
        self.wait_for_load_state = AsyncMock()
        self.wait_for_selector = AsyncMock()
        self.wait_for_url = AsyncMock()
        self.screenshot = AsyncMock()
        self.fill = AsyncMock()
        self.click = AsyncMock()

    async def goto(self, url, wait_until=None, **kwargs):
        self.visited.append(url)
        if url in self.failures:
            raise self.failures[url]
        self.url = url
        if url in self.routes:
            self.dom = self.routes[url]

    async def title(self):
        return self._title

    def locator(self, selector):
        return FakeLocator(self.dom.get(selector, []))

    def get_by_role(self, role, name=None):
        return FakeLocator(self.dom.get(f"role:{role}:{name}", []))

    def get_by_placeholder(self, text):
        return FakeLocator(self.dom.get(f"placeholder:{text}", []))

    def get_by_label(self, text):
        return FakeLocator(self.dom.get(f"label:{text}", []))


class FakeSessionFactory:
    """Session factory handing out one prepared page per browser session."""

    def __init__(self, pages):
        self.pages = list(pages)
        self.configs = []

    @asynccontextmanager
    async def __call__(self, config):
        self.configs.append(config)
        page = self.pages[min(len(self.configs), len(self.pages)) - 1]
        yield SimpleNamespace(page=page)


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def make_element():
    """Factory for FakeElements."""
    return FakeElement


@pytest.fixture
def make_page():
    """Factory for FakePages."""
    return FakePage


@pytest.fixture
def make_session_factory():
    """Factory for session factories over prepared pages."""
    return FakeSessionFactory


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the environment, writing under tmp_path."""
    return Settings(
        _env_file=None,
        base_url=BASE_URL,
        output_dir=str(tmp_path / "results"),
        manifest_path=str(tmp_path / "manifest.json"),
        auth_routes=[],
        settle_delay_ms=0,
        retry_failed_tests=1,
        action_timeout_ms=300,
        assertion_timeout_ms=300,
    )


@pytest.fixture
def base_url():
    return BASE_URL
