"""Self-healing element resolution.

SmartLocator turns a Locator into a live Playwright locator. The primary
selector is tried first, then each fallback, then (when healing is on)
the heuristic battery. Every success that did not come from the primary
is kept as a HealingEvent so locator drift stays visible.
"""

import time
from dataclasses import dataclass
from typing import Any, Optional

import structlog
from playwright.async_api import Error as PlaywrightError

from flowscout.core.models import Locator
from flowscout.healing.heuristics import (
    HEALING_STRATEGIES,
    HealingStrategy,
    is_visible_within,
)

logger = structlog.get_logger()

DEFAULT_ACTION_TIMEOUT_MS = 10000


class LocatorNotFoundError(Exception):
    """Raised when no selector or heuristic resolves a locator."""

    def __init__(self, locator: Locator):
        self.locator = locator
        super().__init__(
            f"Could not find element with locator: {locator.primary}\n"
            f"Fallbacks tried: {', '.join(locator.fallbacks)}\n"
            f"Description: {locator.description}"
        )


@dataclass
class HealingEvent:
    """Record of a locator resolved by something other than its primary."""
    original_locator: Locator
    healed_selector: str
    reason: str
    page_url: str
    timestamp: int

    def as_locator(self) -> Locator:
        """The locator that would resolve directly next time."""
        return Locator(
            primary=self.healed_selector,
            fallbacks=self.original_locator.selectors,
            strategy=self.original_locator.strategy,
            confidence=self.original_locator.confidence,
            description=self.original_locator.description,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "original_locator": self.original_locator.to_dict(),
            "healed_selector": self.healed_selector,
            "reason": self.reason,
            "page_url": self.page_url,
            "timestamp": self.timestamp,
        }


class SmartLocator:
    """
    Resolves locators against one page with fallbacks and self-healing.

    Usage:
        resolver = SmartLocator(page)
        await resolver.click(step.target)
        for event in resolver.healing_history:
            print(event.reason, event.healed_selector)
    """

    def __init__(
        self,
        page,
        self_healing: bool = True,
        action_timeout_ms: int = DEFAULT_ACTION_TIMEOUT_MS,
        strategies: Optional[tuple[HealingStrategy, ...]] = None,
    ):
        """
        Initialize with a Playwright page.

        Args:
            page: Playwright page object
            self_healing: Run the heuristic battery when selectors fail
            action_timeout_ms: Default resolution budget
            strategies: Heuristics to run, in order
        """
        self.page = page
        self.self_healing = self_healing
        self.action_timeout_ms = action_timeout_ms
        self.strategies = strategies if strategies is not None else HEALING_STRATEGIES
        self._healing_history: list[HealingEvent] = []
        self.log = logger.bind(component="smart_locator")

    @property
    def healing_history(self) -> list[HealingEvent]:
        """Healing events recorded so far, oldest first."""
        return list(self._healing_history)

    def clear_healing_history(self) -> None:
        self._healing_history = []

    # ==========================================================================
    # Resolution
    # ==========================================================================

    async def find(self, locator: Locator, timeout_ms: Optional[int] = None):
        """
        Resolve a locator to a visible element.

        Args:
            locator: Element reference to resolve
            timeout_ms: Resolution budget; the primary gets a third of it
                and every fallback a quarter

        Returns:
            Playwright locator for the first matching element

        Raises:
            LocatorNotFoundError: If every selector and heuristic failed
        """
        budget = timeout_ms or self.action_timeout_ms

        element = self.page.locator(locator.primary).first
        if await is_visible_within(element, budget / 3):
            return element

        for fallback in locator.fallbacks:
            element = self.page.locator(fallback).first
            if await is_visible_within(element, budget / 4):
                self._record_healing(locator, fallback, "fallback")
                return element

        if self.self_healing:
            element = await self._self_heal(locator)
            if element is not None:
                return element

        raise LocatorNotFoundError(locator)

    async def _self_heal(self, locator: Locator):
        """Run the heuristic battery, returning the first match or None."""
        self.log.debug("Attempting to heal locator", primary=locator.primary)

        for strategy in self.strategies:
            try:
                match = await strategy(self.page, locator)
            except Exception as e:
                self.log.debug(
                    "Healing heuristic failed",
                    heuristic=strategy.__name__,
                    error=str(e),
                )
                continue
            if match is not None:
                self._record_healing(locator, match.selector, match.reason)
                return match.element

        self.log.warning("Could not heal locator", primary=locator.primary)
        return None

    def _record_healing(self, original: Locator, healed: str, reason: str) -> None:
        event = HealingEvent(
            original_locator=original,
            healed_selector=healed,
            reason=reason,
            page_url=self.page.url,
            timestamp=int(time.time() * 1000),
        )
        self._healing_history.append(event)
        self.log.info(
            "Locator healed",
            original=original.primary,
            healed=healed,
            reason=reason,
        )

    # ==========================================================================
    # Actions
    # ==========================================================================

    async def click(self, locator: Locator, timeout_ms: Optional[int] = None, force: bool = False) -> None:
        element = await self.find(locator, timeout_ms)
        await element.click(force=force)

    async def fill(self, locator: Locator, value: str, timeout_ms: Optional[int] = None) -> None:
        element = await self.find(locator, timeout_ms)
        await element.fill(value)

    async def select(self, locator: Locator, value: str, timeout_ms: Optional[int] = None) -> None:
        element = await self.find(locator, timeout_ms)
        await element.select_option(value)

    async def check(self, locator: Locator, timeout_ms: Optional[int] = None) -> None:
        element = await self.find(locator, timeout_ms)
        await element.check()

    async def uncheck(self, locator: Locator, timeout_ms: Optional[int] = None) -> None:
        element = await self.find(locator, timeout_ms)
        await element.uncheck()

    async def hover(self, locator: Locator, timeout_ms: Optional[int] = None) -> None:
        element = await self.find(locator, timeout_ms)
        await element.hover()

    async def text_content(self, locator: Locator, timeout_ms: Optional[int] = None) -> Optional[str]:
        element = await self.find(locator, timeout_ms)
        return await element.text_content()

    async def get_attribute(self, locator: Locator, name: str, timeout_ms: Optional[int] = None) -> Optional[str]:
        element = await self.find(locator, timeout_ms)
        return await element.get_attribute(name)

    async def is_visible(self, locator: Locator, timeout_ms: Optional[int] = None) -> bool:
        """Like find(), but reports an unresolvable locator as not visible."""
        try:
            element = await self.find(locator, timeout_ms)
            return await element.is_visible()
        except (LocatorNotFoundError, PlaywrightError):
            return False
