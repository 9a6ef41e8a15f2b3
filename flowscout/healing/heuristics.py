"""Healing heuristics tried after a locator's own selectors fail.

Each heuristic takes the page and the unresolved locator and returns a
HealingMatch or None. They are independent of each other; the resolver
runs them in HEALING_STRATEGIES order and stops at the first match.
"""

import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from playwright.async_api import Error as PlaywrightError

from flowscout.core.models import Locator, StrategyKind

HEURISTIC_VISIBILITY_TIMEOUT_MS = 1000
SIBLING_VISIBILITY_TIMEOUT_MS = 500
SIBLING_SCAN_LIMIT = 10

HEALING_ROLES = ("button", "link", "textbox", "checkbox", "combobox", "dialog")
DATA_ATTRIBUTES = ("data-testid", "data-test", "data-cy", "data-id")

TEXT_PATTERN = re.compile(r'text[=:]"([^"]+)"|:has-text\("([^"]+)"\)')
PLACEHOLDER_PATTERN = re.compile(r'placeholder[=:]"([^"]+)"')
LABEL_PATTERN = re.compile(r'label[=:]"([^"]+)"|aria-label[=:]"([^"]+)"')
CLASS_PATTERN = re.compile(r"\.([a-zA-Z0-9_-]+)")
TAG_PATTERN = re.compile(r"^([a-zA-Z]+)")


@dataclass
class HealingMatch:
    """A live element found by a heuristic, with the selector that found it."""
    element: Any
    selector: str
    reason: str


HealingStrategy = Callable[[Any, Locator], Awaitable[HealingMatch | None]]


async def is_visible_within(element, timeout_ms: float) -> bool:
    """Wait up to ``timeout_ms`` for the element to become visible."""
    try:
        await element.wait_for(state="visible", timeout=timeout_ms)
    except PlaywrightError:
        return False
    return True


async def _first_visible(candidates, timeout_ms: float = HEURISTIC_VISIBILITY_TIMEOUT_MS):
    if await candidates.count() > 0 and await is_visible_within(candidates.first, timeout_ms):
        return candidates.first
    return None


# =============================================================================
# Selector parsing
# =============================================================================

def extract_text(selector: str) -> str | None:
    match = TEXT_PATTERN.search(selector)
    return (match.group(1) or match.group(2)) if match else None


def extract_placeholder(locator: Locator) -> str | None:
    """Placeholder value from the primary, else from the first fallback carrying one."""
    for selector in locator.selectors:
        match = PLACEHOLDER_PATTERN.search(selector)
        if match:
            return match.group(1)
    return None


def extract_label(locator: Locator) -> str | None:
    """Label or aria-label value from the primary, else the description."""
    match = LABEL_PATTERN.search(locator.primary)
    if match:
        return match.group(1) or match.group(2)
    return locator.description or None


def extract_class_name(selector: str) -> str | None:
    match = CLASS_PATTERN.search(selector)
    return match.group(1) if match else None


def extract_data_attribute(selector: str, attribute: str) -> str | None:
    match = re.search(rf'{re.escape(attribute)}[=:]"([^"]+)"', selector)
    return match.group(1) if match else None


def extract_tag_name(selector: str) -> str | None:
    match = TAG_PATTERN.match(selector)
    return match.group(1) if match else None


# =============================================================================
# Heuristics
# =============================================================================

async def heal_by_text(page, locator: Locator) -> HealingMatch | None:
    """Retry text locators with looser text-matching dialects."""
    if locator.strategy != StrategyKind.text:
        return None
    text = extract_text(locator.primary)
    if not text:
        return None

    for variant in (f"text={text}", f'*:has-text("{text}")', f'//*[contains(text(), "{text}")]'):
        element = await _first_visible(page.locator(variant))
        if element is not None:
            return HealingMatch(element, variant, "text")
    return None


async def heal_by_role(page, locator: Locator) -> HealingMatch | None:
    """Search common ARIA roles for an accessible name equal to the description."""
    if not locator.description:
        return None

    for role in HEALING_ROLES:
        element = await _first_visible(page.get_by_role(role, name=locator.description))
        if element is not None:
            return HealingMatch(element, f'role={role}[name="{locator.description}"]', "role")
    return None


async def heal_by_placeholder(page, locator: Locator) -> HealingMatch | None:
    placeholder = extract_placeholder(locator)
    if not placeholder:
        return None

    element = await _first_visible(page.get_by_placeholder(placeholder))
    if element is not None:
        return HealingMatch(element, f'[placeholder="{placeholder}"]', "placeholder")
    return None


async def heal_by_label(page, locator: Locator) -> HealingMatch | None:
    label = extract_label(locator)
    if not label:
        return None

    element = await _first_visible(page.get_by_label(label))
    if element is not None:
        return HealingMatch(element, f'label="{label}"', "label")
    return None


async def heal_by_partial_class(page, locator: Locator) -> HealingMatch | None:
    """Match on the leading segment of the primary's first class token."""
    class_name = extract_class_name(locator.primary)
    if not class_name:
        return None

    segment = re.split(r"[-_]", class_name)[0]
    if len(segment) <= 3:
        return None

    selector = f'[class*="{segment}"]'
    element = await _first_visible(page.locator(selector))
    if element is not None:
        return HealingMatch(element, selector, "class")
    return None


async def heal_by_data_attribute(page, locator: Locator) -> HealingMatch | None:
    """Match test-id style attributes on their value minus the last hyphen segment."""
    for attribute in DATA_ATTRIBUTES:
        value = extract_data_attribute(locator.primary, attribute)
        if not value:
            continue
        parts = value.split("-")
        if len(parts) < 2:
            continue

        selector = f'[{attribute}*="{"-".join(parts[:-1])}"]'
        element = await _first_visible(page.locator(selector))
        if element is not None:
            return HealingMatch(element, selector, "data-attribute")
    return None


async def heal_by_sibling_scan(page, locator: Locator) -> HealingMatch | None:
    """Scan same-tag elements for one whose text contains the description."""
    tag_name = extract_tag_name(locator.primary)
    if not tag_name or not locator.description:
        return None

    wanted = locator.description.lower()
    elements = page.locator(tag_name)
    count = await elements.count()
    for index in range(min(count, SIBLING_SCAN_LIMIT)):
        element = elements.nth(index)
        if not await is_visible_within(element, SIBLING_VISIBILITY_TIMEOUT_MS):
            continue
        text = await element.text_content() or ""
        if wanted in text.lower():
            return HealingMatch(element, f"{tag_name}:nth-of-type({index + 1})", "sibling")
    return None


HEALING_STRATEGIES: tuple[HealingStrategy, ...] = (
    heal_by_text,
    heal_by_role,
    heal_by_placeholder,
    heal_by_label,
    heal_by_partial_class,
    heal_by_data_attribute,
    heal_by_sibling_scan,
)
