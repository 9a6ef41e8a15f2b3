"""Per-page extraction of forms, controls, links and structure.

Every extraction is independently fault-tolerant: a failure reading one
element drops only that element, never the page.
"""

import random
import string
import time
from urllib.parse import urljoin

import structlog

from flowscout.discovery.classification import (
    classify_input_field,
    extract_validation_rules,
    map_input_type,
    synthesize_locator,
)
from flowscout.discovery.models import (
    BoundingBox,
    DiscoveredElement,
    DiscoveredForm,
    ElementType,
    FormStep,
    Heading,
    NavigationItem,
)

logger = structlog.get_logger()

FIELD_SELECTOR = 'input, select, textarea, [contenteditable="true"]'
SKIPPED_INPUT_TYPES = ("hidden", "submit")

SUBMIT_BUTTON_SELECTORS = (
    'button[type="submit"]',
    'input[type="submit"]',
    'button:has-text("Submit")',
    'button:has-text("Save")',
    'button:has-text("Create")',
    'button:has-text("Sign In")',
    'button:has-text("Sign Up")',
    'button:has-text("Continue")',
    'button:has-text("Next")',
)
CANCEL_BUTTON_SELECTORS = (
    'button:has-text("Cancel")',
    'button:has-text("Back")',
    'button:has-text("Close")',
    'a:has-text("Cancel")',
)
MULTI_STEP_MARKERS = (
    "[data-step]",
    ".step",
    ".wizard",
    ".multi-step",
    'button:has-text("Next")',
    '[role="progressbar"]',
)
STEP_CONTAINER_SELECTORS = ("[data-step]", ".step")
NEXT_BUTTON_SELECTORS = (
    'button:has-text("Next")',
    'button:has-text("Continue")',
)
BACK_BUTTON_SELECTORS = (
    'button:has-text("Back")',
    'button:has-text("Previous")',
)
BUTTON_SELECTORS = (
    "button",
    '[role="button"]',
    'input[type="button"]',
    ".btn",
    '[class*="button"]',
)
MODAL_SELECTORS = (
    '[role="dialog"]',
    '[role="alertdialog"]',
    ".modal",
    '[class*="modal"]',
    '[class*="dialog"]',
    '[data-state="open"]',
)

READ_ATTRIBUTES_JS = """
el => Object.fromEntries(Array.from(el.attributes || []).map(a => [a.name, a.value]))
"""
TAG_NAME_JS = "el => el.tagName.toLowerCase()"


def synthetic_id(element_type: ElementType) -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=5))
    return f"{element_type.value}-{int(time.time() * 1000)}-{suffix}"


class PageExtractor:
    """
    Extracts structured element snapshots from the page currently loaded.

    Usage:
        extractor = PageExtractor(page, base_url="https://app.example.com")
        forms = await extractor.discover_forms()
        links = await extractor.discover_links()
    """

    def __init__(self, page, base_url: str):
        self.page = page
        self.base_url = base_url
        self.log = logger.bind(component="page_extractor")

    def _absolute(self, href: str) -> str:
        return href if href.startswith("http") else urljoin(self.base_url, href)

    # ==========================================================================
    # Element snapshots
    # ==========================================================================

    async def read_attributes(self, element) -> dict[str, str]:
        try:
            return await element.evaluate(READ_ATTRIBUTES_JS) or {}
        except Exception:
            return {}

    async def extract_element(self, element, element_type: ElementType) -> DiscoveredElement | None:
        """Snapshot one element, or None if it could not be read."""
        try:
            attributes = await self.read_attributes(element)
            try:
                text = (await element.text_content() or "").strip() or None
            except Exception:
                text = None
            try:
                is_visible = await element.is_visible()
            except Exception:
                is_visible = False
            try:
                is_enabled = await element.is_enabled()
            except Exception:
                is_enabled = True
            box = await element.bounding_box()

            return DiscoveredElement(
                id=attributes.get("id") or synthetic_id(element_type),
                type=element_type,
                locator=synthesize_locator(attributes, text, element_type),
                text=text,
                aria_label=attributes.get("aria-label"),
                placeholder=attributes.get("placeholder"),
                name=attributes.get("name"),
                value=attributes.get("value"),
                is_visible=is_visible,
                is_enabled=is_enabled,
                is_required="required" in attributes,
                bounding_box=BoundingBox.from_dict(box) if box else None,
                attributes=attributes,
                timestamp=int(time.time() * 1000),
            )
        except Exception as e:
            self.log.debug("Skipping unreadable element", element_type=element_type.value, error=str(e))
            return None

    # ==========================================================================
    # Forms
    # ==========================================================================

    async def discover_forms(self) -> list[DiscoveredForm]:
        forms: list[DiscoveredForm] = []
        for index, form in enumerate(await self.page.locator("form").all()):
            try:
                attributes = await self.read_attributes(form)
                fields = await self.discover_form_fields(form)
                is_multi_step = await self._is_multi_step(form)
                forms.append(
                    DiscoveredForm(
                        id=attributes.get("id") or f"form-{index}",
                        name=attributes.get("name"),
                        action=attributes.get("action"),
                        method=attributes.get("method") or "get",
                        locator=synthesize_locator(attributes, None, ElementType.form),
                        fields=fields,
                        submit_button=await self._find_first_visible(form, SUBMIT_BUTTON_SELECTORS),
                        cancel_button=await self._find_first_visible(form, CANCEL_BUTTON_SELECTORS),
                        is_multi_step=is_multi_step,
                        steps=await self.discover_form_steps(form, fields) if is_multi_step else [],
                        timestamp=int(time.time() * 1000),
                    )
                )
            except Exception as e:
                self.log.warning("Error discovering form", index=index, error=str(e))
        return forms

    async def discover_form_fields(self, form) -> list[DiscoveredElement]:
        """Fields of one form in page order."""
        fields: list[DiscoveredElement] = []
        for element in await form.locator(FIELD_SELECTOR).all():
            try:
                attributes = await self.read_attributes(element)
                html_type = attributes.get("type")
                if html_type in SKIPPED_INPUT_TYPES:
                    continue

                tag = await element.evaluate(TAG_NAME_JS)
                if tag in ("select", "textarea"):
                    element_type = map_input_type(tag)
                elif tag == "input":
                    element_type = map_input_type(html_type or "text")
                else:
                    element_type = ElementType.input

                field = await self.extract_element(element, element_type)
                if field is None:
                    continue
                label = await self._associated_label(element, field.attributes)
                field.input_type = classify_input_field(field.attributes, label)
                field.validation_rules = extract_validation_rules(field.attributes)
                fields.append(field)
            except Exception as e:
                self.log.debug("Skipping unreadable field", error=str(e))
        return fields

    async def discover_form_steps(self, form, fields: list[DiscoveredElement]) -> list[FormStep]:
        """
        Steps of a multi-step form, one per step container in page order.

        A wizard without step containers is reported as a single step holding
        every field.
        """
        steps: list[FormStep] = []
        containers = []
        for selector in STEP_CONTAINER_SELECTORS:
            containers = await form.locator(selector).all()
            if containers:
                break

        for number, container in enumerate(containers, start=1):
            try:
                attributes = await self.read_attributes(container)
                steps.append(
                    FormStep(
                        step_number=number,
                        name=attributes.get("data-step") or attributes.get("aria-label"),
                        fields=await self.discover_form_fields(container),
                        next_button=await self._find_first_visible(container, NEXT_BUTTON_SELECTORS),
                        back_button=await self._find_first_visible(container, BACK_BUTTON_SELECTORS),
                    )
                )
            except Exception as e:
                self.log.debug("Skipping unreadable form step", step=number, error=str(e))

        if not steps:
            steps.append(
                FormStep(
                    step_number=1,
                    fields=list(fields),
                    next_button=await self._find_first_visible(form, NEXT_BUTTON_SELECTORS),
                    back_button=await self._find_first_visible(form, BACK_BUTTON_SELECTORS),
                )
            )
        return steps

    async def _associated_label(self, element, attributes: dict[str, str]) -> str:
        """Text of ``label[for=id]``, else of an ancestor label."""
        try:
            element_id = attributes.get("id")
            if element_id:
                label = self.page.locator(f'label[for="{element_id}"]')
                if await label.count() > 0:
                    text = await label.first.text_content()
                    if text:
                        return text.strip()

            parent = element.locator("xpath=ancestor::label")
            if await parent.count() > 0:
                text = await parent.first.text_content()
                if text:
                    return text.strip()
        except Exception:
            pass
        return ""

    async def _find_first_visible(self, form, selectors) -> DiscoveredElement | None:
        for selector in selectors:
            try:
                button = form.locator(selector).first
                if await button.is_visible():
                    return await self.extract_element(button, ElementType.button)
            except Exception:
                continue
        return None

    async def _is_multi_step(self, form) -> bool:
        for marker in MULTI_STEP_MARKERS:
            try:
                if await form.locator(marker).count() > 0:
                    return True
            except Exception:
                continue
        return False

    # ==========================================================================
    # Page-level controls
    # ==========================================================================

    async def _collect_unique(self, selectors, element_type: ElementType, visible_only: bool) -> list[DiscoveredElement]:
        """Elements matched by overlapping selector families, de-duplicated by id."""
        collected: list[DiscoveredElement] = []
        seen: set[str] = set()
        for selector in selectors:
            for element in await self.page.locator(selector).all():
                try:
                    if visible_only and not await element.is_visible():
                        continue
                    data = await self.extract_element(element, element_type)
                    if data and data.id not in seen:
                        seen.add(data.id)
                        collected.append(data)
                except Exception:
                    continue
        return collected

    async def discover_buttons(self) -> list[DiscoveredElement]:
        return await self._collect_unique(BUTTON_SELECTORS, ElementType.button, visible_only=True)

    async def discover_modals(self) -> list[DiscoveredElement]:
        return await self._collect_unique(MODAL_SELECTORS, ElementType.modal, visible_only=False)

    async def discover_links(self) -> list[DiscoveredElement]:
        """Visible anchors with their href resolved against the base URL."""
        links: list[DiscoveredElement] = []
        for element in await self.page.locator("a[href]").all():
            try:
                if not await element.is_visible():
                    continue
                link = await self.extract_element(element, ElementType.link)
                if link is None:
                    continue
                href = link.attributes.get("href")
                if href:
                    link.href = self._absolute(href)
                links.append(link)
            except Exception:
                continue
        return links

    async def discover_navigation(self) -> list[NavigationItem]:
        navigation: list[NavigationItem] = []
        for nav in await self.page.locator('nav, [role="navigation"]').all():
            for link in await nav.locator("a[href]").all():
                try:
                    text = (await link.text_content() or "").strip()
                    attributes = await self.read_attributes(link)
                    href = attributes.get("href", "")
                    if text and href:
                        navigation.append(
                            NavigationItem(
                                text=text,
                                href=self._absolute(href),
                                locator=synthesize_locator(attributes, text, ElementType.link),
                            )
                        )
                except Exception:
                    continue
        return navigation

    async def discover_headings(self) -> list[Heading]:
        headings: list[Heading] = []
        for level in range(1, 7):
            for element in await self.page.locator(f"h{level}").all():
                try:
                    text = await element.text_content()
                    if text and text.strip():
                        headings.append(Heading(level=level, text=text.strip()))
                except Exception:
                    continue
        return headings

    async def meta_description(self) -> str | None:
        try:
            meta = self.page.locator('meta[name="description"]')
            if await meta.count() == 0:
                return None
            return await meta.first.get_attribute("content") or None
        except Exception:
            return None
