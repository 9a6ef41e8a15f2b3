"""Test data for form fields.

FormDataGenerator produces realistic (or deliberately malformed) values
keyed by field kind, and resolves the ``{{kind}}`` templates carried by
fill steps. FormFiller drives a discovered form through the resolver.
"""

import random
import re
import time
from datetime import date, timedelta
from typing import Optional

import structlog
from playwright.async_api import Error as PlaywrightError

from flowscout.config import Settings, get_settings
from flowscout.core.models import Locator, StrategyKind
from flowscout.discovery.models import DiscoveredElement, DiscoveredForm, ElementType
from flowscout.healing.heuristics import is_visible_within
from flowscout.healing.locator import LocatorNotFoundError, SmartLocator

logger = structlog.get_logger()

FIRST_NAMES = ["John", "Jane", "Michael", "Sarah", "David", "Emily", "James", "Emma"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis"]
DOMAINS = ["example.com", "test.org", "demo.net"]
CITIES = ["New York", "Los Angeles", "Chicago", "Houston", "Phoenix", "Philadelphia"]
STATES = ["CA", "NY", "TX", "FL", "IL", "PA", "OH", "GA"]
STREETS = ["Main St", "Oak Ave", "Maple Dr", "Cedar Ln", "Pine Rd", "Elm Way"]
COMPANIES = ["Acme Inc", "Tech Corp", "Global Industries", "Innovation Labs"]
LOREM_WORDS = [
    "lorem", "ipsum", "dolor", "sit", "amet", "consectetur", "adipiscing", "elit",
    "sed", "do", "eiusmod", "tempor", "incididunt", "ut", "labore", "et", "dolore",
    "magna", "aliqua", "enim", "ad", "minim", "veniam", "quis", "nostrud",
]

# Ambiguous glyphs (I, O, l, 0, 1) are left out.
PASSWORD_UPPER = "ABCDEFGHJKLMNPQRSTUVWXYZ"
PASSWORD_LOWER = "abcdefghjkmnpqrstuvwxyz"
PASSWORD_DIGITS = "23456789"
PASSWORD_SPECIALS = "!@#$%&*"

INVALID_VALUES = {
    "email": "invalid-email-format",
    "password": "x",
    "phone": "not-a-phone",
    "url": "not-a-url",
    "number": "NaN",
    "date": "not-a-date",
    "zip": "ABCDE",
    "credit-card": "1234",
    "cvv": "ABC",
    "expiry": "99/99",
}

TEMPLATE_PATTERN = re.compile(r"^\{\{\s*([\w-]+)\s*\}\}$")

GENERIC_SUBMIT_SELECTORS = (
    'button[type="submit"]',
    'input[type="submit"]',
    'button:has-text("Submit")',
    'button:has-text("Save")',
    'button:has-text("Create")',
    'button:has-text("Continue")',
)
VALIDATION_ERROR_SELECTORS = (
    '[class*="error"]',
    '[role="alert"]',
    ".text-red",
    ".text-destructive",
    '[aria-invalid="true"] ~ *',
    ".invalid-feedback",
    ".form-error",
)
SELECT_PROBE_TIMEOUT_MS = 1000
SUBMIT_PROBE_TIMEOUT_MS = 1000


def template_kind(value: Optional[str]) -> Optional[str]:
    """Field kind named by a ``{{kind}}`` template, or None for literals."""
    if not value:
        return None
    match = TEMPLATE_PATTERN.match(value)
    return match.group(1) if match else None


class FormDataGenerator:
    """
    Generates values for form fields by semantic kind.

    Configured defaults (``form_data_defaults``) win over generated values,
    payment fields come from the configured test card.

    Usage:
        generator = FormDataGenerator(settings)
        generator.generate_value("email")      # "emma417@test.org"
        generator.resolve_template("{{zip}}")  # "60614"
    """

    def __init__(self, settings: Optional[Settings] = None, rng: Optional[random.Random] = None):
        self.settings = settings or get_settings()
        self.rng = rng or random.Random()

    def _pick(self, items: list[str]) -> str:
        return self.rng.choice(items)

    def generate_value(self, field_kind: str) -> str:
        """Valid value for a field kind (``InputFieldType`` values or plain strings)."""
        kind = getattr(field_kind, "value", field_kind)
        default = self.settings.form_data_defaults.get(kind)
        if default:
            return default

        match kind:
            case "email":
                return f"{self._pick(FIRST_NAMES).lower()}{self.rng.randint(100, 999)}@{self._pick(DOMAINS)}"
            case "password":
                return self.generate_password()
            case "first-name":
                return self._pick(FIRST_NAMES)
            case "last-name":
                return self._pick(LAST_NAMES)
            case "full-name" | "name":
                return f"{self._pick(FIRST_NAMES)} {self._pick(LAST_NAMES)}"
            case "phone":
                return (
                    f"({self.rng.randint(200, 999)}) "
                    f"{self.rng.randint(200, 999)}-{self.rng.randint(1000, 9999)}"
                )
            case "address":
                return f"{self.rng.randint(100, 9999)} {self._pick(STREETS)}"
            case "city":
                return self._pick(CITIES)
            case "state":
                return self._pick(STATES)
            case "zip":
                return str(self.rng.randint(10000, 99999))
            case "country":
                return "United States"
            case "company":
                return self._pick(COMPANIES)
            case "url":
                return f"https://www.{self._pick(DOMAINS)}"
            case "number":
                return str(self.rng.randint(1, 100))
            case "date":
                return self.generate_date()
            case "time":
                return self.generate_time()
            case "datetime":
                return f"{self.generate_date()}T{self.generate_time()}"
            case "credit-card":
                return self.settings.card_number
            case "cvv":
                return self.settings.card_cvc
            case "expiry":
                return self.settings.card_expiry
            case "search":
                return "test search query"
            case "message" | "description":
                return self.generate_lorem(2)
            case _:
                return f"Test Value {int(time.time() * 1000)}"

    def generate_invalid_value(self, field_kind: str) -> str:
        """Malformed value for validation testing; valid value for kinds without a rule."""
        kind = getattr(field_kind, "value", field_kind)
        return INVALID_VALUES.get(kind) or self.generate_value(kind)

    def value_for_field(self, element: DiscoveredElement, variant: str = "valid") -> str:
        """Value for a discovered field: ``valid``, ``invalid`` or ``empty``."""
        if variant == "empty":
            return ""
        kind = element.input_type.value if element.input_type else "text"
        if variant == "invalid":
            return self.generate_invalid_value(kind)
        return self.generate_value(kind)

    def resolve_template(self, value: Optional[str], overrides: Optional[dict[str, str]] = None) -> str:
        """Replace a ``{{kind}}`` template with a value; literals pass through."""
        if value is None:
            return ""
        kind = template_kind(value)
        if kind is None:
            return value
        if overrides and kind in overrides:
            return overrides[kind]
        return self.generate_value(kind)

    def generate_password(self) -> str:
        """12 characters with at least one upper, lower, digit and special."""
        alphabet = PASSWORD_UPPER + PASSWORD_LOWER + PASSWORD_DIGITS
        chars = [
            self.rng.choice(PASSWORD_UPPER),
            self.rng.choice(PASSWORD_LOWER),
            self.rng.choice(PASSWORD_DIGITS),
            self.rng.choice(PASSWORD_SPECIALS),
        ]
        chars.extend(self.rng.choice(alphabet) for _ in range(8))
        self.rng.shuffle(chars)
        return "".join(chars)

    def generate_date(self) -> str:
        """ISO date between tomorrow and a year from today."""
        return (date.today() + timedelta(days=self.rng.randint(1, 365))).isoformat()

    def generate_time(self) -> str:
        return f"{self.rng.randint(9, 17):02d}:{self.rng.randint(0, 59):02d}"

    def generate_lorem(self, sentences: int) -> str:
        result = []
        for _ in range(sentences):
            words = [self._pick(LOREM_WORDS) for _ in range(self.rng.randint(5, 12))]
            words[0] = words[0].capitalize()
            result.append(" ".join(words) + ".")
        return " ".join(result)


class FormFiller:
    """
    Fills and submits discovered forms through the self-healing resolver.

    Usage:
        filler = FormFiller(page, SmartLocator(page), FormDataGenerator(settings))
        values = await filler.fill_form(form, variant="invalid")
        await filler.submit_form(form)
        errors = await filler.get_validation_errors()
    """

    def __init__(
        self,
        page,
        resolver: Optional[SmartLocator] = None,
        generator: Optional[FormDataGenerator] = None,
    ):
        self.page = page
        self.resolver = resolver or SmartLocator(page)
        self.generator = generator or FormDataGenerator()
        self.log = logger.bind(component="form_filler")

    async def fill_form(
        self,
        form: DiscoveredForm,
        variant: str = "valid",
        custom_data: Optional[dict[str, str]] = None,
        skip_fields: Optional[list[str]] = None,
    ) -> dict[str, str]:
        """
        Fill every visible field of a form.

        Args:
            form: Discovered form
            variant: ``valid``, ``invalid`` or ``empty``
            custom_data: Values keyed by field name (or id)
            skip_fields: Field names (or ids) to leave untouched

        Returns:
            The values actually filled, keyed by field name (or id)
        """
        custom_data = custom_data or {}
        skip_fields = skip_fields or []
        filled: dict[str, str] = {}

        self.log.info("Filling form", form=form.name or form.id, variant=variant)

        for field in form.fields:
            key = field.name or field.id
            if key in skip_fields or not field.is_visible:
                continue

            try:
                value = custom_data.get(key) or self.generator.value_for_field(field, variant)
                if value:
                    await self.fill_field(field, value)
                    filled[key] = value
            except (LocatorNotFoundError, PlaywrightError) as e:
                self.log.warning("Failed to fill field", field=key, error=str(e))

        return filled

    async def fill_field(self, field: DiscoveredElement, value: str) -> None:
        element = await self.resolver.find(field.locator)

        if field.type == ElementType.checkbox:
            if value in ("true", "1"):
                await element.check()
            else:
                await element.uncheck()
        elif field.type == ElementType.radio:
            await element.check()
        elif field.type == ElementType.select:
            await self._fill_select(element, value)
        elif field.type == ElementType.file_upload:
            await element.set_input_files(value)
        else:
            await element.fill(value)

        # Blur so client-side validation runs
        try:
            await element.blur()
        except PlaywrightError:
            pass

    async def _fill_select(self, element, value: str) -> None:
        """Select by value, then by label, then the first non-placeholder option."""
        try:
            await element.select_option(value=value, timeout=SELECT_PROBE_TIMEOUT_MS)
            return
        except PlaywrightError:
            pass

        try:
            await element.select_option(label=value, timeout=SELECT_PROBE_TIMEOUT_MS)
            return
        except PlaywrightError:
            pass

        options = await element.locator("option").all()
        for option in options[1:]:
            option_value = await option.get_attribute("value")
            if option_value:
                await element.select_option(option_value)
                return

    async def submit_form(self, form: DiscoveredForm) -> None:
        """Click the form's submit button, or the first visible generic one."""
        if form.submit_button is not None:
            await self.resolver.click(form.submit_button.locator)
            return

        for selector in GENERIC_SUBMIT_SELECTORS:
            button = self.page.locator(selector).first
            if await is_visible_within(button, SUBMIT_PROBE_TIMEOUT_MS):
                await button.click()
                return

        raise LocatorNotFoundError(
            Locator(
                primary=GENERIC_SUBMIT_SELECTORS[0],
                fallbacks=list(GENERIC_SUBMIT_SELECTORS[1:]),
                strategy=StrategyKind.css,
                description="Submit button",
            )
        )

    async def get_validation_errors(self) -> list[str]:
        """De-duplicated text of validation messages, in page order."""
        errors: list[str] = []
        for selector in VALIDATION_ERROR_SELECTORS:
            for element in await self.page.locator(selector).all():
                try:
                    text = await element.text_content()
                except PlaywrightError:
                    continue
                if text and text.strip():
                    errors.append(text.strip())
        return list(dict.fromkeys(errors))
