"""Pure classification helpers used during extraction.

Nothing here touches the browser: inputs are attribute maps and text
already read from the page, which keeps these rules testable on their own.
"""

import re

from flowscout.core.models import Locator, StrategyKind
from flowscout.discovery.models import (
    ElementType,
    InputFieldType,
    ValidationRule,
    ValidationRuleType,
)

# Confidence per locator candidate kind. Ties keep candidate order.
LOCATOR_CONFIDENCE: dict[str, float] = {
    "testid": 0.95,
    "role": 0.9,
    "id": 0.9,
    "aria-label": 0.85,
    "text": 0.7,
    "class": 0.5,
}
UNRESOLVABLE_CONFIDENCE = 0.1
MAX_TEXT_LOCATOR_LENGTH = 50
TEST_ID_ATTRIBUTES = ("data-testid", "data-test-id", "data-cy")

# Input types that name their field kind outright.
DIRECT_INPUT_TYPES: dict[str, InputFieldType] = {
    "email": InputFieldType.email,
    "password": InputFieldType.password,
    "tel": InputFieldType.phone,
    "url": InputFieldType.url,
    "number": InputFieldType.number,
    "date": InputFieldType.date,
    "time": InputFieldType.time,
    "datetime-local": InputFieldType.datetime,
    "search": InputFieldType.search,
}


def _patterns(*expressions: str) -> list[re.Pattern]:
    return [re.compile(expression, re.IGNORECASE) for expression in expressions]


# Scanned in order; the first kind with a matching pattern wins.
FIELD_PATTERNS: dict[InputFieldType, list[re.Pattern]] = {
    InputFieldType.email: _patterns(r"email", r"e-mail", r"mail"),
    InputFieldType.password: _patterns(r"password", r"passwd", r"pass", r"pwd"),
    InputFieldType.first_name: _patterns(r"first.?name", r"fname", r"given.?name", r"forename"),
    InputFieldType.last_name: _patterns(r"last.?name", r"lname", r"surname", r"family.?name"),
    InputFieldType.full_name: _patterns(r"full.?name", r"name", r"your.?name"),
    InputFieldType.name: _patterns(r"^name$"),
    InputFieldType.phone: _patterns(r"phone", r"tel", r"mobile", r"cell"),
    InputFieldType.address: _patterns(r"address", r"street", r"addr", r"line1"),
    InputFieldType.city: _patterns(r"city", r"town", r"locality"),
    InputFieldType.state: _patterns(r"state", r"province", r"region"),
    InputFieldType.zip: _patterns(r"zip", r"postal", r"postcode"),
    InputFieldType.country: _patterns(r"country", r"nation"),
    InputFieldType.company: _patterns(r"company", r"organization", r"org", r"business"),
    InputFieldType.url: _patterns(r"url", r"website", r"site", r"link"),
    InputFieldType.number: _patterns(r"number", r"amount", r"quantity", r"qty"),
    InputFieldType.date: _patterns(r"date", r"dob", r"birth"),
    InputFieldType.time: _patterns(r"time"),
    InputFieldType.datetime: _patterns(r"datetime"),
    InputFieldType.credit_card: _patterns(r"card.?number", r"cc.?num", r"credit"),
    InputFieldType.cvv: _patterns(r"cvv", r"cvc", r"security.?code"),
    InputFieldType.expiry: _patterns(r"expir", r"exp.?date", r"valid"),
    InputFieldType.search: _patterns(r"search", r"query", r"find"),
    InputFieldType.message: _patterns(r"message", r"comment", r"note"),
    InputFieldType.description: _patterns(r"description", r"desc", r"details", r"bio"),
}

INPUT_ELEMENT_TYPES: dict[str, ElementType] = {
    "date": ElementType.date_picker,
    "datetime": ElementType.date_picker,
    "datetime-local": ElementType.date_picker,
    "checkbox": ElementType.checkbox,
    "radio": ElementType.radio,
    "file": ElementType.file_upload,
    "select": ElementType.select,
    "textarea": ElementType.textarea,
}


def map_input_type(html_type: str) -> ElementType:
    """Element type for a form control's ``type`` (or tag for select/textarea)."""
    return INPUT_ELEMENT_TYPES.get(html_type.lower(), ElementType.input)


def classify_input_field(attributes: dict[str, str], label: str = "") -> InputFieldType:
    """Resolve the semantic kind of a form field.

    The declared input type wins; otherwise name, id, placeholder, label
    text and autocomplete are matched against FIELD_PATTERNS.
    """
    input_type = (attributes.get("type") or "text").lower()
    if input_type in DIRECT_INPUT_TYPES:
        return DIRECT_INPUT_TYPES[input_type]

    search_text = " ".join(
        [
            attributes.get("name", ""),
            attributes.get("id", ""),
            attributes.get("placeholder", ""),
            label,
            attributes.get("autocomplete", ""),
        ]
    ).lower()

    for field_type, patterns in FIELD_PATTERNS.items():
        if any(pattern.search(search_text) for pattern in patterns):
            return field_type
    return InputFieldType.text


def _parse_number(raw: str, cast):
    try:
        return cast(raw)
    except ValueError:
        return None


def extract_validation_rules(attributes: dict[str, str]) -> list[ValidationRule]:
    """Validation constraints declared through HTML attributes."""
    rules: list[ValidationRule] = []

    if "required" in attributes:
        rules.append(ValidationRule(ValidationRuleType.required))

    numeric = (
        ("minlength", ValidationRuleType.min_length, int),
        ("maxlength", ValidationRuleType.max_length, int),
        ("min", ValidationRuleType.min, float),
        ("max", ValidationRuleType.max, float),
    )
    for attribute, rule_type, cast in numeric:
        raw = attributes.get(attribute)
        if raw:
            value = _parse_number(raw, cast)
            if value is not None:
                rules.append(ValidationRule(rule_type, value))

    if attributes.get("pattern"):
        rules.append(ValidationRule(ValidationRuleType.pattern, attributes["pattern"]))

    input_type = attributes.get("type")
    if input_type == "email":
        rules.append(ValidationRule(ValidationRuleType.email))
    elif input_type == "url":
        rules.append(ValidationRule(ValidationRuleType.url))

    return rules


def synthesize_locator(
    attributes: dict[str, str],
    text: str | None,
    element_type: ElementType,
) -> Locator:
    """Build a ranked Locator from what is known about an element.

    Candidates are collected per strategy, sorted by LOCATOR_CONFIDENCE
    and split into primary and fallbacks. With no candidate at all the
    locator degrades to the bare element type name at confidence 0.1.
    """
    candidates: list[tuple[StrategyKind, str, float]] = []

    role = attributes.get("role")
    if role:
        candidates.append((StrategyKind.role, f'[role="{role}"]', LOCATOR_CONFIDENCE["role"]))

    for attribute in TEST_ID_ATTRIBUTES:
        if attributes.get(attribute):
            candidates.append(
                (StrategyKind.testid, f'[{attribute}="{attributes[attribute]}"]', LOCATOR_CONFIDENCE["testid"])
            )
            break

    aria_label = attributes.get("aria-label")
    if aria_label:
        candidates.append((StrategyKind.label, f'[aria-label="{aria_label}"]', LOCATOR_CONFIDENCE["aria-label"]))

    short_text = (text or "").strip()
    if short_text and len(short_text) < MAX_TEXT_LOCATOR_LENGTH:
        candidates.append((StrategyKind.text, f'text="{short_text}"', LOCATOR_CONFIDENCE["text"]))
    else:
        short_text = ""

    element_id = attributes.get("id")
    if element_id:
        candidates.append((StrategyKind.css, f"#{element_id}", LOCATOR_CONFIDENCE["id"]))

    main_class = next(
        (c for c in (attributes.get("class") or "").split() if not c.startswith("_") and len(c) > 3),
        None,
    )
    if main_class:
        candidates.append((StrategyKind.css, f".{main_class}", LOCATOR_CONFIDENCE["class"]))

    description = aria_label or short_text or f"{element_type.value} element"

    if not candidates:
        return Locator(
            primary=element_type.value,
            fallbacks=[],
            strategy=StrategyKind.css,
            confidence=UNRESOLVABLE_CONFIDENCE,
            description=description,
        )

    ranked = sorted(candidates, key=lambda candidate: candidate[2], reverse=True)
    strategy, primary, confidence = ranked[0]
    return Locator(
        primary=primary,
        fallbacks=[selector for _, selector, _ in ranked[1:]],
        strategy=strategy,
        confidence=confidence,
        description=description,
    )


def matches_route_pattern(path: str, pattern: str) -> bool:
    """Full-path glob match where ``*`` matches any run of characters."""
    regex = ".*".join(re.escape(part) for part in pattern.split("*"))
    return re.fullmatch(regex, path) is not None
