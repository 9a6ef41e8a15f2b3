"""
Data models for application discovery.

Snapshots of pages, forms and interactive elements captured during a
crawl, and the DiscoveryReport that carries them (together with the
synthesized flows) to the runner.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from flowscout.core.models import Locator, UserFlow

# =============================================================================
# Enums
# =============================================================================

class ElementType(str, Enum):
    """Classified type of a discovered element."""
    button = "button"
    link = "link"
    form = "form"
    input = "input"
    select = "select"
    textarea = "textarea"
    checkbox = "checkbox"
    radio = "radio"
    file_upload = "file-upload"
    date_picker = "date-picker"
    modal = "modal"
    dialog = "dialog"
    dropdown = "dropdown"
    menu = "menu"
    tab = "tab"
    other = "other"


class InputFieldType(str, Enum):
    """Semantic kind of a form field, used to pick test data."""
    email = "email"
    password = "password"
    text = "text"
    name = "name"
    first_name = "first-name"
    last_name = "last-name"
    full_name = "full-name"
    phone = "phone"
    address = "address"
    city = "city"
    state = "state"
    zip = "zip"
    country = "country"
    company = "company"
    url = "url"
    number = "number"
    date = "date"
    time = "time"
    datetime = "datetime"
    credit_card = "credit-card"
    cvv = "cvv"
    expiry = "expiry"
    search = "search"
    message = "message"
    description = "description"
    unknown = "unknown"


class ValidationRuleType(str, Enum):
    """Client-side validation constraints scraped from field attributes."""
    required = "required"
    pattern = "pattern"
    min_length = "minLength"
    max_length = "maxLength"
    min = "min"
    max = "max"
    email = "email"
    url = "url"
    custom = "custom"


class DiscoveryErrorType(str, Enum):
    """Category of a problem recorded during a crawl."""
    navigation = "navigation"
    timeout = "timeout"
    element = "element"
    auth = "auth"
    unknown = "unknown"


# =============================================================================
# Elements
# =============================================================================

@dataclass
class BoundingBox:
    """Element position and size in CSS pixels."""
    x: float
    y: float
    width: float
    height: float

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary representation."""
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BoundingBox":
        """Create from dictionary representation."""
        return cls(
            x=data.get("x", 0),
            y=data.get("y", 0),
            width=data.get("width", 0),
            height=data.get("height", 0),
        )


@dataclass
class ValidationRule:
    """One validation constraint on a form field."""
    type: ValidationRuleType
    value: str | int | float | None = None
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {"type": self.type.value, "value": self.value, "message": self.message}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ValidationRule":
        """Create from dictionary representation."""
        return cls(
            type=ValidationRuleType(data["type"]),
            value=data.get("value"),
            message=data.get("message"),
        )


@dataclass
class DiscoveredElement:
    """
    Snapshot of one interactive node, never mutated after capture.

    Attributes:
        id: The element's id attribute or a synthetic id
        type: Classified element type
        locator: Ranked selectors for the element
        attributes: Raw attribute map
        input_type: Semantic field kind (form fields only)
        validation_rules: Scraped constraints (form fields only)
        timestamp: Capture time in epoch milliseconds
    """
    id: str
    type: ElementType
    locator: Locator
    text: str | None = None
    aria_label: str | None = None
    placeholder: str | None = None
    name: str | None = None
    value: str | None = None
    href: str | None = None
    is_visible: bool = True
    is_enabled: bool = True
    is_required: bool = False
    bounding_box: BoundingBox | None = None
    attributes: dict[str, str] = field(default_factory=dict)
    input_type: InputFieldType | None = None
    validation_rules: list[ValidationRule] = field(default_factory=list)
    timestamp: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "type": self.type.value,
            "locator": self.locator.to_dict(),
            "text": self.text,
            "aria_label": self.aria_label,
            "placeholder": self.placeholder,
            "name": self.name,
            "value": self.value,
            "href": self.href,
            "is_visible": self.is_visible,
            "is_enabled": self.is_enabled,
            "is_required": self.is_required,
            "bounding_box": self.bounding_box.to_dict() if self.bounding_box else None,
            "attributes": dict(self.attributes),
            "input_type": self.input_type.value if self.input_type else None,
            "validation_rules": [r.to_dict() for r in self.validation_rules],
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiscoveredElement":
        """Create from dictionary representation."""
        bounding_box = data.get("bounding_box")
        input_type = data.get("input_type")
        return cls(
            id=data["id"],
            type=ElementType(data["type"]),
            locator=Locator.from_dict(data["locator"]),
            text=data.get("text"),
            aria_label=data.get("aria_label"),
            placeholder=data.get("placeholder"),
            name=data.get("name"),
            value=data.get("value"),
            href=data.get("href"),
            is_visible=data.get("is_visible", True),
            is_enabled=data.get("is_enabled", True),
            is_required=data.get("is_required", False),
            bounding_box=BoundingBox.from_dict(bounding_box) if bounding_box else None,
            attributes=dict(data.get("attributes", {})),
            input_type=InputFieldType(input_type) if input_type else None,
            validation_rules=[ValidationRule.from_dict(r) for r in data.get("validation_rules", [])],
            timestamp=data.get("timestamp", 0),
        )


# =============================================================================
# Forms
# =============================================================================

@dataclass
class FormStep:
    """One page of a multi-step form."""
    step_number: int
    fields: list[DiscoveredElement] = field(default_factory=list)
    name: str | None = None
    next_button: DiscoveredElement | None = None
    back_button: DiscoveredElement | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "step_number": self.step_number,
            "name": self.name,
            "fields": [f.to_dict() for f in self.fields],
            "next_button": self.next_button.to_dict() if self.next_button else None,
            "back_button": self.back_button.to_dict() if self.back_button else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FormStep":
        """Create from dictionary representation."""
        next_button = data.get("next_button")
        back_button = data.get("back_button")
        return cls(
            step_number=data["step_number"],
            name=data.get("name"),
            fields=[DiscoveredElement.from_dict(f) for f in data.get("fields", [])],
            next_button=DiscoveredElement.from_dict(next_button) if next_button else None,
            back_button=DiscoveredElement.from_dict(back_button) if back_button else None,
        )


@dataclass
class DiscoveredForm:
    """
    A form with its fields in page order.

    Submit and cancel buttons are full element copies so that a report
    stays self-contained.
    """
    id: str
    locator: Locator
    fields: list[DiscoveredElement] = field(default_factory=list)
    name: str | None = None
    action: str | None = None
    method: str = "get"
    submit_button: DiscoveredElement | None = None
    cancel_button: DiscoveredElement | None = None
    is_multi_step: bool = False
    steps: list[FormStep] = field(default_factory=list)
    timestamp: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "action": self.action,
            "method": self.method,
            "locator": self.locator.to_dict(),
            "fields": [f.to_dict() for f in self.fields],
            "submit_button": self.submit_button.to_dict() if self.submit_button else None,
            "cancel_button": self.cancel_button.to_dict() if self.cancel_button else None,
            "is_multi_step": self.is_multi_step,
            "steps": [s.to_dict() for s in self.steps],
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiscoveredForm":
        """Create from dictionary representation."""
        submit_button = data.get("submit_button")
        cancel_button = data.get("cancel_button")
        return cls(
            id=data["id"],
            name=data.get("name"),
            action=data.get("action"),
            method=data.get("method", "get"),
            locator=Locator.from_dict(data["locator"]),
            fields=[DiscoveredElement.from_dict(f) for f in data.get("fields", [])],
            submit_button=DiscoveredElement.from_dict(submit_button) if submit_button else None,
            cancel_button=DiscoveredElement.from_dict(cancel_button) if cancel_button else None,
            is_multi_step=data.get("is_multi_step", False),
            steps=[FormStep.from_dict(s) for s in data.get("steps", [])],
            timestamp=data.get("timestamp", 0),
        )


# =============================================================================
# Pages
# =============================================================================

@dataclass
class NavigationItem:
    """A link inside a navigation landmark."""
    text: str
    href: str
    locator: Locator
    children: list["NavigationItem"] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "text": self.text,
            "href": self.href,
            "locator": self.locator.to_dict(),
            "children": [c.to_dict() for c in self.children],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NavigationItem":
        """Create from dictionary representation."""
        return cls(
            text=data["text"],
            href=data["href"],
            locator=Locator.from_dict(data["locator"]),
            children=[cls.from_dict(c) for c in data.get("children", [])],
        )


@dataclass
class Heading:
    """An h1-h6 heading."""
    level: int
    text: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {"level": self.level, "text": self.text}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Heading":
        """Create from dictionary representation."""
        return cls(level=data["level"], text=data["text"])


@dataclass
class DiscoveredPage:
    """One crawled URL and everything extracted from it."""
    url: str
    path: str
    title: str = ""
    description: str | None = None
    is_authenticated: bool = False
    forms: list[DiscoveredForm] = field(default_factory=list)
    buttons: list[DiscoveredElement] = field(default_factory=list)
    links: list[DiscoveredElement] = field(default_factory=list)
    modals: list[DiscoveredElement] = field(default_factory=list)
    navigation: list[NavigationItem] = field(default_factory=list)
    headings: list[Heading] = field(default_factory=list)
    load_time_ms: int = 0
    screenshot: str | None = None
    timestamp: int = 0

    @property
    def field_count(self) -> int:
        """Number of form fields on the page."""
        return sum(len(f.fields) for f in self.forms)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "url": self.url,
            "path": self.path,
            "title": self.title,
            "description": self.description,
            "is_authenticated": self.is_authenticated,
            "forms": [f.to_dict() for f in self.forms],
            "buttons": [b.to_dict() for b in self.buttons],
            "links": [link.to_dict() for link in self.links],
            "modals": [m.to_dict() for m in self.modals],
            "navigation": [n.to_dict() for n in self.navigation],
            "headings": [h.to_dict() for h in self.headings],
            "load_time_ms": self.load_time_ms,
            "screenshot": self.screenshot,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiscoveredPage":
        """Create from dictionary representation."""
        return cls(
            url=data["url"],
            path=data["path"],
            title=data.get("title", ""),
            description=data.get("description"),
            is_authenticated=data.get("is_authenticated", False),
            forms=[DiscoveredForm.from_dict(f) for f in data.get("forms", [])],
            buttons=[DiscoveredElement.from_dict(b) for b in data.get("buttons", [])],
            links=[DiscoveredElement.from_dict(link) for link in data.get("links", [])],
            modals=[DiscoveredElement.from_dict(m) for m in data.get("modals", [])],
            navigation=[NavigationItem.from_dict(n) for n in data.get("navigation", [])],
            headings=[Heading.from_dict(h) for h in data.get("headings", [])],
            load_time_ms=data.get("load_time_ms", 0),
            screenshot=data.get("screenshot"),
            timestamp=data.get("timestamp", 0),
        )


# =============================================================================
# Report
# =============================================================================

@dataclass
class DiscoveryError:
    """A problem recorded during a crawl; never fails the crawl itself."""
    type: DiscoveryErrorType
    message: str
    page: str | None = None
    element: str | None = None
    timestamp: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "type": self.type.value,
            "message": self.message,
            "page": self.page,
            "element": self.element,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiscoveryError":
        """Create from dictionary representation."""
        return cls(
            type=DiscoveryErrorType(data.get("type", "unknown")),
            message=data.get("message", ""),
            page=data.get("page"),
            element=data.get("element"),
            timestamp=data.get("timestamp", 0),
        )


@dataclass
class DiscoveryReport:
    """
    Top-level crawl artifact.

    Element totals and coverage are derived from ``pages`` so they can
    never disagree with the page list.
    """
    app_name: str
    base_url: str
    started_at: datetime
    completed_at: datetime
    pages: list[DiscoveredPage] = field(default_factory=list)
    suggested_flows: list[UserFlow] = field(default_factory=list)
    errors: list[DiscoveryError] = field(default_factory=list)

    @property
    def duration_ms(self) -> int:
        return int((self.completed_at - self.started_at).total_seconds() * 1000)

    @property
    def total_elements(self) -> dict[str, int]:
        return {
            "forms": sum(len(p.forms) for p in self.pages),
            "buttons": sum(len(p.buttons) for p in self.pages),
            "links": sum(len(p.links) for p in self.pages),
            "inputs": sum(p.field_count for p in self.pages),
            "modals": sum(len(p.modals) for p in self.pages),
        }

    @property
    def coverage(self) -> dict[str, int]:
        return {
            "pages_visited": len(self.pages),
            "forms_found": sum(len(p.forms) for p in self.pages),
            "interactive_elements": sum(
                len(p.buttons) + len(p.links) + p.field_count for p in self.pages
            ),
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "app_name": self.app_name,
            "base_url": self.base_url,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "duration_ms": self.duration_ms,
            "pages": [p.to_dict() for p in self.pages],
            "total_elements": self.total_elements,
            "suggested_flows": [f.to_dict() for f in self.suggested_flows],
            "errors": [e.to_dict() for e in self.errors],
            "coverage": self.coverage,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiscoveryReport":
        """Create from dictionary representation."""
        return cls(
            app_name=data.get("app_name", ""),
            base_url=data["base_url"],
            started_at=datetime.fromisoformat(data["started_at"]),
            completed_at=datetime.fromisoformat(data["completed_at"]),
            pages=[DiscoveredPage.from_dict(p) for p in data.get("pages", [])],
            suggested_flows=[UserFlow.from_dict(f) for f in data.get("suggested_flows", [])],
            errors=[DiscoveryError.from_dict(e) for e in data.get("errors", [])],
        )
