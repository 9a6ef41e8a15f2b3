"""
Step/locator intermediate representation shared by discovery and execution.

A UserFlow is an ordered list of FlowSteps. Each step acts on a Locator,
which carries a primary selector plus ranked fallbacks so the resolver
can heal drifted markup. Discovery writes these structures, the runner
reads them back from JSON.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# =============================================================================
# Enums
# =============================================================================

class StrategyKind(str, Enum):
    """Selector dialect of a locator's primary strategy."""
    role = "role"
    text = "text"
    testid = "testid"
    label = "label"
    css = "css"
    xpath = "xpath"


class ActionType(str, Enum):
    """Closed set of step actions understood by the step interpreter."""
    navigate = "navigate"
    click = "click"
    fill = "fill"
    select = "select"
    check = "check"
    uncheck = "uncheck"
    hover = "hover"
    focus = "focus"
    blur = "blur"
    press = "press"
    upload = "upload"
    scroll = "scroll"
    wait = "wait"
    assert_ = "assert"
    screenshot = "screenshot"


class AssertionType(str, Enum):
    """Kinds of state checks a step can carry."""
    visible = "visible"
    hidden = "hidden"
    text = "text"
    value = "value"
    attribute = "attribute"
    url = "url"
    title = "title"
    count = "count"
    enabled = "enabled"
    disabled = "disabled"


class WaitType(str, Enum):
    """Kinds of wait conditions."""
    visible = "visible"
    hidden = "hidden"
    navigation = "navigation"
    networkidle = "networkidle"
    timeout = "timeout"
    selector = "selector"


class PreconditionType(str, Enum):
    """Kinds of flow preconditions."""
    authenticated = "authenticated"
    page = "page"
    element = "element"
    data = "data"
    custom = "custom"


class FlowPriority(str, Enum):
    """Priority of a synthesized flow."""
    critical = "critical"
    high = "high"
    medium = "medium"
    low = "low"


# =============================================================================
# Locator
# =============================================================================

@dataclass
class Locator:
    """
    Element reference with ranked resolution strategies.

    Attributes:
        primary: Selector tried first
        fallbacks: Alternative selectors, most specific first
        strategy: Dialect of the primary selector
        confidence: How uniquely the primary is expected to match (0-1)
        description: Free-text hint used by the healing heuristics
    """
    primary: str
    fallbacks: list[str] = field(default_factory=list)
    strategy: StrategyKind = StrategyKind.css
    confidence: float = 0.5
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "primary": self.primary,
            "fallbacks": list(self.fallbacks),
            "strategy": self.strategy.value,
            "confidence": self.confidence,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Locator":
        """Create from dictionary representation."""
        return cls(
            primary=data["primary"],
            fallbacks=list(data.get("fallbacks", [])),
            strategy=StrategyKind(data.get("strategy", "css")),
            confidence=data.get("confidence", 0.5),
            description=data.get("description", ""),
        )

    @property
    def selectors(self) -> list[str]:
        """Primary followed by fallbacks, in resolution order."""
        return [self.primary, *self.fallbacks]


# =============================================================================
# Flow building blocks
# =============================================================================

@dataclass
class Assertion:
    """A state check evaluated after a step's action."""
    type: AssertionType
    expected: Any = None
    target: Locator | None = None
    timeout_ms: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "type": self.type.value,
            "expected": self.expected,
            "target": self.target.to_dict() if self.target else None,
            "timeout_ms": self.timeout_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Assertion":
        """Create from dictionary representation."""
        target = data.get("target")
        return cls(
            type=AssertionType(data["type"]),
            expected=data.get("expected"),
            target=Locator.from_dict(target) if target else None,
            timeout_ms=data.get("timeout_ms"),
        )


@dataclass
class WaitCondition:
    """A wait performed by a wait step, or after another step's action."""
    type: WaitType
    value: str | int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {"type": self.type.value, "value": self.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WaitCondition":
        """Create from dictionary representation."""
        return cls(type=WaitType(data["type"]), value=data.get("value"))


@dataclass
class FlowPrecondition:
    """State a flow expects before it starts."""
    type: PreconditionType
    value: str
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "type": self.type.value,
            "value": self.value,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FlowPrecondition":
        """Create from dictionary representation."""
        return cls(
            type=PreconditionType(data["type"]),
            value=data.get("value", ""),
            description=data.get("description", ""),
        )


@dataclass
class FlowStep:
    """
    One step of a user flow.

    Step numbers are advisory labels; execution follows list order.
    Values of the form ``{{kind}}`` are resolved by the value generator.
    """
    step_number: int
    action: ActionType
    target: Locator
    description: str = ""
    value: str | None = None
    assertions: list[Assertion] = field(default_factory=list)
    wait_for: WaitCondition | None = None
    screenshot: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "step_number": self.step_number,
            "action": self.action.value,
            "target": self.target.to_dict(),
            "description": self.description,
            "value": self.value,
            "assertions": [a.to_dict() for a in self.assertions],
            "wait_for": self.wait_for.to_dict() if self.wait_for else None,
            "screenshot": self.screenshot,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FlowStep":
        """Create from dictionary representation."""
        wait_for = data.get("wait_for")
        return cls(
            step_number=data["step_number"],
            action=ActionType(data["action"]),
            target=Locator.from_dict(data["target"]),
            description=data.get("description", ""),
            value=data.get("value"),
            assertions=[Assertion.from_dict(a) for a in data.get("assertions") or []],
            wait_for=WaitCondition.from_dict(wait_for) if wait_for else None,
            screenshot=data.get("screenshot", False),
        )


@dataclass
class UserFlow:
    """A named, ordered sequence of steps with preconditions and tags."""
    id: str
    name: str
    description: str = ""
    steps: list[FlowStep] = field(default_factory=list)
    preconditions: list[FlowPrecondition] = field(default_factory=list)
    expected_outcome: str = ""
    priority: FlowPriority = FlowPriority.medium
    tags: list[str] = field(default_factory=list)

    @property
    def requires_authentication(self) -> bool:
        """Whether the flow declares an authenticated precondition."""
        return any(p.type == PreconditionType.authenticated for p in self.preconditions)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "steps": [s.to_dict() for s in self.steps],
            "preconditions": [p.to_dict() for p in self.preconditions],
            "expected_outcome": self.expected_outcome,
            "priority": self.priority.value,
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserFlow":
        """Create from dictionary representation."""
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            description=data.get("description", ""),
            steps=[FlowStep.from_dict(s) for s in data.get("steps", [])],
            preconditions=[FlowPrecondition.from_dict(p) for p in data.get("preconditions", [])],
            expected_outcome=data.get("expected_outcome", ""),
            priority=FlowPriority(data.get("priority", "medium")),
            tags=list(data.get("tags", [])),
        )
