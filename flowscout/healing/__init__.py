"""Self-healing locator resolution."""

from flowscout.healing.heuristics import HEALING_STRATEGIES, HealingMatch
from flowscout.healing.locator import (
    HealingEvent,
    LocatorNotFoundError,
    SmartLocator,
)

__all__ = [
    "HEALING_STRATEGIES",
    "HealingEvent",
    "HealingMatch",
    "LocatorNotFoundError",
    "SmartLocator",
]
