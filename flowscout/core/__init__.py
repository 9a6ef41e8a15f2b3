"""Shared flow/step/locator representation."""

from flowscout.core.models import (
    ActionType,
    Assertion,
    AssertionType,
    FlowPrecondition,
    FlowPriority,
    FlowStep,
    Locator,
    PreconditionType,
    StrategyKind,
    UserFlow,
    WaitCondition,
    WaitType,
)

__all__ = [
    "ActionType",
    "Assertion",
    "AssertionType",
    "FlowPrecondition",
    "FlowPriority",
    "FlowStep",
    "Locator",
    "PreconditionType",
    "StrategyKind",
    "UserFlow",
    "WaitCondition",
    "WaitType",
]
