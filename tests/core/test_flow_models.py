"""Tests for the shared flow/step/locator representation."""

import json

import pytest

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


@pytest.fixture
def sample_flow():
    """A two-step flow with assertions, a wait and a precondition."""
    return UserFlow(
        id="form-contact",
        name="Submit contact Form",
        description="Complete and submit the contact form",
        steps=[
            FlowStep(
                step_number=1,
                action=ActionType.navigate,
                target=Locator(primary="http://localhost:8080/contact", confidence=1.0),
                description="Navigate to /contact",
            ),
            FlowStep(
                step_number=2,
                action=ActionType.click,
                target=Locator(
                    primary='[data-testid="send"]',
                    fallbacks=['text="Send"', ".send-button"],
                    strategy=StrategyKind.testid,
                    confidence=0.95,
                    description="Send",
                ),
                assertions=[
                    Assertion(type=AssertionType.url, expected="/thanks", timeout_ms=8000),
                    Assertion(
                        type=AssertionType.text,
                        expected="Thanks",
                        target=Locator(primary="h1", description="Heading"),
                    ),
                ],
                wait_for=WaitCondition(type=WaitType.networkidle),
                screenshot=True,
            ),
        ],
        preconditions=[
            FlowPrecondition(type=PreconditionType.authenticated, value="primary"),
        ],
        expected_outcome="Form submitted successfully",
        priority=FlowPriority.high,
        tags=["form", "/contact"],
    )


class TestLocator:
    """Tests for Locator."""

    def test_selectors_order(self):
        """Test that selectors lists the primary before the fallbacks."""
        locator = Locator(primary="#a", fallbacks=["#b", "#c"])
        assert locator.selectors == ["#a", "#b", "#c"]

    def test_from_dict_defaults(self):
        """Test that optional fields default sensibly."""
        locator = Locator.from_dict({"primary": "button"})
        assert locator.fallbacks == []
        assert locator.strategy == StrategyKind.css
        assert locator.confidence == 0.5
        assert locator.description == ""


class TestUserFlowSerialization:
    """Tests for UserFlow JSON interchange."""

    def test_json_round_trip(self, sample_flow):
        """Test that steps, assertions and locators survive JSON."""
        restored = UserFlow.from_dict(json.loads(json.dumps(sample_flow.to_dict())))
        assert restored == sample_flow

    def test_enum_values_serialized(self, sample_flow):
        """Test that enums are written as their string values."""
        data = sample_flow.to_dict()
        assert data["priority"] == "high"
        assert data["steps"][1]["action"] == "click"
        assert data["steps"][1]["target"]["strategy"] == "testid"
        assert data["steps"][1]["assertions"][0]["type"] == "url"

    def test_assert_action_value(self):
        """Test that the assert action uses the plain string value."""
        step = FlowStep.from_dict(
            {"step_number": 1, "action": "assert", "target": {"primary": "body"}}
        )
        assert step.action == ActionType.assert_

    def test_unknown_action_rejected(self):
        """Test that unknown actions fail while parsing."""
        with pytest.raises(ValueError):
            FlowStep.from_dict(
                {"step_number": 1, "action": "teleport", "target": {"primary": "body"}}
            )

    def test_requires_authentication(self, sample_flow):
        """Test the authenticated precondition check."""
        assert sample_flow.requires_authentication is True
        sample_flow.preconditions = []
        assert sample_flow.requires_authentication is False
