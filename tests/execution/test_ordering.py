"""Tests for dependency ordering."""

import pytest

from flowscout.config import CyclePolicy
from flowscout.core.models import ActionType, FlowStep, Locator, UserFlow
from flowscout.execution.models import ManifestEntry
from flowscout.execution.ordering import DependencyCycleError, provides, sort_by_dependencies


def entry(test_id, dependencies=None, tags=None):
    flow = UserFlow(
        id=test_id,
        name=test_id,
        description="",
        steps=[FlowStep(step_number=1, action=ActionType.navigate, target=Locator(primary="/"))],
        tags=tags or [],
    )
    return ManifestEntry(id=test_id, name=test_id, flow=flow, dependencies=dependencies or [])


def ids(tests):
    return [t.id for t in tests]


class TestProvides:
    """Tests for dependency satisfaction."""

    def test_substring_of_id(self):
        assert provides(entry("auth-signin"), "auth") is True

    def test_flow_tag(self):
        assert provides(entry("login", tags=["session"]), "session") is True

    def test_unrelated(self):
        assert provides(entry("form-contact", tags=["form"]), "auth") is False


class TestSortByDependencies:
    """Tests for sort_by_dependencies."""

    def test_independent_tests_keep_order(self):
        tests = [entry("c"), entry("a"), entry("b")]
        assert ids(sort_by_dependencies(tests)) == ["c", "a", "b"]

    def test_dependents_run_after_providers(self):
        """Test that a test waits for the test providing its dependency."""
        tests = [
            entry("form-settings", dependencies=["auth"]),
            entry("form-contact"),
            entry("auth-signin", tags=["auth", "signin"]),
        ]

        ordered = ids(sort_by_dependencies(tests))

        assert ordered == ["form-contact", "auth-signin", "form-settings"]

    def test_chained_dependencies(self):
        tests = [
            entry("checkout", dependencies=["cart"]),
            entry("cart", dependencies=["login"]),
            entry("login"),
        ]
        assert ids(sort_by_dependencies(tests)) == ["login", "cart", "checkout"]

    @pytest.mark.parametrize("policy", [CyclePolicy.ERROR, CyclePolicy.APPEND])
    def test_unprovided_dependency_is_appended(self, policy):
        """Test that a dependency nobody provides does not block the run."""
        tests = [entry("billing", dependencies=["payments"]), entry("home")]
        assert ids(sort_by_dependencies(tests, policy)) == ["home", "billing"]

    def test_test_providing_its_own_dependency_runs(self):
        """Test that a test matching its own dependency is not a cycle."""
        tests = [entry("form-oauth-connect", dependencies=["auth"], tags=["form", "auth"])]
        assert ids(sort_by_dependencies(tests, CyclePolicy.ERROR)) == ["form-oauth-connect"]

    def test_self_match_still_waits_for_other_provider(self):
        tests = [
            entry("form-oauth-connect", dependencies=["auth"], tags=["form", "auth"]),
            entry("auth-signin", tags=["auth", "signin"]),
        ]
        assert ids(sort_by_dependencies(tests)) == ["auth-signin", "form-oauth-connect"]

    def test_cycle_raises_under_error_policy(self):
        tests = [
            entry("first", dependencies=["second"]),
            entry("second", dependencies=["first"]),
            entry("free"),
        ]

        with pytest.raises(DependencyCycleError) as exc_info:
            sort_by_dependencies(tests, CyclePolicy.ERROR)

        assert ids(exc_info.value.blocked) == ["first", "second"]
        assert "Circular test dependencies" in str(exc_info.value)

    def test_cycle_appended_under_append_policy(self):
        """Test that cycle members run in original order after the rest."""
        tests = [
            entry("first", dependencies=["second"]),
            entry("free"),
            entry("second", dependencies=["first"]),
        ]

        ordered = ids(sort_by_dependencies(tests, CyclePolicy.APPEND))

        assert ordered == ["free", "first", "second"]

    def test_empty(self):
        assert sort_by_dependencies([]) == []
