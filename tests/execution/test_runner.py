"""Tests for the test runner over fake browser sessions."""

import json
from contextlib import asynccontextmanager
from pathlib import Path

import pytest

from flowscout.core.models import ActionType, FlowStep, Locator, UserFlow
from flowscout.execution.manifest import entries_from_flows
from flowscout.execution.models import ManifestEntry, StepStatus, TestStatus
from flowscout.execution.ordering import DependencyCycleError
from flowscout.execution.runner import BrowserSessionError, TestRunner, compute_coverage

SEND = Locator(primary="#send", fallbacks=[".send-button"], description="Send")


def contact_entry(test_id="form-contact", dependencies=None, tags=None, steps=None):
    flow = UserFlow(
        id=test_id,
        name=f"Submit {test_id}",
        description="",
        steps=steps
        if steps is not None
        else [
            FlowStep(step_number=1, action=ActionType.navigate, target=Locator(primary="/contact")),
            FlowStep(step_number=2, action=ActionType.click, target=SEND),
        ],
        tags=tags if tags is not None else ["form", "/contact"],
    )
    return ManifestEntry(id=test_id, name=flow.name, flow=flow, dependencies=dependencies or [])


# ==============================================================================
# Retries and statuses
# ==============================================================================


class TestRunTest:
    """Tests for the per-test retry loop."""

    @pytest.mark.asyncio
    async def test_pass_after_retry_is_flaky(self, settings, make_page, make_element, make_session_factory):
        """Test that a failing first attempt and passing retry yields flaky."""
        factory = make_session_factory([make_page(), make_page(dom={"#send": [make_element()]})])
        runner = TestRunner(settings, session_factory=factory)

        result = await runner.run_test(contact_entry())

        assert result.status == TestStatus.flaky
        assert result.retries == 1
        assert result.error is None
        assert [s.status for s in result.steps] == [StepStatus.passed, StepStatus.passed]
        assert len(factory.configs) == 2

    @pytest.mark.asyncio
    async def test_first_attempt_pass(self, settings, make_page, make_element, make_session_factory):
        factory = make_session_factory([make_page(dom={"#send": [make_element()]})])

        result = await TestRunner(settings, session_factory=factory).run_test(contact_entry())

        assert result.status == TestStatus.passed
        assert result.retries == 0
        assert result.completed_at >= result.started_at

    @pytest.mark.asyncio
    async def test_failure_after_all_attempts(self, settings, make_page, make_session_factory):
        """Test the failed result after exhausting retries."""
        page = make_page()
        factory = make_session_factory([page])

        result = await TestRunner(settings, session_factory=factory).run_test(contact_entry())

        assert result.status == TestStatus.failed
        assert result.retries == 1
        assert len(factory.configs) == 2
        assert result.error.message.startswith("Step 2 (click) failed: Could not find element with locator: #send")
        assert "LocatorNotFoundError" in result.error.stack
        assert [s.status for s in result.steps] == [StepStatus.passed, StepStatus.failed]

        expected_shot = str(Path(settings.output_dir) / "screenshots" / "form-contact-step-2.png")
        assert result.steps[1].screenshot == expected_shot
        assert result.error.screenshot == expected_shot
        page.screenshot.assert_awaited_with(path=expected_shot, full_page=True)

    @pytest.mark.asyncio
    async def test_no_retries_configured(self, settings, make_page, make_session_factory):
        factory = make_session_factory([make_page()])
        runner = TestRunner(settings.model_copy(update={"retry_failed_tests": 0}), session_factory=factory)

        result = await runner.run_test(contact_entry())

        assert result.status == TestStatus.failed
        assert result.retries == 0
        assert len(factory.configs) == 1

    @pytest.mark.asyncio
    async def test_empty_flow_is_skipped(self, settings, make_session_factory):
        """Test that a flow without steps never opens a browser."""
        factory = make_session_factory([])

        result = await TestRunner(settings, session_factory=factory).run_test(contact_entry(steps=[]))

        assert result.status == TestStatus.skipped
        assert result.duration_ms == 0
        assert factory.configs == []

    @pytest.mark.asyncio
    async def test_healed_locator_reported(self, settings, make_page, make_element, make_session_factory):
        """Test that a fallback match is reported on the step result."""
        factory = make_session_factory([make_page(dom={".send-button": [make_element()]})])

        result = await TestRunner(settings, session_factory=factory).run_test(contact_entry())

        assert result.status == TestStatus.passed
        assert result.steps[0].healed_locator is None
        healed = result.steps[1].healed_locator
        assert healed.primary == ".send-button"
        assert healed.fallbacks == ["#send", ".send-button"]

    @pytest.mark.asyncio
    async def test_sign_in_flow_uses_credentials(self, settings, make_page, make_element, make_session_factory):
        """Test that auth-tagged flows fill the configured credentials."""
        password = make_element()
        steps = [
            FlowStep(
                step_number=1,
                action=ActionType.fill,
                target=Locator(primary='input[type="password"]'),
                value="{{password}}",
            )
        ]
        factory = make_session_factory([make_page(dom={'input[type="password"]': [password]})])

        await TestRunner(settings, session_factory=factory).run_test(
            contact_entry("auth-signin", tags=["auth", "signin"], steps=steps)
        )

        password.fill.assert_awaited_once_with(settings.test_user_password.get_secret_value())

    @pytest.mark.asyncio
    async def test_browser_launch_failure_aborts(self, settings):
        @asynccontextmanager
        async def broken_factory(config):
            raise RuntimeError("Executable doesn't exist")
            yield

        runner = TestRunner(settings, session_factory=broken_factory)

        with pytest.raises(BrowserSessionError, match="Executable doesn't exist"):
            await runner.run_test(contact_entry())


# ==============================================================================
# Whole runs
# ==============================================================================


class TestRunTests:
    """Tests for full runs and their reports."""

    @pytest.mark.asyncio
    async def test_summary_and_reports(self, settings, make_page, make_element, make_session_factory):
        """Test tallies, dependency order and written reports."""
        good = make_page(dom={"#send": [make_element()]})
        factory = make_session_factory([good])
        tests = [
            contact_entry("form-settings", dependencies=["auth"]),
            contact_entry("auth-signin", tags=["auth", "signin"]),
            contact_entry("form-empty", steps=[]),
        ]

        summary = await TestRunner(settings, session_factory=factory).run_tests(tests)

        assert [r.test_id for r in summary.results] == ["auth-signin", "form-settings", "form-empty"]
        assert summary.summary == {"total": 3, "passed": 2, "failed": 0, "skipped": 1, "flaky": 0}
        assert summary.success is True
        assert summary.run_id.startswith("run-")

        output = Path(settings.output_dir)
        latest = json.loads((output / "report-latest.json").read_text())
        assert latest["run_id"] == summary.run_id
        assert (output / f"report-{summary.run_id}.html").exists()
        assert (output / f"report-{summary.run_id}.xml").exists()

    @pytest.mark.asyncio
    async def test_failed_count(self, settings, make_page, make_session_factory):
        factory = make_session_factory([make_page()])

        summary = await TestRunner(settings, session_factory=factory).run_tests([contact_entry()])

        assert summary.summary["failed"] == 1
        assert summary.success is False

    @pytest.mark.asyncio
    async def test_cycle_aborts_before_running(self, settings, make_session_factory):
        factory = make_session_factory([])
        tests = [
            contact_entry("first", dependencies=["second"]),
            contact_entry("second", dependencies=["first"]),
        ]

        with pytest.raises(DependencyCycleError):
            await TestRunner(settings, session_factory=factory).run_tests(tests)
        assert factory.configs == []

    @pytest.mark.asyncio
    async def test_run_all_from_manifest(self, settings, make_page, make_element, make_session_factory):
        entry = contact_entry()
        Path(settings.manifest_path).write_text(json.dumps({"tests": [entry.to_dict()]}))
        factory = make_session_factory([make_page(dom={"#send": [make_element()]})])

        summary = await TestRunner(settings, session_factory=factory).run_all()

        assert [r.test_id for r in summary.results] == ["form-contact"]
        assert summary.results[0].status == TestStatus.passed


class TestCoverage:
    """Tests for compute_coverage."""

    def test_counts(self):
        tests = entries_from_flows(
            [contact_entry("form-contact").flow, contact_entry("form-feedback").flow]
        ) + [contact_entry("auth-signin", tags=["auth"], steps=[])]

        assert compute_coverage(tests) == {
            "pages": 1,
            "forms": 2,
            "buttons": 1,
            "flows": 3,
        }
