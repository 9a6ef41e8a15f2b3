"""Sequential test runner with whole-test retries.

Each attempt of each test gets its own browser session. A test that only
passes after a retry is reported as flaky, never as passed.
"""

import time
import traceback
from datetime import UTC, datetime
from pathlib import Path
from typing import Optional

import structlog

from flowscout.config import Settings, get_settings
from flowscout.core.models import ActionType, FlowStep, UserFlow
from flowscout.execution.manifest import load_flows_from_report, load_manifest
from flowscout.execution.models import (
    ManifestEntry,
    StepResult,
    StepStatus,
    TestError,
    TestResult,
    TestRunSummary,
    TestStatus,
)
from flowscout.execution.ordering import sort_by_dependencies
from flowscout.execution.reporter import RunReporter
from flowscout.execution.steps import StepInterpreter, screenshot_path
from flowscout.healing.locator import SmartLocator
from flowscout.tools.browser import BrowserConfig, create_browser_context
from flowscout.utils.form_data import FormDataGenerator
from flowscout.utils.logging import TestExecutionLogger, log_operation

logger = structlog.get_logger()

AUTH_TAG = "auth"


class BrowserSessionError(Exception):
    """Raised when a browser session cannot be launched or torn down."""


def _now_ms() -> int:
    return int(time.time() * 1000)


def compute_coverage(tests: list[ManifestEntry]) -> dict[str, int]:
    """Coverage tallies over the flows of the executed tests."""
    steps = [step for test in tests for step in test.flow.steps]
    return {
        "pages": len({s.target.primary for s in steps if s.action == ActionType.navigate}),
        "forms": sum(1 for test in tests if "form" in test.flow.tags),
        "buttons": len({s.target.primary for s in steps if s.action == ActionType.click}),
        "flows": len(tests),
    }


class TestRunner:
    """
    Runs manifest entries in dependency order and writes the run reports.

    Usage:
        runner = TestRunner(settings)
        summary = await runner.run_all()
        if summary.summary["failed"]:
            ...
    """

    __test__ = False

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session_factory=None,
        generator: Optional[FormDataGenerator] = None,
    ):
        """
        Initialize the runner.

        Args:
            settings: Application settings (defaults to get_settings())
            session_factory: Async context manager factory taking a
                BrowserConfig and yielding an object with a ``page``
            generator: Value generator for templated fill values
        """
        self.settings = settings or get_settings()
        self._session_factory = session_factory or create_browser_context
        self.generator = generator or FormDataGenerator(self.settings)
        self.reporter = RunReporter(self.settings.output_dir, self.settings.report_format)
        self.run_id = f"run-{_now_ms()}"
        self.results: list[TestResult] = []
        self.log = logger.bind(component="test_runner")

    # ==========================================================================
    # Entry points
    # ==========================================================================

    async def run_all(self, manifest_path: Optional[str | Path] = None) -> TestRunSummary:
        """Run every test in the manifest (defaults to ``settings.manifest_path``)."""
        tests = load_manifest(manifest_path or self.settings.manifest_path)
        return await self.run_tests(tests)

    async def run_from_report(self, report_path: str | Path) -> TestRunSummary:
        """Run the suggested flows of a saved discovery report."""
        return await self.run_tests(load_flows_from_report(report_path))

    async def run_tests(self, tests: list[ManifestEntry]) -> TestRunSummary:
        """
        Run tests sequentially in dependency order.

        Raises:
            DependencyCycleError: On a dependency cycle under the error policy
            BrowserSessionError: If a browser session fails to launch
        """
        ordered = sort_by_dependencies(tests, self.settings.dependency_cycle_policy)
        self.run_id = f"run-{_now_ms()}"
        self.results = []
        started_at = datetime.now(UTC)

        with log_operation(
            "test_run",
            logger=self.log,
            run_id=self.run_id,
            tests=len(ordered),
            retries=self.settings.retry_failed_tests,
        ) as op:
            for test in ordered:
                await self.run_test(test)
            op["completed"] = len(self.results)

        summary = TestRunSummary(
            run_id=self.run_id,
            app_name=self.settings.app_name,
            started_at=started_at,
            completed_at=datetime.now(UTC),
            results=list(self.results),
            coverage=compute_coverage(ordered),
        )

        self.reporter.save(summary)
        self.reporter.print_summary(summary)
        return summary

    # ==========================================================================
    # Per-test retry loop
    # ==========================================================================

    async def run_test(self, test: ManifestEntry) -> TestResult:
        """Run one test with up to ``retry_failed_tests`` retries."""
        exec_log = TestExecutionLogger(test.id, test.name)

        if not test.flow.steps:
            now = _now_ms()
            result = TestResult(
                test_id=test.id,
                name=test.name,
                status=TestStatus.skipped,
                duration_ms=0,
                started_at=now,
                completed_at=now,
            )
            exec_log.test_completed(result.status.value, 0)
            self.results.append(result)
            return result

        max_attempts = self.settings.retry_failed_tests + 1
        attempts = 0
        while True:
            attempts += 1
            exec_log.test_started(attempt=attempts, metadata={"steps": len(test.flow.steps)})
            result = await self._execute_attempt(test, exec_log)
            result.retries = attempts - 1

            if result.status == TestStatus.passed:
                if attempts > 1:
                    result.status = TestStatus.flaky
                break
            if attempts >= max_attempts:
                break

            self.log.info(
                "Retrying test",
                test_id=test.id,
                attempt=attempts + 1,
                max_attempts=max_attempts,
                error=result.error.message if result.error else None,
            )

        exec_log.test_completed(result.status.value, result.duration_ms, retries=result.retries)
        self.results.append(result)
        return result

    async def _execute_attempt(self, test: ManifestEntry, exec_log: TestExecutionLogger) -> TestResult:
        """One attempt in a fresh browser session; step failures end the attempt."""
        started_at = _now_ms()
        step_results: list[StepResult] = []
        error: Optional[TestError] = None
        config = BrowserConfig.from_settings(self.settings, video_subdir=test.id)

        try:
            async with self._session_factory(config) as browser:
                page = browser.page
                resolver = SmartLocator(
                    page,
                    self_healing=self.settings.self_heal_enabled,
                    action_timeout_ms=self.settings.action_timeout_ms,
                )
                interpreter = StepInterpreter(
                    page,
                    resolver,
                    self.generator,
                    self.settings,
                    test_id=test.id,
                    value_overrides=self._value_overrides(test.flow),
                    exec_logger=exec_log,
                )

                for step in test.flow.steps:
                    step_result, step_error = await self._run_step(page, resolver, interpreter, test, step, exec_log)
                    step_results.append(step_result)
                    if step_error is not None:
                        error = TestError(
                            message=f"Step {step.step_number} ({step.action.value}) failed: {step_error}",
                            stack="".join(traceback.format_exception(step_error)),
                            screenshot=step_result.screenshot,
                        )
                        break
        except Exception as e:
            raise BrowserSessionError(f"Browser session failed for test {test.id}: {e}") from e

        completed_at = _now_ms()
        return TestResult(
            test_id=test.id,
            name=test.name,
            status=TestStatus.failed if error else TestStatus.passed,
            duration_ms=completed_at - started_at,
            started_at=started_at,
            completed_at=completed_at,
            error=error,
            steps=step_results,
        )

    async def _run_step(
        self,
        page,
        resolver: SmartLocator,
        interpreter: StepInterpreter,
        test: ManifestEntry,
        step: FlowStep,
        exec_log: TestExecutionLogger,
    ) -> tuple[StepResult, Optional[Exception]]:
        exec_log.step_started(step.step_number, step.action.value, step.target.primary)
        healed_before = len(resolver.healing_history)
        step_start = time.monotonic()

        try:
            await interpreter.execute(step)
            step_error = None
        except Exception as e:
            step_error = e
        duration_ms = int((time.monotonic() - step_start) * 1000)

        healed = resolver.healing_history[healed_before:]
        healed_locator = healed[-1].as_locator() if healed else None

        if step_error is None:
            exec_log.step_completed(step.step_number, step.action.value, duration_ms)
            return StepResult(
                step_number=step.step_number,
                action=step.action.value,
                status=StepStatus.passed,
                duration_ms=duration_ms,
                healed_locator=healed_locator,
            ), None

        exec_log.step_failed(step.step_number, step.action.value, str(step_error))
        screenshot = None
        if self.settings.screenshot_on_fail:
            screenshot = await self._failure_screenshot(page, test.id, step.step_number, exec_log)

        return StepResult(
            step_number=step.step_number,
            action=step.action.value,
            status=StepStatus.failed,
            duration_ms=duration_ms,
            error=str(step_error),
            screenshot=screenshot,
            healed_locator=healed_locator,
        ), step_error

    async def _failure_screenshot(
        self,
        page,
        test_id: str,
        step_number: int,
        exec_log: TestExecutionLogger,
    ) -> Optional[str]:
        path = screenshot_path(self.settings.output_dir, test_id, step_number)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            await page.screenshot(path=str(path), full_page=True)
        except Exception as e:
            self.log.warning("Failed to capture failure screenshot", test_id=test_id, step=step_number, error=str(e))
            return None
        exec_log.screenshot_taken(str(path))
        return str(path)

    def _value_overrides(self, flow: UserFlow) -> dict[str, str]:
        """Sign-in flows fill the configured credentials instead of generated ones."""
        if AUTH_TAG not in flow.tags:
            return {}
        return {
            "email": self.settings.test_user_email,
            "password": self.settings.test_user_password.get_secret_value(),
        }
