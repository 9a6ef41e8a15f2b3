"""Interpretation of flow steps against a live page.

Every action except navigate, wait and screenshot goes through the
self-healing resolver. A step's own wait condition runs after its action,
then its assertions are evaluated.
"""

from pathlib import Path
from typing import Optional

import structlog
from playwright.async_api import Error as PlaywrightError

from flowscout.config import Settings
from flowscout.core.models import (
    ActionType,
    Assertion,
    AssertionType,
    FlowStep,
    Locator,
    WaitCondition,
    WaitType,
)
from flowscout.healing.locator import SmartLocator
from flowscout.utils.form_data import FormDataGenerator
from flowscout.utils.logging import TestExecutionLogger

logger = structlog.get_logger()

DEFAULT_WAIT_MS = 1000
DEFAULT_POST_ACTION_WAIT_MS = 500


class StepAssertionError(AssertionError):
    """Raised when a step assertion does not hold."""


def screenshot_path(output_dir: str, test_id: str, step_number: int) -> Path:
    return Path(output_dir) / "screenshots" / f"{test_id}-step-{step_number}.png"


class StepInterpreter:
    """
    Executes FlowSteps for one test attempt.

    Usage:
        interpreter = StepInterpreter(page, SmartLocator(page), generator, settings, test_id="form-signup")
        for step in flow.steps:
            await interpreter.execute(step)
    """

    def __init__(
        self,
        page,
        resolver: SmartLocator,
        generator: FormDataGenerator,
        settings: Settings,
        test_id: str,
        value_overrides: Optional[dict[str, str]] = None,
        exec_logger: Optional[TestExecutionLogger] = None,
    ):
        self.page = page
        self.resolver = resolver
        self.generator = generator
        self.settings = settings
        self.test_id = test_id
        self.value_overrides = value_overrides or {}
        self.exec_logger = exec_logger
        self.log = logger.bind(component="step_interpreter", test_id=test_id)

    def _url(self, target: str) -> str:
        if target.startswith("http"):
            return target
        return f"{self.settings.base_url.rstrip('/')}{target}"

    async def execute(self, step: FlowStep) -> None:
        """Run one step; any exception means the step failed."""
        action = step.action
        target = step.target

        if action == ActionType.navigate:
            await self.page.goto(self._url(target.primary), wait_until="networkidle")

        elif action == ActionType.click:
            await self.resolver.click(target)

        elif action == ActionType.fill:
            value = self.generator.resolve_template(step.value, self.value_overrides)
            await self.resolver.fill(target, value)

        elif action == ActionType.select:
            await self.resolver.select(target, step.value or "")

        elif action == ActionType.check:
            await self.resolver.check(target)

        elif action == ActionType.uncheck:
            await self.resolver.uncheck(target)

        elif action == ActionType.hover:
            await self.resolver.hover(target)

        elif action == ActionType.focus:
            element = await self.resolver.find(target)
            await element.focus()

        elif action == ActionType.blur:
            element = await self.resolver.find(target)
            await element.blur()

        elif action == ActionType.press:
            if not step.value:
                raise ValueError(f"Step {step.step_number}: press needs a key in its value")
            element = await self.resolver.find(target)
            await element.press(step.value)

        elif action == ActionType.scroll:
            element = await self.resolver.find(target)
            await element.scroll_into_view_if_needed()

        elif action == ActionType.upload:
            if not step.value:
                raise ValueError(f"Step {step.step_number}: upload needs a file path in its value")
            element = await self.resolver.find(target)
            await element.set_input_files(step.value)

        elif action == ActionType.wait:
            if step.wait_for:
                await self.wait_for(step.wait_for, target, DEFAULT_WAIT_MS)
            else:
                await self.page.wait_for_timeout(int(step.value) if step.value else DEFAULT_WAIT_MS)

        elif action == ActionType.assert_:
            await self.check_assertions(step)

        elif action == ActionType.screenshot:
            await self.take_screenshot(step.step_number)

        else:
            raise ValueError(f"Unknown action: {action}")

        if action != ActionType.wait and step.wait_for:
            await self.wait_for(step.wait_for, target, DEFAULT_POST_ACTION_WAIT_MS)

        if step.assertions and action != ActionType.assert_:
            await self.check_assertions(step)

        if step.screenshot and action != ActionType.screenshot:
            await self.take_screenshot(step.step_number)

    async def take_screenshot(self, step_number: int) -> str:
        """Full-page screenshot saved under the step's screenshot path."""
        path = screenshot_path(self.settings.output_dir, self.test_id, step_number)
        path.parent.mkdir(parents=True, exist_ok=True)
        await self.page.screenshot(path=str(path), full_page=True)
        if self.exec_logger:
            self.exec_logger.screenshot_taken(str(path))
        return str(path)

    async def wait_for(self, condition: WaitCondition, target: Locator, default_ms: int) -> None:
        if condition.type == WaitType.timeout:
            await self.page.wait_for_timeout(int(condition.value or default_ms))
        elif condition.type == WaitType.networkidle:
            await self.page.wait_for_load_state("networkidle")
        elif condition.type == WaitType.navigation:
            await self.page.wait_for_load_state("load")
        elif condition.type == WaitType.selector:
            await self.page.wait_for_selector(str(condition.value or target.primary))
        elif condition.type == WaitType.visible:
            await self.resolver.find(target)
        elif condition.type == WaitType.hidden:
            await self.page.locator(target.primary).first.wait_for(state="hidden")

    # ==========================================================================
    # Assertions
    # ==========================================================================

    async def check_assertions(self, step: FlowStep) -> None:
        for assertion in step.assertions:
            await self.check_assertion(assertion, step.target)

    async def check_assertion(self, assertion: Assertion, default_target: Locator) -> None:
        """
        Evaluate one assertion.

        Text, value, url and title assertions use substring semantics.

        Raises:
            StepAssertionError: If the assertion does not hold
            LocatorNotFoundError: If the assertion target cannot be resolved
        """
        timeout = assertion.timeout_ms or self.settings.assertion_timeout_ms
        target = assertion.target or default_target
        expected = assertion.expected
        kind = assertion.type

        try:
            if kind == AssertionType.visible:
                element = await self.resolver.find(target, timeout)
                if not await element.is_visible():
                    raise StepAssertionError(f"Element not visible: {target.primary}")

            elif kind == AssertionType.hidden:
                try:
                    await self.page.locator(target.primary).first.wait_for(state="hidden", timeout=timeout)
                except PlaywrightError:
                    raise StepAssertionError(f"Element should be hidden: {target.primary}") from None

            elif kind == AssertionType.text:
                element = await self.resolver.find(target, timeout)
                text = await element.text_content() or ""
                if str(expected) not in text:
                    raise StepAssertionError(f'Expected text "{expected}" not found. Got: "{text}"')

            elif kind == AssertionType.value:
                element = await self.resolver.find(target, timeout)
                value = await element.input_value()
                if str(expected) not in value:
                    raise StepAssertionError(f'Expected value "{expected}". Got: "{value}"')

            elif kind == AssertionType.attribute:
                name, _, wanted = str(expected).partition("=")
                element = await self.resolver.find(target, timeout)
                actual = await element.get_attribute(name)
                if actual != wanted:
                    raise StepAssertionError(f'Expected attribute {name}="{wanted}". Got: "{actual}"')

            elif kind == AssertionType.url:
                await self._check_url(str(expected), timeout)

            elif kind == AssertionType.title:
                title = await self.page.title()
                if str(expected) not in title:
                    raise StepAssertionError(f'Expected title to contain "{expected}". Got: "{title}"')

            elif kind == AssertionType.count:
                count = await self.page.locator(target.primary).count()
                if count != int(expected):
                    raise StepAssertionError(f"Expected {expected} elements matching {target.primary}. Got: {count}")

            elif kind == AssertionType.enabled:
                element = await self.resolver.find(target, timeout)
                if not await element.is_enabled():
                    raise StepAssertionError(f"Element not enabled: {target.primary}")

            elif kind == AssertionType.disabled:
                element = await self.resolver.find(target, timeout)
                if await element.is_enabled():
                    raise StepAssertionError(f"Element should be disabled: {target.primary}")

        except StepAssertionError as e:
            self._log_assertion(kind, passed=False, expected=expected, error=str(e))
            raise

        self._log_assertion(kind, passed=True, expected=expected)

    async def _check_url(self, expected: str, timeout: int) -> None:
        """URL must contain ``expected``; waits for a pending redirect first."""
        if expected in self.page.url:
            return
        try:
            await self.page.wait_for_url(lambda url: expected in url, timeout=timeout)
        except PlaywrightError:
            pass
        if expected not in self.page.url:
            raise StepAssertionError(f'Expected URL to contain "{expected}". Got: "{self.page.url}"')

    def _log_assertion(self, kind: AssertionType, passed: bool, **details) -> None:
        if self.exec_logger:
            self.exec_logger.assertion_checked(kind.value, passed, details)
