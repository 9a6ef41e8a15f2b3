"""Candidate user flows synthesized from crawled pages.

These are heuristics: one submit flow per form that has a submit button,
plus a fixed sign-in flow when an auth page was crawled.
"""

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
)
from flowscout.discovery.models import DiscoveredForm, DiscoveredPage

SIGN_IN_FLOW_ID = "auth-signin"


def navigate_locator(url: str, description: str) -> Locator:
    return Locator(
        primary=url,
        fallbacks=[],
        strategy=StrategyKind.css,
        confidence=1.0,
        description=description,
    )


def form_submit_flow(page: DiscoveredPage, form: DiscoveredForm) -> UserFlow:
    """navigate, fill every field with a templated value, click submit."""
    label = form.name or form.id
    steps = [
        FlowStep(
            step_number=1,
            action=ActionType.navigate,
            target=navigate_locator(page.url, "Navigate to page"),
            description=f"Navigate to {page.path}",
        )
    ]
    for index, field in enumerate(form.fields):
        kind = field.input_type.value if field.input_type else "text"
        steps.append(
            FlowStep(
                step_number=index + 2,
                action=ActionType.fill,
                target=field.locator,
                value=f"{{{{{kind}}}}}",
                description=f"Fill {field.name or field.placeholder or 'field'}",
            )
        )
    steps.append(
        FlowStep(
            step_number=len(form.fields) + 2,
            action=ActionType.click,
            target=form.submit_button.locator,
            description="Submit form",
            assertions=[Assertion(type=AssertionType.visible, expected=True)],
        )
    )

    preconditions = []
    if page.is_authenticated:
        preconditions.append(
            FlowPrecondition(
                type=PreconditionType.authenticated,
                value="primary",
                description="User must be logged in",
            )
        )

    return UserFlow(
        id=f"form-{form.id}",
        name=f"Submit {label} Form",
        description=f"Complete and submit the {form.name or 'form'} on {page.path}",
        steps=steps,
        preconditions=preconditions,
        expected_outcome="Form submitted successfully",
        priority=FlowPriority.high,
        tags=["form", page.path],
    )


def sign_in_flow(base_url: str) -> UserFlow:
    """Fixed email/password sign-in against ``{base_url}/auth``."""
    return UserFlow(
        id=SIGN_IN_FLOW_ID,
        name="User Sign In Flow",
        description="Complete user authentication",
        steps=[
            FlowStep(
                step_number=1,
                action=ActionType.navigate,
                target=navigate_locator(f"{base_url.rstrip('/')}/auth", "Auth page"),
                description="Navigate to auth page",
            ),
            FlowStep(
                step_number=2,
                action=ActionType.fill,
                target=Locator(
                    primary='input[type="email"]',
                    fallbacks=['input[name="email"]'],
                    strategy=StrategyKind.css,
                    confidence=0.9,
                    description="Email input",
                ),
                value="{{email}}",
                description="Enter email",
            ),
            FlowStep(
                step_number=3,
                action=ActionType.fill,
                target=Locator(
                    primary='input[type="password"]',
                    fallbacks=['input[name="password"]'],
                    strategy=StrategyKind.css,
                    confidence=0.9,
                    description="Password input",
                ),
                value="{{password}}",
                description="Enter password",
            ),
            FlowStep(
                step_number=4,
                action=ActionType.click,
                target=Locator(
                    primary='button[type="submit"]',
                    fallbacks=['button:has-text("Sign In")'],
                    strategy=StrategyKind.css,
                    confidence=0.8,
                    description="Submit button",
                ),
                description="Click sign in",
                assertions=[Assertion(type=AssertionType.url, expected="/dashboard", timeout_ms=10000)],
            ),
        ],
        expected_outcome="User is authenticated and redirected to dashboard",
        priority=FlowPriority.critical,
        tags=["auth", "signin"],
    )


def synthesize_flows(pages: list[DiscoveredPage], base_url: str) -> list[UserFlow]:
    flows = [
        form_submit_flow(page, form)
        for page in pages
        for form in page.forms
        if form.submit_button is not None
    ]
    if any("auth" in page.path for page in pages):
        flows.append(sign_in_flow(base_url))
    return flows
