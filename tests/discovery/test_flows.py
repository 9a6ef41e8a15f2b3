"""Tests for flow synthesis from discovered pages."""

from flowscout.core.models import ActionType, AssertionType, Locator, PreconditionType
from flowscout.discovery.flows import SIGN_IN_FLOW_ID, synthesize_flows
from flowscout.discovery.models import (
    DiscoveredElement,
    DiscoveredForm,
    DiscoveredPage,
    ElementType,
    InputFieldType,
)

BASE_URL = "http://localhost:8080"


def make_field(name, input_type=None):
    return DiscoveredElement(
        id=name,
        type=ElementType.input,
        locator=Locator(primary=f"#{name}", confidence=0.9),
        name=name,
        input_type=input_type,
    )


def make_form(form_id="contact", fields=None, with_submit=True):
    submit = None
    if with_submit:
        submit = DiscoveredElement(
            id="send",
            type=ElementType.button,
            locator=Locator(primary='text="Send"', confidence=0.7, description="Send"),
            text="Send",
        )
    return DiscoveredForm(
        id=form_id,
        locator=Locator(primary=f"#{form_id}"),
        fields=fields if fields is not None else [],
        submit_button=submit,
    )


class TestFormSubmitFlow:
    """Tests for per-form flows."""

    def test_steps_follow_fields(self):
        """Test navigate, one templated fill per field, then submit."""
        form = make_form(fields=[make_field("email", InputFieldType.email), make_field("notes")])
        page = DiscoveredPage(url=f"{BASE_URL}/contact", path="/contact", forms=[form])

        flows = synthesize_flows([page], BASE_URL)

        assert len(flows) == 1
        flow = flows[0]
        assert flow.id == "form-contact"
        assert flow.tags == ["form", "/contact"]
        assert [s.action for s in flow.steps] == [
            ActionType.navigate,
            ActionType.fill,
            ActionType.fill,
            ActionType.click,
        ]
        assert [s.step_number for s in flow.steps] == [1, 2, 3, 4]
        assert flow.steps[0].target.primary == f"{BASE_URL}/contact"
        assert flow.steps[1].value == "{{email}}"
        assert flow.steps[2].value == "{{text}}"
        assert flow.steps[3].target.primary == 'text="Send"'
        assert flow.steps[3].assertions[0].type == AssertionType.visible
        assert flow.preconditions == []

    def test_form_without_submit_is_skipped(self):
        page = DiscoveredPage(url=BASE_URL, path="/", forms=[make_form(with_submit=False)])
        assert synthesize_flows([page], BASE_URL) == []

    def test_authenticated_page_adds_precondition(self):
        page = DiscoveredPage(
            url=f"{BASE_URL}/dashboard",
            path="/dashboard",
            is_authenticated=True,
            forms=[make_form(form_id="settings")],
        )

        flow = synthesize_flows([page], BASE_URL)[0]

        assert flow.preconditions[0].type == PreconditionType.authenticated
        assert flow.requires_authentication is True


class TestSignInFlow:
    """Tests for the fixed sign-in flow."""

    def test_added_when_auth_page_crawled(self):
        pages = [
            DiscoveredPage(url=BASE_URL, path="/"),
            DiscoveredPage(url=f"{BASE_URL}/auth", path="/auth"),
        ]

        flows = synthesize_flows(pages, BASE_URL + "/")

        assert [f.id for f in flows] == [SIGN_IN_FLOW_ID]
        flow = flows[0]
        assert flow.tags == ["auth", "signin"]
        assert flow.steps[0].target.primary == f"{BASE_URL}/auth"
        assert [s.value for s in flow.steps[1:3]] == ["{{email}}", "{{password}}"]
        assert flow.steps[3].assertions[0].expected == "/dashboard"

    def test_not_added_without_auth_page(self):
        assert synthesize_flows([DiscoveredPage(url=BASE_URL, path="/")], BASE_URL) == []
