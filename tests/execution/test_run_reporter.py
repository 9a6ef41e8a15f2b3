"""Tests for run report generation."""

import json
import xml.etree.ElementTree as ET
from datetime import UTC, datetime, timedelta

import pytest

from flowscout.config import ReportFormat
from flowscout.execution.models import TestError, TestResult, TestRunSummary, TestStatus
from flowscout.execution.reporter import RunReporter, escape_xml


@pytest.fixture
def summary():
    started = datetime(2026, 1, 5, 12, 0, tzinfo=UTC)

    def _result(test_id, status, **kwargs):
        return TestResult(
            test_id=test_id,
            name=f"Test <{test_id}>",
            status=status,
            duration_ms=1500,
            started_at=0,
            completed_at=1500,
            **kwargs,
        )

    return TestRunSummary(
        run_id="run-1767614400000",
        app_name="Demo & Co",
        started_at=started,
        completed_at=started + timedelta(seconds=5),
        results=[
            _result("form-contact", TestStatus.passed),
            _result("auth-signin", TestStatus.flaky, retries=1),
            _result(
                "form-settings",
                TestStatus.failed,
                retries=2,
                error=TestError(
                    message='Step 2 (click) failed: Could not find element with locator: text="Save"',
                    stack="Traceback (most recent call last):\n  LocatorNotFoundError",
                ),
            ),
            _result("form-empty", TestStatus.skipped),
        ],
        coverage={"pages": 3, "forms": 2, "buttons": 2, "flows": 4},
    )


class TestEscapeXml:
    def test_escapes_specials(self):
        assert escape_xml(""""a" & <b> 'c'""") == "&quot;a&quot; &amp; &lt;b&gt; &apos;c&apos;"


class TestRunReporter:
    """Tests for RunReporter."""

    def test_json_always_written(self, tmp_path, summary):
        """Test that JSON is written even when another format is chosen."""
        paths = RunReporter(str(tmp_path), ReportFormat.JSON).save(summary)

        assert set(paths) == {"json"}
        assert paths["json"].name == "report-run-1767614400000.json"
        latest = json.loads((tmp_path / "report-latest.json").read_text())
        assert latest["summary"] == {"total": 4, "passed": 1, "failed": 1, "skipped": 1, "flaky": 1}
        assert latest["coverage"]["flows"] == 4

    def test_all_formats(self, tmp_path, summary):
        paths = RunReporter(str(tmp_path), ReportFormat.ALL).save(summary)
        assert set(paths) == {"json", "html", "junit"}
        assert all(path.exists() for path in paths.values())

    def test_html_escapes_content(self, tmp_path, summary):
        path = RunReporter(str(tmp_path), ReportFormat.HTML).generate_html(summary)
        content = path.read_text()
        assert "Demo &amp; Co Test Report" in content
        assert "Test &lt;form-contact&gt;" in content
        assert "FLAKY" in content

    def test_junit_structure(self, tmp_path, summary):
        """Test counts, failure bodies, skips and the flaky note."""
        path = RunReporter(str(tmp_path), ReportFormat.JUNIT).generate_junit(summary)

        root = ET.parse(path).getroot()
        suite = root.find("testsuite")
        assert root.get("name") == "Demo & Co"
        assert suite.get("tests") == "4"
        assert suite.get("failures") == "1"
        assert suite.get("skipped") == "1"
        assert suite.get("time") == "5.000"

        cases = {case.get("classname"): case for case in suite.findall("testcase")}
        assert cases["form-contact"].get("time") == "1.500"
        assert list(cases["form-contact"]) == []

        failure = cases["form-settings"].find("failure")
        assert failure.get("message").startswith("Step 2 (click) failed")
        assert "LocatorNotFoundError" in failure.text

        assert cases["form-empty"].find("skipped") is not None
        assert cases["auth-signin"].find("system-out").text == "Flaky: passed after 1 retry"

    def test_print_summary_does_not_raise(self, tmp_path, summary):
        RunReporter(str(tmp_path)).print_summary(summary)
