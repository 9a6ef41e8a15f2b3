"""Run report generation.

Writes the machine-readable JSON summary (always, plus a latest copy),
and optionally a static HTML report and a JUnit XML report.
"""

import html
import json
from pathlib import Path

import structlog

from flowscout.config import ReportFormat
from flowscout.execution.models import TestRunSummary, TestStatus

logger = structlog.get_logger()


def escape_xml(value: str) -> str:
    """Escape XML special characters for attributes and text."""
    return (
        value.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


class RunReporter:
    """
    Generates run reports in multiple formats.

    Usage:
        reporter = RunReporter(output_dir="./test-results", report_format=ReportFormat.ALL)
        paths = reporter.save(summary)
        reporter.print_summary(summary)
    """

    def __init__(
        self,
        output_dir: str = "./test-results",
        report_format: ReportFormat = ReportFormat.ALL,
    ):
        self.output_dir = Path(output_dir)
        self.report_format = ReportFormat(report_format)
        self.log = logger.bind(component="reporter")

    def save(self, summary: TestRunSummary) -> dict[str, Path]:
        """Write every configured format and return the paths by format."""
        self.output_dir.mkdir(parents=True, exist_ok=True)

        paths = {"json": self.generate_json(summary)}
        if self.report_format in (ReportFormat.HTML, ReportFormat.ALL):
            paths["html"] = self.generate_html(summary)
        if self.report_format in (ReportFormat.JUNIT, ReportFormat.ALL):
            paths["junit"] = self.generate_junit(summary)

        self.log.info("Reports generated", output_dir=str(self.output_dir), formats=list(paths.keys()))
        return paths

    def generate_json(self, summary: TestRunSummary) -> Path:
        """Generate JSON report and its ``report-latest.json`` copy."""
        output_path = self.output_dir / f"report-{summary.run_id}.json"
        content = json.dumps(summary.to_dict(), indent=2)
        output_path.write_text(content)
        (self.output_dir / "report-latest.json").write_text(content)
        self.log.debug("Generated JSON report", path=str(output_path))
        return output_path

    def generate_html(self, summary: TestRunSummary) -> Path:
        """Generate HTML report."""
        output_path = self.output_dir / f"report-{summary.run_id}.html"
        counts = summary.summary

        test_rows = ""
        for r in summary.results:
            error_block = ""
            if r.error:
                error_block = f'<div class="test-error">{html.escape(r.error.message)}</div>'
            test_rows += f"""
        <div class="test">
          <div class="test-header">
            <span class="test-name">{html.escape(r.name)}</span>
            <span class="test-status {r.status.value}">{r.status.value.upper()}</span>
          </div>
          <div class="test-duration">{r.duration_ms}ms | {len(r.steps)} steps | {r.retries} retries</div>
          {error_block}
        </div>
        """

        report = f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Test Report - {html.escape(summary.app_name)}</title>
  <style>
    body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; margin: 0; padding: 20px; background: #f5f5f5; }}
    .container {{ max-width: 1200px; margin: 0 auto; }}
    .header {{ background: white; padding: 20px; border-radius: 8px; margin-bottom: 20px; }}
    .summary {{ display: grid; grid-template-columns: repeat(auto-fit, minmax(150px, 1fr)); gap: 15px; }}
    .stat {{ text-align: center; padding: 15px; background: #f8f9fa; border-radius: 6px; }}
    .stat .value {{ font-size: 2em; font-weight: bold; }}
    .stat.passed .value {{ color: #22c55e; }}
    .stat.failed .value {{ color: #ef4444; }}
    .stat.flaky .value {{ color: #f59e0b; }}
    .stat.skipped .value {{ color: #6b7280; }}
    .tests {{ background: white; border-radius: 8px; }}
    .test {{ padding: 15px 20px; border-bottom: 1px solid #eee; }}
    .test-header {{ display: flex; justify-content: space-between; }}
    .test-status {{ padding: 4px 12px; border-radius: 20px; font-size: 0.85em; }}
    .test-status.passed {{ background: #dcfce7; color: #166534; }}
    .test-status.failed {{ background: #fee2e2; color: #991b1b; }}
    .test-status.flaky {{ background: #fef3c7; color: #92400e; }}
    .test-status.skipped {{ background: #f3f4f6; color: #374151; }}
    .test-duration {{ color: #6b7280; font-size: 0.9em; margin-top: 5px; }}
    .test-error {{ background: #fef2f2; color: #991b1b; padding: 10px; margin-top: 10px; font-family: monospace; white-space: pre-wrap; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="header">
      <h1>{html.escape(summary.app_name)} Test Report</h1>
      <p>Run ID: {html.escape(summary.run_id)} | Duration: {summary.duration_ms / 1000:.2f}s</p>
      <div class="summary">
        <div class="stat"><div class="value">{counts["total"]}</div><div>Total</div></div>
        <div class="stat passed"><div class="value">{counts["passed"]}</div><div>Passed</div></div>
        <div class="stat failed"><div class="value">{counts["failed"]}</div><div>Failed</div></div>
        <div class="stat flaky"><div class="value">{counts["flaky"]}</div><div>Flaky</div></div>
        <div class="stat skipped"><div class="value">{counts["skipped"]}</div><div>Skipped</div></div>
      </div>
    </div>
    <div class="tests">
      {test_rows}
    </div>
  </div>
</body>
</html>
"""

        output_path.write_text(report)
        self.log.debug("Generated HTML report", path=str(output_path))
        return output_path

    def generate_junit(self, summary: TestRunSummary) -> Path:
        """Generate JUnit XML report for CI/CD integration."""
        output_path = self.output_dir / f"report-{summary.run_id}.xml"
        counts = summary.summary
        duration = summary.duration_ms / 1000

        test_cases = ""
        for r in summary.results:
            opening = (
                f'    <testcase name="{escape_xml(r.name)}" classname="{escape_xml(r.test_id)}" '
                f'time="{r.duration_ms / 1000:.3f}"'
            )
            if r.status == TestStatus.failed:
                message = r.error.message if r.error else "Unknown error"
                body = (r.error.stack if r.error else None) or message
                test_cases += f"""{opening}>
      <failure message="{escape_xml(message)}">{escape_xml(body)}</failure>
    </testcase>
"""
            elif r.status == TestStatus.skipped:
                test_cases += f"""{opening}>
      <skipped/>
    </testcase>
"""
            elif r.status == TestStatus.flaky:
                test_cases += f"""{opening}>
      <system-out>Flaky: passed after {r.retries} {"retry" if r.retries == 1 else "retries"}</system-out>
    </testcase>
"""
            else:
                test_cases += f"{opening}/>\n"

        xml = f"""<?xml version="1.0" encoding="UTF-8"?>
<testsuites name="{escape_xml(summary.app_name)}" tests="{counts["total"]}" failures="{counts["failed"]}" skipped="{counts["skipped"]}" time="{duration:.3f}">
  <testsuite name="{escape_xml(summary.run_id)}" tests="{counts["total"]}" failures="{counts["failed"]}" skipped="{counts["skipped"]}" time="{duration:.3f}">
{test_cases}  </testsuite>
</testsuites>
"""

        output_path.write_text(xml)
        self.log.debug("Generated JUnit report", path=str(output_path))
        return output_path

    def print_summary(self, summary: TestRunSummary) -> None:
        """Log the run totals and every failed test with its first error."""
        counts = summary.summary
        self.log.info(
            "Test run summary",
            run_id=summary.run_id,
            duration_s=round(summary.duration_ms / 1000, 2),
            total=counts["total"],
            passed=counts["passed"],
            failed=counts["failed"],
            flaky=counts["flaky"],
            skipped=counts["skipped"],
        )
        for result in summary.failed_results:
            self.log.error(
                "Failed test",
                test_id=result.test_id,
                name=result.name,
                error=result.error.message if result.error else None,
            )
