"""Main entry point for flowscout."""

import argparse
import asyncio
import sys

import structlog

from .config import ReportFormat, Settings, get_settings
from .discovery.crawler import DiscoveryCrawler
from .discovery.models import DiscoveryReport
from .execution.manifest import ManifestFormatError, ManifestNotFoundError, entries_from_flows
from .execution.models import TestRunSummary
from .execution.ordering import DependencyCycleError
from .execution.runner import BrowserSessionError, TestRunner
from .utils.logging import configure_logging

logger = structlog.get_logger()

# Raised before or between tests; they stop the command with exit code 1.
FATAL_ERRORS = (
    ManifestNotFoundError,
    ManifestFormatError,
    DependencyCycleError,
    BrowserSessionError,
)


def print_discovery_summary(report: DiscoveryReport) -> None:
    totals = report.total_elements
    print("\n" + "=" * 50)
    print("DISCOVERY SUMMARY")
    print("=" * 50)
    print(f"App: {report.app_name} ({report.base_url})")
    print(f"Pages: {len(report.pages)}")
    print(f"Forms: {totals['forms']}")
    print(f"Buttons: {totals['buttons']}")
    print(f"Links: {totals['links']}")
    print(f"Inputs: {totals['inputs']}")
    print(f"Suggested flows: {len(report.suggested_flows)}")
    print(f"Errors: {len(report.errors)}")
    print(f"Duration: {report.duration_ms / 1000:.2f}s")
    print("=" * 50 + "\n")


def print_run_summary(summary: TestRunSummary) -> None:
    counts = summary.summary
    print("\n" + "=" * 50)
    print("TEST RUN SUMMARY")
    print("=" * 50)
    print(f"Run ID: {summary.run_id}")
    print(f"Duration: {summary.duration_ms / 1000:.2f}s")
    print(f"Total:   {counts['total']}")
    print(f"Passed:  {counts['passed']} ✅")
    print(f"Failed:  {counts['failed']} ❌")
    print(f"Flaky:   {counts['flaky']} ⚠️")
    print(f"Skipped: {counts['skipped']} ⏭️")
    print("=" * 50)
    for result in summary.failed_results:
        print(f"  • {result.name}")
        if result.error:
            print(f"    {result.error.message}")
    print()


async def discover(settings: Settings) -> DiscoveryReport:
    """Crawl the application and save the discovery report."""
    report = await DiscoveryCrawler(settings).discover()
    print_discovery_summary(report)
    return report


async def run(settings: Settings, manifest: str | None = None, report: str | None = None) -> TestRunSummary:
    """Run tests from a manifest, or the suggested flows of a discovery report."""
    runner = TestRunner(settings)
    if report:
        summary = await runner.run_from_report(report)
    else:
        summary = await runner.run_all(manifest)
    print_run_summary(summary)
    return summary


async def full(settings: Settings) -> tuple[DiscoveryReport, TestRunSummary]:
    """Discover, then run the freshly suggested flows."""
    report = await discover(settings)
    summary = await TestRunner(settings).run_tests(entries_from_flows(report.suggested_flows))
    print_run_summary(summary)
    return report, summary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flowscout",
        description="Discover user flows in a web application and run them with self-healing locators",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: LOG_LEVEL or INFO)"
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Render logs as JSON"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    discover_parser = subparsers.add_parser("discover", help="Crawl the application")
    discover_parser.add_argument("--base-url", "-u", help="Application URL (default: BASE_URL)")
    discover_parser.add_argument("--max-pages", type=int, help="Maximum pages to crawl")
    discover_parser.add_argument("--max-depth", type=int, help="Maximum link depth")
    discover_parser.add_argument("--no-headless", action="store_true", help="Show the browser window")
    discover_parser.add_argument("--slow", action="store_true", help="Slow down browser operations")

    run_parser = subparsers.add_parser("run", help="Run generated tests")
    source = run_parser.add_mutually_exclusive_group()
    source.add_argument("--manifest", "-m", help="Test manifest (default: MANIFEST_PATH)")
    source.add_argument("--report", "-r", help="Run the suggested flows of a discovery report")
    run_parser.add_argument("--retries", type=int, help="Retries per failed test")
    run_parser.add_argument(
        "--format",
        choices=[f.value for f in ReportFormat],
        help="Report format (JSON is always written)"
    )

    full_parser = subparsers.add_parser("full", help="Discover, then run the suggested flows")
    full_parser.add_argument("--base-url", "-u", help="Application URL (default: BASE_URL)")

    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Settings with command line options applied on top."""
    overrides = {}
    if getattr(args, "base_url", None):
        overrides["base_url"] = args.base_url
    if getattr(args, "max_pages", None) is not None:
        overrides["max_pages"] = args.max_pages
    if getattr(args, "max_depth", None) is not None:
        overrides["max_depth"] = args.max_depth
    if getattr(args, "no_headless", False):
        overrides["headless"] = False
    if getattr(args, "slow", False):
        overrides["slow_mo"] = 100
    if getattr(args, "retries", None) is not None:
        overrides["retry_failed_tests"] = args.retries
    if getattr(args, "format", None):
        overrides["report_format"] = ReportFormat(args.format)
    return settings.model_copy(update=overrides) if overrides else settings


def main(argv: list[str] | None = None) -> int:
    """Command-line interface."""
    args = build_parser().parse_args(argv)
    settings = apply_overrides(get_settings(), args)

    configure_logging(
        level=args.log_level or settings.log_level,
        json_format=args.json_logs or settings.log_json,
    )

    try:
        if args.command == "discover":
            report = asyncio.run(discover(settings))
            return 1 if report.errors else 0

        if args.command == "run":
            summary = asyncio.run(run(settings, manifest=args.manifest, report=args.report))
            return 0 if summary.success else 1

        report, summary = asyncio.run(full(settings))
        return 0 if summary.success and not report.errors else 1

    except FATAL_ERRORS as e:
        logger.error(
            "Run aborted before completion",
            command=args.command,
            error=str(e),
            error_type=type(e).__name__,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
