"""Test execution: manifests, ordering, step interpretation, running and reporting."""

from flowscout.execution.manifest import (
    ManifestFormatError,
    ManifestNotFoundError,
    entries_from_flows,
    load_flows_from_report,
    load_manifest,
)
from flowscout.execution.models import (
    ManifestEntry,
    StepResult,
    StepStatus,
    TestError,
    TestResult,
    TestRunSummary,
    TestStatus,
)
from flowscout.execution.ordering import DependencyCycleError, sort_by_dependencies
from flowscout.execution.reporter import RunReporter, escape_xml
from flowscout.execution.runner import BrowserSessionError, TestRunner, compute_coverage
from flowscout.execution.steps import StepAssertionError, StepInterpreter

__all__ = [
    "ManifestFormatError",
    "ManifestNotFoundError",
    "entries_from_flows",
    "load_flows_from_report",
    "load_manifest",
    "ManifestEntry",
    "StepResult",
    "StepStatus",
    "TestError",
    "TestResult",
    "TestRunSummary",
    "TestStatus",
    "DependencyCycleError",
    "sort_by_dependencies",
    "RunReporter",
    "escape_xml",
    "BrowserSessionError",
    "TestRunner",
    "compute_coverage",
    "StepAssertionError",
    "StepInterpreter",
]
