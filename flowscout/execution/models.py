"""
Data models for test execution.

A run executes ManifestEntries (each wrapping one UserFlow) and produces
one TestResult per entry, aggregated into a TestRunSummary.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from flowscout.core.models import Locator, UserFlow


class TestStatus(str, Enum):
    """Final status of a test.

    ``flaky`` means at least one attempt failed before an attempt passed.
    """
    __test__ = False

    passed = "passed"
    failed = "failed"
    skipped = "skipped"
    flaky = "flaky"


class StepStatus(str, Enum):
    """Status of one executed step."""
    passed = "passed"
    failed = "failed"
    skipped = "skipped"


@dataclass
class ManifestEntry:
    """One runnable test: a flow plus its scheduling metadata."""
    id: str
    name: str
    flow: UserFlow
    file_path: Optional[str] = None
    dependencies: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    description: str = ""
    estimated_duration: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "flow": self.flow.to_dict(),
            "file_path": self.file_path,
            "dependencies": list(self.dependencies),
            "tags": list(self.tags),
            "description": self.description,
            "estimated_duration": self.estimated_duration,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ManifestEntry":
        """Create from dictionary representation (``filePath`` is accepted too)."""
        flow = UserFlow.from_dict(data["flow"])
        return cls(
            id=data.get("id", flow.id),
            name=data.get("name", flow.name),
            flow=flow,
            file_path=data.get("file_path", data.get("filePath")),
            dependencies=list(data.get("dependencies") or []),
            tags=list(data.get("tags") or flow.tags),
            description=data.get("description", flow.description),
            estimated_duration=data.get("estimated_duration", data.get("estimatedDuration")),
        )


@dataclass
class StepResult:
    """Result from executing a single flow step."""
    step_number: int
    action: str
    status: StepStatus
    duration_ms: int
    error: Optional[str] = None
    screenshot: Optional[str] = None
    healed_locator: Optional[Locator] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_number": self.step_number,
            "action": self.action,
            "status": self.status.value,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "screenshot": self.screenshot,
            "healed_locator": self.healed_locator.to_dict() if self.healed_locator else None,
        }


@dataclass
class TestError:
    """Why a test attempt failed."""
    __test__ = False

    message: str
    stack: Optional[str] = None
    screenshot: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "stack": self.stack,
            "screenshot": self.screenshot,
        }


@dataclass
class TestResult:
    """Final result of one test after retries. Times are epoch milliseconds."""
    __test__ = False

    test_id: str
    name: str
    status: TestStatus
    duration_ms: int
    started_at: int
    completed_at: int
    error: Optional[TestError] = None
    steps: list[StepResult] = field(default_factory=list)
    retries: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "test_id": self.test_id,
            "name": self.name,
            "status": self.status.value,
            "duration_ms": self.duration_ms,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "error": self.error.to_dict() if self.error else None,
            "steps": [s.to_dict() for s in self.steps],
            "retries": self.retries,
        }


@dataclass
class TestRunSummary:
    """Aggregate of one run: per-test results, status tallies and coverage."""
    __test__ = False

    run_id: str
    app_name: str
    started_at: datetime
    completed_at: datetime
    results: list[TestResult] = field(default_factory=list)
    coverage: dict[str, int] = field(default_factory=dict)

    @property
    def duration_ms(self) -> int:
        return int((self.completed_at - self.started_at).total_seconds() * 1000)

    @property
    def summary(self) -> dict[str, int]:
        """Tallies over final per-test statuses."""
        counts = {status.value: 0 for status in TestStatus}
        for result in self.results:
            counts[result.status.value] += 1
        return {"total": len(self.results), **counts}

    @property
    def failed_results(self) -> list[TestResult]:
        return [r for r in self.results if r.status == TestStatus.failed]

    @property
    def success(self) -> bool:
        return not self.failed_results

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "app_name": self.app_name,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "duration_ms": self.duration_ms,
            "results": [r.to_dict() for r in self.results],
            "summary": self.summary,
            "coverage": dict(self.coverage),
        }
