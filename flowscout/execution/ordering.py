"""Dependency ordering of manifest entries.

A dependency is a plain string. It is satisfied once some already
scheduled test has the string inside its id or among its flow tags.
"""

import structlog

from flowscout.config import CyclePolicy
from flowscout.execution.models import ManifestEntry

logger = structlog.get_logger()


class DependencyCycleError(Exception):
    """Raised when the remaining tests only depend on each other."""

    def __init__(self, blocked: list[ManifestEntry]):
        self.blocked = blocked
        details = ", ".join(f"{t.id} -> {t.dependencies}" for t in blocked)
        super().__init__(f"Circular test dependencies: {details}")


def provides(test: ManifestEntry, dependency: str) -> bool:
    return dependency in test.id or dependency in test.flow.tags


def _is_ready(test: ManifestEntry, scheduled: list[ManifestEntry]) -> bool:
    return all(any(provides(s, dep) for s in scheduled) for dep in test.dependencies)


def sort_by_dependencies(
    tests: list[ManifestEntry],
    policy: CyclePolicy = CyclePolicy.ERROR,
) -> list[ManifestEntry]:
    """
    Order tests so every test runs after the tests it depends on.

    Among ready tests the original order is kept. When nothing is ready,
    tests depending on names no other test provides are appended in
    original order; a remaining true cycle raises under ``CyclePolicy.ERROR`` and
    is appended in original order under ``CyclePolicy.APPEND``.

    Raises:
        DependencyCycleError: On a cycle under ``CyclePolicy.ERROR``
    """
    scheduled: list[ManifestEntry] = []
    pending = list(tests)

    while pending:
        ready = next((t for t in pending if _is_ready(t, scheduled)), None)
        if ready is not None:
            scheduled.append(ready)
            pending.remove(ready)
            continue

        orphans = [
            t for t in pending
            if any(
                not any(provides(other, dep) for other in tests if other is not t)
                for dep in t.dependencies
            )
        ]
        if orphans:
            logger.warning(
                "Tests depend on names no other test provides, running them unordered",
                tests=[t.id for t in orphans],
            )
            scheduled.extend(orphans)
            pending = [t for t in pending if t not in orphans]
            continue

        if policy == CyclePolicy.ERROR:
            raise DependencyCycleError(pending)

        logger.warning(
            "Circular test dependencies, running remaining tests in original order",
            tests=[t.id for t in pending],
        )
        scheduled.extend(pending)
        break

    return scheduled
