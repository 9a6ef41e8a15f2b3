"""Loading runnable tests from a test manifest or a discovery report."""

import json
from pathlib import Path
from typing import Any

import structlog

from flowscout.core.models import UserFlow
from flowscout.execution.models import ManifestEntry

logger = structlog.get_logger()

AUTH_DEPENDENCY = "auth"


class ManifestNotFoundError(FileNotFoundError):
    """Raised when a manifest or discovery report path does not exist."""


class ManifestFormatError(ValueError):
    """Raised when a manifest or discovery report cannot be parsed."""


def _read_json(path: str | Path, kind: str) -> dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise ManifestNotFoundError(f"{kind} not found: {path}")
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise ManifestFormatError(f"{kind} is not valid JSON: {path}: {e}") from e
    if not isinstance(data, dict):
        raise ManifestFormatError(f"{kind} must be a JSON object: {path}")
    return data


def load_manifest(path: str | Path) -> list[ManifestEntry]:
    """
    Load the tests listed in a manifest file.

    Args:
        path: Manifest JSON with a ``tests`` list

    Returns:
        Manifest entries in file order

    Raises:
        ManifestNotFoundError: If the file does not exist
        ManifestFormatError: If the file is not a valid manifest
    """
    data = _read_json(path, "Test manifest")
    tests = data.get("tests")
    if not isinstance(tests, list):
        raise ManifestFormatError(f"Test manifest has no 'tests' list: {path}")

    try:
        entries = [ManifestEntry.from_dict(entry) for entry in tests]
    except (KeyError, TypeError, ValueError) as e:
        raise ManifestFormatError(f"Invalid test entry in {path}: {e}") from e

    logger.info("Loaded test manifest", path=str(path), tests=len(entries))
    return entries


def entries_from_flows(flows: list[UserFlow]) -> list[ManifestEntry]:
    """Wrap flows as manifest entries; authenticated flows depend on ``auth``."""
    return [
        ManifestEntry(
            id=flow.id,
            name=flow.name,
            flow=flow,
            dependencies=[AUTH_DEPENDENCY] if flow.requires_authentication else [],
            tags=list(flow.tags),
            description=flow.description,
        )
        for flow in flows
    ]


def load_flows_from_report(path: str | Path) -> list[ManifestEntry]:
    """Manifest entries for the suggested flows of a saved discovery report."""
    data = _read_json(path, "Discovery report")
    flows = data.get("suggested_flows")
    if not isinstance(flows, list):
        raise ManifestFormatError(f"Discovery report has no 'suggested_flows' list: {path}")

    try:
        entries = entries_from_flows([UserFlow.from_dict(flow) for flow in flows])
    except (KeyError, TypeError, ValueError) as e:
        raise ManifestFormatError(f"Invalid flow in {path}: {e}") from e

    logger.info("Loaded flows from discovery report", path=str(path), tests=len(entries))
    return entries
