"""Structured logging for flowscout.

Provides:
- The structlog processor chain used by the CLI
- Operation scopes that tag every log line of a crawl or test run
- Per-test execution logging
"""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Any, Optional

import structlog

# Keys whose values never reach a log line (credentials are filled into sign-in forms).
MASKED_KEYS = frozenset({"password", "test_user_password", "credentials"})


def mask_credentials(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Replace credential values with a fixed mask."""
    for key in MASKED_KEYS.intersection(event_dict):
        event_dict[key] = "***"
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    include_timestamp: bool = True,
) -> None:
    """Configure structlog and the stdlib root logger.

    Console output is colored only on a terminal. Playwright's and asyncio's
    own loggers are held at WARNING so a DEBUG crawl stays readable.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Render one JSON object per line (for CI)
        include_timestamp: Add an ISO timestamp to each line
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )
    for noisy in ("asyncio", "playwright"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        mask_credentials,
    ]
    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors += [
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None, **context) -> structlog.BoundLogger:
    """Get a logger, optionally with bound context."""
    logger = structlog.get_logger(name)
    if context:
        logger = logger.bind(**context)
    return logger


@contextmanager
def log_operation(
    operation: str,
    logger: Optional[structlog.BoundLogger] = None,
    **scope,
):
    """Log the start and end of a crawl or test run.

    ``scope`` (for example ``run_id`` or ``base_url``) is bound to the
    structlog context for the duration of the block, so every component
    logging inside it carries those fields too. The yielded dict collects
    result fields for the completion line.

    Example:
        with log_operation("discovery", logger=self.log, base_url=url) as op:
            await self.crawl(url, authenticated=False)
            op["pages"] = len(self._pages)
    """
    log = (logger or get_logger()).bind(operation=operation)
    structlog.contextvars.bind_contextvars(**scope)
    started = time.monotonic()

    log.info(f"{operation} started")
    result: dict[str, Any] = {}

    try:
        yield result
    except Exception as e:
        log.error(
            f"{operation} failed",
            error=str(e),
            error_type=type(e).__name__,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        raise
    else:
        log.info(
            f"{operation} completed",
            duration_ms=int((time.monotonic() - started) * 1000),
            **result,
        )
    finally:
        structlog.contextvars.unbind_contextvars(*scope)


class TestExecutionLogger:
    """Logger specialized for flow execution tracking.

    Binds the test id and name once so every step, assertion and
    screenshot record can be correlated with its test.
    """

    __test__ = False

    def __init__(self, test_id: str, test_name: str):
        """Initialize test logger.

        Args:
            test_id: Unique test identifier
            test_name: Human-readable test name
        """
        self.log = get_logger().bind(
            test_id=test_id,
            test_name=test_name,
        )
        self.step_count = 0
        self.assertion_count = 0

    def test_started(self, attempt: int, metadata: Optional[dict] = None) -> None:
        """Log test attempt start."""
        self.step_count = 0
        self.assertion_count = 0
        self.log.info("Test started", attempt=attempt, **(metadata or {}))

    def test_completed(self, status: str, duration_ms: int, retries: int = 0) -> None:
        """Log test completion."""
        self.log.info(
            "Test completed",
            status=status,
            duration_ms=duration_ms,
            retries=retries,
            steps_executed=self.step_count,
            assertions_checked=self.assertion_count,
        )

    def step_started(self, step_number: int, action: str, target: Optional[str] = None) -> None:
        """Log step start."""
        self.step_count += 1
        self.log.debug(
            "Step started",
            step_number=step_number,
            action=action,
            target=target,
        )

    def step_completed(self, step_number: int, action: str, duration_ms: int) -> None:
        """Log step completion."""
        self.log.debug(
            "Step completed",
            step_number=step_number,
            action=action,
            duration_ms=duration_ms,
        )

    def step_failed(self, step_number: int, action: str, error: str) -> None:
        """Log step failure."""
        self.log.error(
            "Step failed",
            step_number=step_number,
            action=action,
            error=error,
        )

    def assertion_checked(self, assertion_type: str, passed: bool, details: Optional[dict] = None) -> None:
        """Log assertion check."""
        self.assertion_count += 1
        level = self.log.debug if passed else self.log.warning
        level(
            "Assertion checked",
            assertion_type=assertion_type,
            passed=passed,
            **(details or {}),
        )

    def screenshot_taken(self, path: Optional[str] = None) -> None:
        """Log screenshot capture."""
        self.log.debug("Screenshot taken", path=path)

    def warning(self, message: str, **context) -> None:
        """Log a warning."""
        self.log.warning(message, **context)
