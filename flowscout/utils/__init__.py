"""Utility modules for flowscout.

Provides:
- Structured logging configuration
- Form test data generation and form filling
"""

from .logging import configure_logging, get_logger, log_operation, TestExecutionLogger
from .form_data import FormDataGenerator, FormFiller

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    "log_operation",
    "TestExecutionLogger",
    # Form data
    "FormDataGenerator",
    "FormFiller",
]
