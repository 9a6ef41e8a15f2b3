"""Browser tooling."""

from .browser import (
    BrowserConfig,
    BrowserManager,
    create_browser_context,
)

__all__ = [
    "BrowserConfig",
    "BrowserManager",
    "create_browser_context",
]
