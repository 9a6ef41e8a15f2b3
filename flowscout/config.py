"""Configuration management for flowscout."""

from enum import Enum

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ReportFormat(str, Enum):
    """Rendered report formats (JSON is always written)."""
    JSON = "json"
    HTML = "html"
    JUNIT = "junit"
    ALL = "all"


class CyclePolicy(str, Enum):
    """What to do when declared test dependencies form a cycle."""
    ERROR = "error"  # Abort the run before any test executes
    APPEND = "append"  # Run the blocked tests in their original order


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Target application
    app_name: str = Field("Web Application", description="Application name used in reports")
    base_url: str = Field("http://localhost:8080", description="Root URL of the application under test")
    test_user_email: str = Field("test@example.com", description="Email for the authentication flow")
    test_user_password: SecretStr = Field(
        SecretStr("TestPassword123!"),
        description="Password for the authentication flow"
    )

    # Discovery
    max_depth: int = Field(3, description="Maximum link depth to crawl")
    max_pages: int = Field(50, description="Maximum number of distinct pages to crawl")
    exclude_routes: list[str] = Field(
        default_factory=lambda: ["/logout", "/api/*"],
        description="Path globs that are never crawled"
    )
    auth_routes: list[str] = Field(
        default_factory=lambda: ["/dashboard/*"],
        description="Routes crawled after a successful login"
    )
    settle_delay_ms: int = Field(500, description="Wait after network idle for client rendering")
    capture_page_screenshots: bool = Field(False, description="Save a screenshot of every crawled page")

    # Browser
    headless: bool = Field(True, description="Run the browser without a window")
    slow_mo: int = Field(0, description="Milliseconds between browser operations")
    viewport_width: int = Field(1920, description="Viewport width in pixels")
    viewport_height: int = Field(1080, description="Viewport height in pixels")
    record_video: bool = Field(False, description="Record a video of every browser session")
    screenshot_on_fail: bool = Field(True, description="Capture a screenshot when a step fails")

    # Timeouts
    default_timeout_ms: int = Field(30000, description="Default page timeout")
    navigation_timeout_ms: int = Field(30000, description="Default navigation timeout")
    action_timeout_ms: int = Field(10000, description="Budget for resolving one locator")
    assertion_timeout_ms: int = Field(5000, description="Default timeout for assertions")

    # Execution Settings
    retry_failed_tests: int = Field(2, description="Number of retries for failed tests")
    self_heal_enabled: bool = Field(True, description="Enable heuristic locator healing")
    dependency_cycle_policy: CyclePolicy = Field(
        CyclePolicy.ERROR,
        description="Behavior when test dependencies form a cycle"
    )

    # Paths
    output_dir: str = Field("./test-results", description="Directory for reports and artifacts")
    manifest_path: str = Field(
        "./test-results/generated/test-manifest.json",
        description="Test manifest written by the generator"
    )
    report_format: ReportFormat = Field(ReportFormat.ALL, description="Rendered report formats")

    # Form data
    form_data_defaults: dict[str, str] = Field(
        default_factory=dict,
        description="Fixed values per field kind, e.g. {'first-name': 'Ada'}"
    )
    card_number: str = Field("4242424242424242", description="Test credit card number")
    card_cvc: str = Field("123", description="Test card security code")
    card_expiry: str = Field("12/34", description="Test card expiry")

    # Logging
    log_level: str = Field("INFO", description="Log level")
    log_json: bool = Field(False, description="Render logs as JSON")


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
