"""Tests for configuration module."""

import pytest


class TestSettings:
    """Tests for Settings class."""

    def test_settings_default_values(self, monkeypatch):
        """Test default values are set correctly."""
        from flowscout.config import CyclePolicy, ReportFormat, Settings

        for name in ("BASE_URL", "MAX_PAGES", "RETRY_FAILED_TESTS", "REPORT_FORMAT"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)
        assert settings.base_url == "http://localhost:8080"
        assert settings.max_depth == 3
        assert settings.max_pages == 50
        assert settings.exclude_routes == ["/logout", "/api/*"]
        assert settings.auth_routes == ["/dashboard/*"]
        assert settings.retry_failed_tests == 2
        assert settings.assertion_timeout_ms == 5000
        assert settings.dependency_cycle_policy == CyclePolicy.ERROR
        assert settings.report_format == ReportFormat.ALL

    def test_settings_loads_from_env(self, monkeypatch):
        """Test that settings loads from environment variables."""
        from flowscout.config import CyclePolicy, Settings

        monkeypatch.setenv("BASE_URL", "https://staging.example.com")
        monkeypatch.setenv("MAX_PAGES", "7")
        monkeypatch.setenv("DEPENDENCY_CYCLE_POLICY", "append")
        monkeypatch.setenv("EXCLUDE_ROUTES", '["/admin/*"]')

        settings = Settings(_env_file=None)
        assert settings.base_url == "https://staging.example.com"
        assert settings.max_pages == 7
        assert settings.dependency_cycle_policy == CyclePolicy.APPEND
        assert settings.exclude_routes == ["/admin/*"]

    def test_password_is_secret(self):
        """Test that the credential password is not exposed in repr."""
        from flowscout.config import Settings

        settings = Settings(_env_file=None, test_user_password="hunter22")
        assert "hunter22" not in repr(settings)
        assert settings.test_user_password.get_secret_value() == "hunter22"

    def test_invalid_report_format_rejected(self):
        """Test that unknown report formats fail validation."""
        from pydantic import ValidationError

        from flowscout.config import Settings

        with pytest.raises(ValidationError):
            Settings(_env_file=None, report_format="pdf")


class TestBrowserConfig:
    """Tests for projecting settings into browser options."""

    def test_from_settings(self, settings):
        """Test that browser fields are copied over."""
        from flowscout.tools.browser import BrowserConfig

        config = BrowserConfig.from_settings(settings.model_copy(update={"headless": False, "slow_mo": 50}))
        assert config.headless is False
        assert config.slow_mo == 50
        assert config.timeout_ms == settings.default_timeout_ms
        assert config.video_dir is None

    def test_video_dir_under_output(self, settings):
        """Test that recorded videos land under output_dir/videos."""
        from flowscout.tools.browser import BrowserConfig

        config = BrowserConfig.from_settings(
            settings.model_copy(update={"record_video": True}),
            video_subdir="form-signup",
        )
        assert config.video_dir.endswith("videos/form-signup")
