"""Unit tests for configuration and logging setup."""

import pytest
import structlog
from pydantic import ValidationError

from rolekit.config import Settings, get_settings
from rolekit.core.constants import DEFAULT_CACHE_KEY_PREFIX, DEFAULT_CACHE_TTL_SECONDS
from rolekit.core.logging import configure_logging


pytestmark = pytest.mark.unit


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self, monkeypatch):
        """Defaults match the documented configuration surface."""
        for name in ("ROLEKIT_CACHE_ENABLED", "ROLEKIT_CACHE_TTL_SECONDS", "ROLEKIT_ENVIRONMENT"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.cache_enabled is True
        assert settings.cache_ttl_seconds == DEFAULT_CACHE_TTL_SECONDS == 86400
        assert settings.cache_key_prefix == DEFAULT_CACHE_KEY_PREFIX
        assert settings.strict_references is False
        assert settings.table_names.user_role == "user_role"
        assert not settings.is_production

    def test_environment_variables(self, monkeypatch):
        """ROLEKIT_ variables override defaults."""
        monkeypatch.setenv("ROLEKIT_CACHE_TTL_SECONDS", "120")
        monkeypatch.setenv("ROLEKIT_STRICT_REFERENCES", "true")
        monkeypatch.setenv("ROLEKIT_TABLE_NAMES__ROLES", "acl_roles")

        settings = Settings(_env_file=None)

        assert settings.cache_ttl_seconds == 120
        assert settings.strict_references is True
        assert settings.table_names.roles == "acl_roles"

    @pytest.mark.parametrize("field", ["cache_ttl_seconds", "cache_eviction_interval_seconds"])
    @pytest.mark.parametrize("value", [0, -5])
    def test_durations_must_be_positive(self, field, value):
        """Zero or negative durations are rejected."""
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})

    def test_log_level_normalized(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_production(self):
        assert Settings(_env_file=None, environment="production").is_production

    def test_get_settings_cached(self):
        """get_settings returns one shared instance."""
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()


class TestConfigureLogging:
    """Tests for structlog configuration."""

    @pytest.fixture(autouse=True)
    def reset_structlog(self):
        yield
        structlog.reset_defaults()

    def test_console_renderer_outside_production(self):
        configure_logging(Settings(_env_file=None, environment="development"))

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_json_renderer_in_production(self):
        configure_logging(Settings(_env_file=None, environment="production"))

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_unknown_level_falls_back(self):
        """An unrecognized level name does not break configuration."""
        configure_logging(Settings(_env_file=None, log_level="chatty"))

        assert structlog.is_configured()
