"""Authorization core configuration using pydantic-settings."""

from functools import lru_cache

from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rolekit.core.constants import (
    DEFAULT_CACHE_EVICTION_INTERVAL_SECONDS,
    DEFAULT_CACHE_KEY_PREFIX,
    DEFAULT_CACHE_TTL_SECONDS,
)


class TableNames(BaseModel):
    """Relation names handed to the persistence collaborator.

    These are structural only; the core never reads them.
    """

    roles: str = "roles"
    permissions: str = "permissions"
    role_permission: str = "role_permission"
    user_role: str = "user_role"
    user_permission: str = "user_permission"


class Settings(BaseSettings):
    """Settings loaded from ``ROLEKIT_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ROLEKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: str = "development"  # development, staging, production
    log_level: str = "INFO"

    # Cache
    cache_enabled: bool = True
    cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS
    cache_key_prefix: str = DEFAULT_CACHE_KEY_PREFIX
    cache_eviction_interval_seconds: int = DEFAULT_CACHE_EVICTION_INTERVAL_SECONDS

    # References
    # When set, bare strings are always slugs and only ints are ids.
    strict_references: bool = False

    # Persistence
    table_names: TableNames = TableNames()

    @field_validator("cache_ttl_seconds", "cache_eviction_interval_seconds")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Reject zero or negative durations.

        Args:
            v: Duration in seconds

        Returns:
            The validated duration

        Raises:
            ValueError: If the duration is not positive
        """
        if v <= 0:
            raise ValueError("duration must be a positive number of seconds")
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Upper-case the log level name."""
        return v.upper()

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
