"""Application configuration using pydantic-settings.

All environment variables should be accessed through the settings object
rather than using os.getenv() directly. Policy constants for the waitlist
engine (ready window, extension limit, table buffer, estimator defaults)
live here so every service reads the same values.
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # Database - relative SQLite file for local runs, PostgreSQL in production
    database_url: str = "sqlite:///./tableready.db"
    sqlite_busy_timeout_ms: int = 5000

    # CORS - comma-separated origins or "*" for development only
    cors_origins: str = "http://localhost:3000,http://localhost:8000"

    # Default venue timezone (venues may override)
    timezone: str = "UTC"

    # Server
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # API
    api_v1_prefix: str = "/api/v1"

    # ==========================================================================
    # Waitlist lifecycle
    # ==========================================================================
    ready_grace_minutes: int = 5  # ready_deadline = ready_at + this
    max_extension_minutes: int = 45  # venue default when not configured
    patron_delay_max_minutes: int = 10
    upcoming_window_minutes: int = 30
    duplicate_booking_window_minutes: int = 30

    # ==========================================================================
    # Table matching
    # ==========================================================================
    table_buffer_minutes: int = 30  # turnover window around a reservation
    max_combination_tables: int = 16  # exhaustive search ceiling
    probe_offsets_minutes: List[int] = [15, 30, 45, 60, 90, 120]

    # ==========================================================================
    # Estimator
    # ==========================================================================
    default_wait_minutes: int = 20
    default_prep_minutes: int = 15
    min_confidence_data_points: int = 30
    history_window_days: int = 30
    busy_threshold_pct: float = 80.0

    # ==========================================================================
    # Availability
    # ==========================================================================
    slot_interval_minutes: int = 15
    slot_close_buffer_minutes: int = 30

    # ==========================================================================
    # Background sweep
    # ==========================================================================
    sweep_enabled: bool = True
    sweep_interval_seconds: int = 60

    @field_validator("ready_grace_minutes", "max_extension_minutes", "table_buffer_minutes",
                     "slot_interval_minutes", "sweep_interval_seconds")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate settings for production safety."""
        import warnings

        if not self.debug and self.database_url.startswith("sqlite"):
            warnings.warn(
                "Running in production mode on SQLite. Set DATABASE_URL to a PostgreSQL database.",
                UserWarning,
                stacklevel=2,
            )
        return self

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list, filtering localhost in production."""
        if self.cors_origins == "*":
            return ["*"]

        origins = [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

        if not self.debug:
            localhost_patterns = ["localhost", "127.0.0.1", "0.0.0.0"]
            origins = [o for o in origins if not any(p in o for p in localhost_patterns)]

        return origins


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
