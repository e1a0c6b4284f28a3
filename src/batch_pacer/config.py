"""Configuration settings for Batch Pacer."""

from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchedulerConfig(BaseModel):
    """Configuration for the rate-limited scheduler.

    Controls the rolling-window quota, spacing between calls,
    and retry escalation behavior.
    """

    # Quota
    max_requests_per_minute: int = Field(
        default=15,
        ge=1,
        description="Maximum call attempts inside one rate window",
    )
    window_ms: int = Field(
        default=60_000,
        ge=1,
        description="Length of the rolling rate window in milliseconds",
    )
    safety_buffer_ms: int = Field(
        default=1_000,
        ge=0,
        description="Extra wait added when the window is full",
    )

    # Timing
    delay_between_requests_ms: int = Field(
        default=5_000,
        ge=0,
        description="Fixed spacing delay applied after every attempt",
    )

    # Retries
    max_retries: int = Field(
        default=3,
        ge=0,
        description="Failed attempts tolerated before an item is terminal",
    )
    retry_priority_boost: int = Field(
        default=10,
        ge=0,
        description="Priority added to an item each time it is retried",
    )

    @property
    def window_seconds(self) -> float:
        """Rate window in seconds."""
        return self.window_ms / 1000

    @property
    def safety_buffer_seconds(self) -> float:
        """Safety buffer in seconds."""
        return self.safety_buffer_ms / 1000

    @property
    def delay_between_requests_seconds(self) -> float:
        """Spacing delay in seconds."""
        return self.delay_between_requests_ms / 1000


class CacheConfig(BaseModel):
    """Configuration for the durable response cache."""

    namespace: str = Field(
        default="batch_pacer",
        min_length=1,
        description="Partition key shared by cache entries and progress records",
    )
    ttl_days: int = Field(
        default=30,
        ge=1,
        description="Days after which a cached response is treated as absent",
    )
    max_entries: int = Field(
        default=5_000,
        ge=1,
        description="Entry quota per namespace; writes beyond it trigger eviction",
    )

    @property
    def ttl(self) -> timedelta:
        """Get the time-to-live as a timedelta."""
        return timedelta(days=self.ttl_days)


class LoggingConfig(BaseModel):
    """Configuration for logging behavior.

    Controls file logging, rotation, and output format.
    """

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # Storage
    # --------------------------------------------------------------------------
    database_url: str = Field(
        default="sqlite+aiosqlite:///./batch_pacer.db",
        description="Async SQLite connection string for cache and progress",
    )

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # Scheduling
    # --------------------------------------------------------------------------
    scheduler: SchedulerConfig = Field(
        default_factory=SchedulerConfig,
        description="Rate window, spacing and retry configuration",
    )

    # --------------------------------------------------------------------------
    # Cache
    # --------------------------------------------------------------------------
    cache: CacheConfig = Field(
        default_factory=CacheConfig,
        description="Response cache configuration",
    )

    # --------------------------------------------------------------------------
    # Logging Configuration
    # --------------------------------------------------------------------------
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
