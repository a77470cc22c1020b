"""
Configuration management for the time-tracking engine.
"""

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TimeflowConfig(BaseSettings):
    """Configuration settings for timer, persistence and logging."""

    # Storage
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".timeflow", alias="TIMEFLOW_DATA_DIR"
    )
    storage_quota_bytes: Optional[int] = Field(
        default=None, gt=0, alias="TIMEFLOW_STORAGE_QUOTA_BYTES"
    )

    # Timer accuracy
    tick_interval_seconds: float = Field(
        default=1.0, gt=0, alias="TIMEFLOW_TICK_INTERVAL"
    )
    drift_check_interval_ticks: int = Field(
        default=30, ge=1, alias="TIMEFLOW_DRIFT_CHECK_TICKS"
    )
    drift_tolerance_seconds: float = Field(
        default=2.0, ge=0, alias="TIMEFLOW_DRIFT_TOLERANCE"
    )
    drift_compensation_ceiling_seconds: float = Field(
        default=5.0, ge=0, alias="TIMEFLOW_DRIFT_CEILING"
    )

    # Session recovery
    max_session_age_hours: float = Field(
        default=24.0, gt=0, alias="TIMEFLOW_MAX_SESSION_AGE_HOURS"
    )
    persistence_max_retries: int = Field(
        default=3, ge=0, alias="TIMEFLOW_PERSISTENCE_RETRIES"
    )
    persistence_retry_delay: float = Field(
        default=0.1, ge=0, alias="TIMEFLOW_PERSISTENCE_RETRY_DELAY"
    )

    # Billing
    default_currency: str = Field(default="USD", alias="TIMEFLOW_DEFAULT_CURRENCY")

    # Application Configuration
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="standard", alias="LOG_FORMAT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ["standard", "json"]
        if v.lower() not in valid_formats:
            raise ValueError(f"Log format must be one of: {valid_formats}")
        return v.lower()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Ensure environment is valid."""
        valid_envs = ["development", "testing", "production"]
        if v.lower() not in valid_envs:
            raise ValueError(f"Environment must be one of: {valid_envs}")
        return v.lower()

    @field_validator("default_currency")
    @classmethod
    def validate_currency(cls, v):
        """Currency codes are three letters, stored upper-case."""
        if len(v) != 3 or not v.isalpha():
            raise ValueError("Currency must be a 3-letter code")
        return v.upper()

    @field_validator("data_dir")
    @classmethod
    def expand_data_dir(cls, v):
        """Expand ~ in the data directory."""
        return Path(v).expanduser()

    @model_validator(mode="after")
    def validate_drift_window(self) -> "TimeflowConfig":
        """The compensation ceiling must not be tighter than the tolerance."""
        if self.drift_compensation_ceiling_seconds < self.drift_tolerance_seconds:
            raise ValueError(
                "drift_compensation_ceiling_seconds "
                f"({self.drift_compensation_ceiling_seconds}) must be >= "
                f"drift_tolerance_seconds ({self.drift_tolerance_seconds})"
            )
        return self

    @property
    def max_session_age_seconds(self) -> float:
        """Recovery staleness ceiling in seconds."""
        return self.max_session_age_hours * 3600


def load_config(env_file: Optional[str] = None) -> TimeflowConfig:
    """Load configuration from environment variables and .env file."""
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    return TimeflowConfig()


# Global configuration instance
_config: Optional[TimeflowConfig] = None


def get_config() -> TimeflowConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config(env_file: Optional[str] = None) -> TimeflowConfig:
    """Reload configuration (useful for testing)."""
    global _config
    _config = load_config(env_file)
    return _config
