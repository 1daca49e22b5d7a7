"""
Configuration management using pydantic-settings.
All settings loaded from environment variables (12-factor app).
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="info", description="Log level")
    log_format: str = Field(default="json", description="Log format (json|console)")

    # Reporting
    default_granularity: str = Field(
        default="day", description="Date bucketing when a report does not specify one"
    )
    report_row_limit: int = Field(
        default=10000, ge=1, le=10000, description="Maximum fact rows accepted per report"
    )

    # Anomaly detection
    anomaly_method: str = Field(
        default="ensemble", description="Anomaly method (zscore|iqr|mad|ensemble)"
    )
    anomaly_zscore_threshold: float = Field(
        default=2.5, gt=0.0, description="Z-score flag threshold"
    )
    anomaly_mad_threshold: float = Field(
        default=3.5, gt=0.0, description="Modified z-score flag threshold"
    )
    anomaly_rolling_window: int = Field(
        default=7, ge=2, description="Trailing window size for rolling detection"
    )
    anomaly_rolling_threshold: float = Field(
        default=2.5, gt=0.0, description="Rolling z-score flag threshold"
    )
    anomaly_rolling_warning_threshold: float = Field(
        default=3.0, gt=0.0, description="Rolling z-score for warning severity"
    )
    anomaly_rolling_critical_threshold: float = Field(
        default=4.0, gt=0.0, description="Rolling z-score for critical severity"
    )

    # Forecasting
    forecast_alpha: float = Field(
        default=0.3, gt=0.0, le=1.0, description="Level smoothing factor"
    )
    forecast_beta: float = Field(
        default=0.1, ge=0.0, le=1.0, description="Trend smoothing factor"
    )
    forecast_periods: int = Field(
        default=30, ge=1, le=365, description="Default forecast horizon in days"
    )
    forecast_confidence_level: float = Field(
        default=0.95, gt=0.0, lt=1.0, description="Forecast confidence level"
    )

    # Development
    dev_mode: bool = Field(default=True, description="Development mode")
    debug: bool = Field(default=False, description="Debug mode")
    testing: bool = Field(default=False, description="Testing mode")

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Restrict log format to the supported renderers."""
        v = v.lower()
        if v not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return v

    @field_validator("default_granularity")
    @classmethod
    def validate_granularity(cls, v: str) -> str:
        """Restrict granularity to the supported date buckets."""
        v = v.lower()
        if v not in ("day", "week", "month", "quarter", "year"):
            raise ValueError(f"Unsupported granularity: {v}")
        return v

    @field_validator("anomaly_method")
    @classmethod
    def validate_anomaly_method(cls, v: str) -> str:
        """Restrict anomaly method to the supported detectors."""
        v = v.lower()
        if v not in ("zscore", "iqr", "mad", "ensemble"):
            raise ValueError(f"Unsupported anomaly method: {v}")
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure singleton behavior.
    """
    return Settings()
