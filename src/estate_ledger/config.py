"""Centralized configuration management using pydantic-settings.

Configuration is loaded from environment variables with sensible defaults.
All settings can be overridden via environment variables or a .env file.
"""

from decimal import Decimal
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from estate_ledger.domain.value_objects import Currency


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Log level options."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings have sensible defaults for development. Override via
    environment variables (prefixed with ESTATE_) or .env file.

    Examples:
        ESTATE_SQLITE_PATH=/var/lib/estates/ledger.db
        ESTATE_LOG_LEVEL=DEBUG
        ESTATE_DEFAULT_COMMISSION_RATE=0.03
    """

    model_config = SettingsConfigDict(
        env_prefix="ESTATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Estate Ledger"
    app_version: str = "0.1.0"
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = Field(
        default=False, validate_default=True, description="Enable debug mode"
    )

    # Database
    sqlite_path: Path = Field(
        default=Path("estate_ledger.db"),
        description="SQLite database file path",
    )

    # Logging
    log_level: LogLevel = LogLevel.INFO
    log_format: Literal["json", "console"] | None = Field(
        default=None,
        validate_default=True,
        description="Log output format: 'json' for production, 'console' for development",
    )
    log_file: Path | None = Field(default=None, description="Optional log file path")

    # Estate administration rules
    default_currency: Currency = Currency.KES
    default_commission_rate: Decimal = Field(
        default=Decimal("0.05"),
        ge=Decimal("0"),
        le=Decimal("0.5"),
        description="Agent or auctioneer commission applied to liquidation sales",
    )
    substantial_gift_threshold: Decimal = Field(
        default=Decimal("0.10"),
        gt=Decimal("0"),
        le=Decimal("1"),
        description="Share of gross estate value at which a gift counts as substantial",
    )
    unsecured_limitation_years: int = Field(default=6, ge=1)
    secured_limitation_years: int = Field(default=12, ge=1)

    @field_validator("debug", mode="before")
    @classmethod
    def set_debug_from_environment(cls, v: bool, info) -> bool:
        """Auto-enable debug in development environment."""
        if info.data.get("environment") == Environment.DEVELOPMENT:
            return True
        return v

    @field_validator("log_format", mode="before")
    @classmethod
    def set_log_format_from_environment(cls, v: str | None, info) -> str:
        """Default to JSON logging in production."""
        if v is None:
            env = info.data.get("environment")
            if env == Environment.PRODUCTION:
                return "json"
        return v or "console"

    @field_validator("secured_limitation_years", mode="after")
    @classmethod
    def secured_period_not_shorter(cls, v: int, info) -> int:
        """Secured claims never expire before unsecured ones."""
        unsecured = info.data.get("unsecured_limitation_years")
        if unsecured is not None and v < unsecured:
            raise ValueError(
                "secured_limitation_years must be at least unsecured_limitation_years"
            )
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == Environment.TESTING


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
