"""
Marketplace Portal Analytics
Centralized Configuration Management

This module provides configuration management using Pydantic settings with
environment variable support, validation, and type safety.
"""

from functools import lru_cache
from typing import Dict, List, Optional
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """PostgreSQL Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_", populate_by_name=True)

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="marketplace_portal", alias="POSTGRES_DB", description="Database name")
    user: str = Field(default="portal", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    echo: bool = Field(default=False, description="Echo SQL queries")
    url: Optional[str] = Field(default=None, alias="DATABASE_URL", description="Async database URL (overrides host/port)")

    @property
    def async_url(self) -> str:
        """Async database URL for asyncpg - uses DATABASE_URL if set"""
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class DataLakeSettings(BaseSettings):
    """Snapshot Export Storage Configuration"""

    model_config = SettingsConfigDict(env_prefix="DATA_")

    snapshot_path: str = Field(default="./data/snapshots", description="Catalog/order snapshot directory")
    reports_path: str = Field(default="./data/reports", description="Batch KPI report output directory")
    catalog_file: str = Field(default="catalog.csv", description="Catalog snapshot file name")
    orders_file: str = Field(default="orders.ndjson", description="Orders snapshot file name")


class SecuritySettings(BaseSettings):
    """API Security Configuration"""

    model_config = SettingsConfigDict(env_prefix="", populate_by_name=True)

    # Rate limiting
    rate_limit_requests: int = Field(default=100, alias="RATE_LIMIT_REQUESTS", description="Rate limit requests")
    rate_limit_window_seconds: int = Field(default=60, alias="RATE_LIMIT_WINDOW_SECONDS", description="Rate limit window")

    # CORS
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="", populate_by_name=True)

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")


class AnalyticsSettings(BaseSettings):
    """Revenue & Fulfillment Analytics Configuration"""

    model_config = SettingsConfigDict(env_prefix="ANALYTICS_")

    kpi_window_days: int = Field(default=30, ge=1, description="Trailing window for sold quantity/revenue KPIs")
    trend_days: int = Field(default=30, ge=1, description="Points in the daily trend series")
    trend_months: int = Field(default=12, ge=1, description="Points in the monthly trend series")
    trend_years: int = Field(default=5, ge=1, description="Points in the yearly trend series")

    # Low-stock thresholds differ by business role
    low_stock_seller: int = Field(default=5, ge=0, description="Low-stock threshold for sellers")
    low_stock_supplier: int = Field(default=10, ge=0, description="Low-stock threshold for suppliers")
    low_stock_default: int = Field(default=20, ge=0, description="Low-stock threshold for other roles")
    low_stock_inclusive: bool = Field(default=False, description="Count stock equal to the threshold as low")

    recent_orders_limit: int = Field(default=5, ge=0, description="Orders in the recent-orders preview")

    def low_stock_threshold(self, role: Optional[str]) -> int:
        """Threshold configured for a business role"""
        thresholds: Dict[str, int] = {
            "seller": self.low_stock_seller,
            "supplier": self.low_stock_supplier,
        }
        return thresholds.get((role or "").strip().lower(), self.low_stock_default)


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="portal-analytics", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="API host")
    api_port: int = Field(default=8000, alias="API_PORT", description="API port")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    data_lake: DataLakeSettings = Field(default_factory=DataLakeSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
