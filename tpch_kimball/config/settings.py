"""
TPCH Kimball Sales Model
Centralized Configuration Management

This module provides configuration management using Pydantic settings with
environment variable support, validation, and type safety.
"""

from datetime import date
from functools import lru_cache
from typing import Optional
from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Warehouse Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="tpch_kimball", alias="database", description="Database name")
    user: str = Field(default="kimball", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    echo: bool = Field(default=False, description="Echo SQL queries")
    url: Optional[str] = Field(default=None, description="Full SQLAlchemy URL (overrides host/port)")
    insert_chunk_size: int = Field(default=5000, description="Rows per INSERT batch when publishing")

    @property
    def async_url(self) -> str:
        """Async database URL, uses POSTGRES_URL if set"""
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class DataLakeSettings(BaseSettings):
    """Source and Curated Zone Configuration"""

    model_config = SettingsConfigDict(env_prefix="DATA_")

    source_path: str = Field(default="./data/tpch", description="Directory holding TPCH source files")
    curated_path: str = Field(default="./data/curated", description="Directory receiving built relations")
    source_format: str = Field(default="tbl", description="Source file format: tbl, csv or parquet")

    @field_validator("source_format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate source format value"""
        allowed = ["tbl", "csv", "parquet"]
        if v.lower() not in allowed:
            raise ValueError(f"Source format must be one of: {allowed}")
        return v.lower()


class ModelSettings(BaseSettings):
    """Dimensional Model Configuration"""

    model_config = SettingsConfigDict(env_prefix="MODEL_")

    calendar_start: date = Field(default=date(1992, 1, 1), description="First day of the date dimension")
    calendar_end: date = Field(default=date(1998, 12, 31), description="Last day of the date dimension (inclusive)")

    # Synthetic source generation
    generator_seed: int = Field(default=42, description="Seed for the synthetic TPCH generator")
    generator_customers: int = Field(default=150, description="Customers generated per scale unit")

    @model_validator(mode="after")
    def validate_calendar(self) -> "ModelSettings":
        """Calendar end must not precede its start"""
        if self.calendar_end < self.calendar_start:
            raise ValueError(
                f"calendar_end {self.calendar_end} is before calendar_start {self.calendar_start}"
            )
        return self


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")


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
    )

    # Application
    app_name: str = Field(default="tpch-kimball", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    data_lake: DataLakeSettings = Field(default_factory=DataLakeSettings)
    model: ModelSettings = Field(default_factory=ModelSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

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


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
