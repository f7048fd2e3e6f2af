"""
Application settings and configuration management.
Uses pydantic-settings for environment variable loading.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Main application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Driver Ranking Decision Engine"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"

    # Criteria catalog (None = built-in driver catalog)
    criteria_catalog_path: Optional[str] = None

    # Driver data columns (None = first header / auto-detected km column)
    alternative_column: Optional[str] = None
    distance_column: Optional[str] = None

    # Export
    export_precision: int = Field(default=4, ge=0, le=12)

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
