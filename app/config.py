"""
Application configuration using Pydantic Settings.
"""

import os
from functools import lru_cache
from pydantic_settings import BaseSettings


def get_env_file() -> str:
    """Determine which env file to use based on environment."""
    env = os.getenv("APP_ENV", "development")
    if env == "production":
        return ".env.production"
    return ".env.development"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App settings
    app_name: str = "Lease NPV Calculator"
    debug: bool = False
    log_level: str = "INFO"
    app_env: str = "development"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Exchange rates
    exchange_rate_api_url: str = "https://api.exchangerate-api.com/v4/latest/USD"
    exchange_rate_timeout_seconds: float = 10.0
    exchange_rate_cache_ttl_hours: float = 24.0
    exchange_rate_retry_minutes: float = 5.0

    # Custom schedule validation policy
    schedule_percentage_tolerance: float = 0.01
    schedule_npv_tolerance: float = 0.0001

    class Config:
        env_file = get_env_file()
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
