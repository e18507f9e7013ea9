"""
Application configuration using Pydantic Settings.
Loads from environment variables and .env file.
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./routeoptima.db"

    # Application
    app_env: str = "development"
    debug: bool = False
    app_title: str = "RouteOptima Dispatch"
    app_version: str = "1.0.0"
    api_prefix: str = "/api/v1"
    cors_allowed_origins: List[str] = ["*"]

    # Logging
    log_level: str = "INFO"
    log_file: str = "logs/routeoptima.log"

    # Depot used as pickup when an order does not name one
    default_pickup_latitude: float = 19.2307
    default_pickup_longitude: float = 72.8567

    # Geocoding collaborator (Nominatim-compatible search endpoint)
    geocoding_enabled: bool = True
    geocoding_url: str = "https://nominatim.openstreetmap.org/search"
    geocoding_country_suffix: str = ", India"
    geocoding_timeout_seconds: float = 5.0
    geocoding_user_agent: str = "routeoptima-dispatch/1.0"

    # Live tracking
    location_stale_after_seconds: int = 120

    # Polling hints handed back to clients (seconds)
    driver_poll_interval_seconds: int = 4
    fleet_poll_interval_seconds: int = 5

    # Legacy hardening: require 10-digit customer phone numbers
    strict_phone_validation: bool = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
