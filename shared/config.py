"""
Configuration for the character dashboard services.
"""
from pydantic_settings import BaseSettings
from typing import Optional


class DashboardSettings(BaseSettings):
    """Settings loaded from environment variables and .env."""

    # Nexon Open API
    nexon_open_api_key: Optional[str] = None
    api_base_url: str = "https://open.api.nexon.com/maplestorytw/v1"

    # Upstream request policy
    request_timeout: float = 10.0  # seconds per attempt
    max_retries: int = 2  # extra attempts on transient failures
    retry_backoff: float = 0.5  # seconds, doubled on each retry
    max_concurrent_requests: int = 8

    # Composite response cache (seconds, 0 disables)
    response_cache_ttl: float = 30.0

    # Service configuration
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra environment variables


def get_settings() -> DashboardSettings:
    """Get application settings instance."""
    return DashboardSettings()
