"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from datetime import tzinfo
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Database (unset keeps orders in process memory)
    database_url: str | None = None

    # Business hours
    business_start_hour: int = 9
    business_end_hour: int = 17
    business_timezone: str = "UTC"

    # Auto-close sweep
    auto_close_enabled: bool = True
    auto_close_sla_hours: float = 24.0
    auto_close_interval_seconds: float = 300.0

    # Celery broker for the scheduled sweep
    redis_url: str = "redis://localhost:6379/0"

    # Product catalog
    catalog_url: str | None = None
    catalog_timeout_seconds: float = 5.0
    default_currency: str = "USD"
    default_unit_price_cents: int = 0

    # Logging
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def business_tz(self) -> tzinfo:
        """Reference timezone for working-hours arithmetic."""
        return ZoneInfo(self.business_timezone)


settings = Settings()
