"""
Configuration for the knativecatalog service.

Uses Pydantic for validation and environment loading. Provider targets
themselves live in the host configuration file (see providers.config).
"""

import os
from functools import lru_cache
from typing import Optional

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings

from .providers.config import ScheduleDefinition


class ServiceSettings(BaseSettings):
    """Service-level settings for running the providers standalone."""

    model_config = ConfigDict(
        env_prefix="",  # No prefix, use exact names
        env_file=".env",
        extra="ignore",
    )

    service_name: str = Field(default="knativecatalog")
    log_level: str = Field(default="INFO")

    config_path: str = Field(
        default="app-config.toml", description="Host configuration file (TOML)"
    )
    http_timeout: float = Field(default=30.0, description="Remote fetch timeout in seconds")
    scheduler_timezone: str = Field(default="UTC")

    # Default schedule for providers without their own
    default_frequency_seconds: Optional[int] = Field(
        default=300, description="Seconds between runs, None disables the default"
    )
    default_timeout_seconds: int = Field(default=180, description="Maximum run duration")
    default_initial_delay_seconds: int = Field(default=0, description="Delay before first run")

    def default_schedule(self) -> Optional[ScheduleDefinition]:
        """Default recurrence definition, or None when disabled."""
        if not self.default_frequency_seconds:
            return None
        return ScheduleDefinition(
            frequency=self.default_frequency_seconds,
            timeout=self.default_timeout_seconds,
            initial_delay=self.default_initial_delay_seconds or None,
        )

    @classmethod
    def from_env(cls) -> "ServiceSettings":
        """Load configuration from environment variables."""
        frequency = os.getenv("PROVIDER_DEFAULT_FREQUENCY_SEC", "300")
        return cls(
            service_name=os.getenv("SERVICE_NAME", "knativecatalog"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            config_path=os.getenv("CATALOG_CONFIG_PATH", "app-config.toml"),
            http_timeout=float(os.getenv("PROVIDER_HTTP_TIMEOUT", "30.0")),
            scheduler_timezone=os.getenv("SCHEDULER_TIMEZONE", "UTC"),
            default_frequency_seconds=int(frequency) if frequency else None,
            default_timeout_seconds=int(os.getenv("PROVIDER_DEFAULT_TIMEOUT_SEC", "180")),
            default_initial_delay_seconds=int(
                os.getenv("PROVIDER_DEFAULT_INITIAL_DELAY_SEC", "0")
            ),
        )


@lru_cache(maxsize=1)
def get_config() -> ServiceSettings:
    """Get the process-wide settings (loaded once from the environment)."""
    return ServiceSettings.from_env()
