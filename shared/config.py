"""
Shared configuration management for the repository content proxy.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_MAX_CACHE_SIZE_BYTES = 200 * 1024 * 1024


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="PROXY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Response cache
    max_cache_size_bytes: int = Field(default=DEFAULT_MAX_CACHE_SIZE_BYTES, gt=0)

    # GitHub upstream
    github_api_url: str = Field(default="https://api.github.com")
    github_token: Optional[str] = Field(default=None)
    github_client_id: Optional[str] = Field(default=None)
    github_client_secret: Optional[str] = Field(default=None)
    github_timeout_seconds: float = Field(default=10.0, gt=0)

    # Issue reports
    issues_repository: Optional[str] = Field(default=None)

    # Operational notifications
    discord_webhook_id: Optional[str] = Field(default=None)
    discord_webhook_token: Optional[str] = Field(default=None)

    @property
    def discord_webhook_url(self) -> Optional[str]:
        """Webhook URL, or None when notifications are not configured."""
        if not self.discord_webhook_id or not self.discord_webhook_token:
            return None
        return f"https://discord.com/api/webhooks/{self.discord_webhook_id}/{self.discord_webhook_token}"


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int = 3000
    host: str = "0.0.0.0"


def get_config(service_name: str, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, **overrides)
