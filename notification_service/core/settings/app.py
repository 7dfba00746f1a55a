"""Application-level settings."""

from __future__ import annotations

from typing import ClassVar, Literal

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from ._base import DomainSettings

Environment = Literal["development", "staging", "production", "test"]


class AppSettings(DomainSettings):
    """HTTP application settings.

    Environment variables use APP_ prefix.
    Example: APP_DEBUG=true, APP_ENVIRONMENT=production
    """

    yaml_domain: ClassVar[str] = "app"

    service_name: str = Field(
        default="notification-service",
        min_length=1,
        max_length=100,
        description="Service name used in logs and message headers",
    )
    title: str = Field(default="Notification Service API", min_length=1)
    description: str = Field(
        default="Multi-channel notification dispatch with fallback and retry",
    )
    version: str = Field(default="1.0.0", min_length=1)
    environment: Environment = Field(default="development")
    api_prefix: str = Field(default="/api/v1", min_length=1)
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
