"""Logging configuration settings."""

from __future__ import annotations

from typing import ClassVar, Literal

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from ._base import DomainSettings

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingSettings(DomainSettings):
    """Structured logging configuration.

    Environment variables use LOG_ prefix.
    Example: LOG_LEVEL=INFO, LOG_JSON=true
    """

    yaml_domain: ClassVar[str] = "logging"

    service_name: str = Field(
        default="notification-service",
        description="Service name to include in log records (static field in JSON)",
    )
    level: LogLevel = Field(
        default="INFO",
        description="Root logger level (DEBUG|INFO|WARNING|ERROR|CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        alias="json",
        description="Enable JSON Lines (JSONL) formatted structured logs",
    )
    library_levels: dict[str, LogLevel] = Field(
        default_factory=lambda: {
            "aiormq": "WARNING",
            "aio_pika": "WARNING",
            "apscheduler": "WARNING",
            "httpx": "WARNING",
            "sqlalchemy.engine": "WARNING",
        },
        description="Per-library logger levels to tame noisy dependencies",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        env_ignore_empty=True,
    )
