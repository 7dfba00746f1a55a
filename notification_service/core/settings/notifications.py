"""Dispatch, retry and deduplication settings."""

from __future__ import annotations

from typing import ClassVar

from pydantic import Field, field_validator
from pydantic_settings import SettingsConfigDict

from ._base import DomainSettings

DEFAULT_BACKOFF_SEQUENCE = "5s,25s,2m,10m,30m,2h,6h,24h"


class NotificationSettings(DomainSettings):
    """Notification engine settings.

    Environment variables use NOTIF_ prefix.
    Example: NOTIF_BACKOFF_SEQUENCE="5s,1m,10m", NOTIF_MAX_ATTEMPTS_PER_CHANNEL=2

    The backoff sequence doubles as the retry budget: once the number of
    recorded attempts reaches its length the notification is failed for good.
    """

    yaml_domain: ClassVar[str] = "notifications"

    backoff_sequence: str = Field(
        default=DEFAULT_BACKOFF_SEQUENCE,
        description="Comma separated delays, each <int><s|m|h|d> or raw milliseconds",
    )
    max_attempts_per_channel: int = Field(
        default=3,
        ge=1,
        le=100,
        description="Attempts allowed per channel before the retry engine skips it",
    )
    dedup_window_sec: int = Field(
        default=600,
        ge=1,
        description="How long an inbound eventId is remembered by the inbox",
    )

    retry_poller_enabled: bool = Field(
        default=True,
        description="Run the periodic retry sweep (disable when the bus redelivers natively)",
    )
    retry_poll_interval_sec: float = Field(default=30.0, gt=0)
    retry_poll_batch_size: int = Field(default=100, ge=1, le=10_000)

    feature_preferences: bool = Field(
        default=False,
        description="Load per-user preferences; when off the defaults are always used",
    )
    default_locale: str = Field(default="pt-BR", min_length=2)
    retention_days: int = Field(default=90, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="NOTIF_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @field_validator("backoff_sequence")
    @classmethod
    def _validate_backoff(cls, value: str) -> str:
        from notification_service.features.notifications.backoff import parse_backoff_sequence

        parse_backoff_sequence(value)
        return value
