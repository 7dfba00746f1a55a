"""SQLAlchemy models for the notifications feature."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from notification_service.core.database import Base, TimestampMixin, UUIDPKMixin, utcnow


class NotificationModel(Base, UUIDPKMixin, TimestampMixin):
    """One inbound event's delivery lifecycle.

    The recipient is flattened into columns so listings and erasure can
    filter on ``user_id``.
    """

    __tablename__ = "notifications"

    event_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    idempotency_key: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    event_type: Mapped[str] = mapped_column(String(255), nullable=False)
    template_key: Mapped[str] = mapped_column(String(255), nullable=False)

    user_id: Mapped[str | None] = mapped_column(String(255), index=True)
    email: Mapped[str | None] = mapped_column(String(320))
    phone: Mapped[str | None] = mapped_column(String(50))
    device_token: Mapped[str | None] = mapped_column(String(4096))
    role: Mapped[str | None] = mapped_column(String(50))

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="QUEUED")
    channels_tried: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    last_error: Mapped[str | None] = mapped_column(Text)
    next_attempt_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    template_data: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)
    rendered: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    correlation_id: Mapped[str | None] = mapped_column(String(255))
    trace_id: Mapped[str | None] = mapped_column(String(255))

    __table_args__ = (
        Index("idx_notifications_status_next_attempt", "status", "next_attempt_at"),
        Index("idx_notifications_event_type_created", "event_type", "created_at"),
    )


class AttemptModel(Base, UUIDPKMixin):
    """Append-only record of one channel delivery try.

    Keyed by ``notification_id`` without a database foreign key; erasure
    removes attempts explicitly.
    """

    __tablename__ = "notification_attempts"

    notification_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    channel: Mapped[str] = mapped_column(String(20), nullable=False)
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    attempt_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    error: Mapped[str | None] = mapped_column(Text)
    error_code: Mapped[str | None] = mapped_column(String(100))
    provider_message_id: Mapped[str | None] = mapped_column(String(255))
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    duration_ms: Mapped[int | None] = mapped_column(Integer)


class PreferencesModel(Base):
    """Per-user channel preferences."""

    __tablename__ = "user_notification_preferences"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    channels: Mapped[dict[str, bool]] = mapped_column(JSON, nullable=False, default=dict)
    events: Mapped[dict[str, dict[str, bool]]] = mapped_column(JSON, nullable=False, default=dict)
    quiet_hours_start: Mapped[int | None] = mapped_column(Integer)
    quiet_hours_end: Mapped[int | None] = mapped_column(Integer)
    locale: Mapped[str] = mapped_column(String(16), nullable=False, default="pt-BR")
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class TemplateModel(Base, UUIDPKMixin):
    """Message template for one (key, channel, locale)."""

    __tablename__ = "notification_templates"

    template_key: Mapped[str] = mapped_column(String(255), nullable=False)
    channel: Mapped[str] = mapped_column(String(20), nullable=False)
    locale: Mapped[str] = mapped_column(String(16), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    subject: Mapped[str | None] = mapped_column(Text)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("template_key", "channel", "locale", name="uq_template_key_channel_locale"),
    )


class InboxEntryModel(Base):
    """Processed inbound event ids (idempotency gate)."""

    __tablename__ = "inbox_entries"

    event_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        index=True,
    )
