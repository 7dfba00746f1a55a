"""Pydantic schemas for the notifications feature.

Wire payloads (inbound events, status updates, HTTP bodies) use camelCase
keys; Python code uses snake_case attributes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from notification_service.features.notifications.entities import (
    Attempt,
    Channel,
    Notification,
    Preferences,
    QuietHours,
    Recipient,
)


class CamelModel(BaseModel):
    """Base model serializing to camelCase and accepting either casing."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ============================================================================
# Inbound event
# ============================================================================


class RecipientSchema(CamelModel):
    """Recipient capabilities carried by the inbound event."""

    user_id: str | None = None
    email: str | None = None
    phone: str | None = None
    device_token: str | None = None
    role: str | None = None

    def to_entity(self) -> Recipient:
        return Recipient(
            user_id=self.user_id,
            email=self.email,
            phone=self.phone,
            device_token=self.device_token,
            role=self.role,
        )


class InboundEvent(CamelModel):
    """Business event requiring notification delivery."""

    event_id: str = Field(..., min_length=1, max_length=255)
    event_type: str = Field(..., min_length=1, max_length=255)
    occurred_at: datetime
    recipient: RecipientSchema
    template_key: str = Field(..., min_length=1, max_length=255)
    data: dict[str, Any] = Field(default_factory=dict)
    correlation_id: str | None = None
    trace_id: str | None = None


# ============================================================================
# Outbound events
# ============================================================================


class StatusRecipient(CamelModel):
    user_id: str | None = None
    role: str | None = None


class StatusUpdateEvent(CamelModel):
    """Lifecycle transition published after terminal or successful transitions."""

    event_id: str
    notification_id: str | None
    event_type: str
    status: str
    channel: str | None = None
    provider: str | None = None
    provider_message_id: str | None = None
    error_code: str | None = None
    error: str | None = None
    recipient: StatusRecipient
    timestamp: datetime
    correlation_id: str | None = None
    trace_id: str | None = None


# ============================================================================
# Results
# ============================================================================


class DispatchResult(CamelModel):
    """Outcome of dispatching one inbound event."""

    success: bool
    notification_id: UUID | None = None
    reason: str | None = None
    error: str | None = None


class RetryResult(CamelModel):
    """Outcome of one retry round for a notification."""

    success: bool
    reason: str
    notification_id: UUID | None = None
    channel: str | None = None
    next_attempt_at: datetime | None = None


# ============================================================================
# HTTP payloads
# ============================================================================


class DispatchRequest(CamelModel):
    """Synchronous dispatch request; missing ids are generated."""

    event_id: str | None = Field(default=None, max_length=255)
    event_type: str = Field(default="manual", min_length=1, max_length=255)
    recipient: RecipientSchema
    template_key: str = Field(..., min_length=1, max_length=255)
    data: dict[str, Any] = Field(default_factory=dict)


class NotificationResponse(CamelModel):
    id: UUID
    event_id: str
    event_type: str
    template_key: str
    status: str
    recipient: RecipientSchema
    channels_tried: list[str]
    last_error: str | None = None
    next_attempt_at: datetime | None = None
    correlation_id: str | None = None
    trace_id: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, notification: Notification) -> NotificationResponse:
        return cls(
            id=notification.id,
            event_id=notification.event_id,
            event_type=notification.event_type,
            template_key=notification.template_key,
            status=notification.status.value,
            recipient=RecipientSchema.model_validate(notification.recipient.to_dict()),
            channels_tried=list(notification.channels_tried),
            last_error=notification.last_error,
            next_attempt_at=notification.next_attempt_at,
            correlation_id=notification.correlation_id,
            trace_id=notification.trace_id,
            created_at=notification.created_at,
            updated_at=notification.updated_at,
        )


class NotificationListResponse(CamelModel):
    items: list[NotificationResponse]
    total: int
    page: int
    limit: int
    pages: int


class AttemptResponse(CamelModel):
    id: UUID
    notification_id: UUID
    channel: str
    provider: str
    status: str
    attempt_number: int
    error: str | None = None
    error_code: str | None = None
    provider_message_id: str | None = None
    started_at: datetime
    finished_at: datetime | None = None
    duration_ms: int | None = None

    @classmethod
    def from_entity(cls, attempt: Attempt) -> AttemptResponse:
        return cls(
            id=attempt.id,
            notification_id=attempt.notification_id,
            channel=attempt.channel,
            provider=attempt.provider,
            status=attempt.status.value,
            attempt_number=attempt.attempt_number,
            error=attempt.error,
            error_code=attempt.error_code,
            provider_message_id=attempt.provider_message_id,
            started_at=attempt.started_at,
            finished_at=attempt.finished_at,
            duration_ms=attempt.duration_ms,
        )


class QuietHoursSchema(CamelModel):
    start: int = Field(..., ge=0, le=23)
    end: int = Field(..., ge=0, le=23)


class PreferencesUpdate(CamelModel):
    """Replacement preferences for one user."""

    channels: dict[str, bool] | None = None
    events: dict[str, dict[str, bool]] | None = None
    quiet_hours: QuietHoursSchema | None = None
    locale: str | None = Field(default=None, min_length=2, max_length=16)

    @field_validator("channels")
    @classmethod
    def _known_channels(cls, value: dict[str, bool] | None) -> dict[str, bool] | None:
        if value is None:
            return value
        unknown = set(value) - {channel.value for channel in Channel}
        if unknown:
            msg = f"Unknown channels: {', '.join(sorted(unknown))}"
            raise ValueError(msg)
        return value


class PreferencesResponse(CamelModel):
    user_id: str | None
    channels: dict[str, bool]
    events: dict[str, dict[str, bool]]
    quiet_hours: QuietHoursSchema | None = None
    locale: str
    updated_at: datetime

    @classmethod
    def from_entity(cls, preferences: Preferences) -> PreferencesResponse:
        quiet = preferences.quiet_hours
        return cls(
            user_id=preferences.user_id,
            channels=dict(preferences.channels),
            events={key: dict(value) for key, value in preferences.events.items()},
            quiet_hours=QuietHoursSchema(start=quiet.start, end=quiet.end) if quiet else None,
            locale=preferences.locale,
            updated_at=preferences.updated_at,
        )


class ErasureResponse(CamelModel):
    user_id: str
    notifications_deleted: int
    attempts_deleted: int
    preferences_deleted: int
    inbox_deleted: int


def quiet_hours_entity(schema: QuietHoursSchema | None) -> QuietHours | None:
    return QuietHours(start=schema.start, end=schema.end) if schema else None
