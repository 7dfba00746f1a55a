"""Domain entities for the notification lifecycle.

Entities are plain dataclasses mutated only through their transition
methods. The orchestration layer owns one notification at a time, so the
methods guard the state machine rather than concurrent access.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any
import uuid

from notification_service.core.exceptions import InvalidTransitionError


def utcnow() -> datetime:
    return datetime.now(UTC)


class Channel(StrEnum):
    """Delivery media in fallback priority order."""

    PUSH = "push"
    EMAIL = "email"
    SMS = "sms"


CHANNEL_PRIORITY: tuple[Channel, ...] = (Channel.PUSH, Channel.EMAIL, Channel.SMS)

DELIVERER_ROLE = "deliverer"


class NotificationStatus(StrEnum):
    QUEUED = "QUEUED"
    RETRY = "RETRY"
    SENT = "SENT"
    FAILED = "FAILED"


class AttemptStatus(StrEnum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


# FAILED stays re-enterable: an external retry trigger may pick it up again.
ALLOWED_TRANSITIONS: dict[NotificationStatus, frozenset[NotificationStatus]] = {
    NotificationStatus.QUEUED: frozenset(
        {NotificationStatus.SENT, NotificationStatus.FAILED, NotificationStatus.RETRY},
    ),
    NotificationStatus.RETRY: frozenset(
        {NotificationStatus.SENT, NotificationStatus.FAILED, NotificationStatus.RETRY},
    ),
    NotificationStatus.FAILED: frozenset(
        {NotificationStatus.SENT, NotificationStatus.FAILED, NotificationStatus.RETRY},
    ),
    NotificationStatus.SENT: frozenset(),
}

RETRYABLE_STATUSES = frozenset({NotificationStatus.RETRY, NotificationStatus.FAILED})


@dataclass(slots=True)
class Recipient:
    """Who a notification goes to and how they can be reached."""

    user_id: str | None = None
    email: str | None = None
    phone: str | None = None
    device_token: str | None = None
    role: str | None = None

    @property
    def is_deliverer(self) -> bool:
        return self.role == DELIVERER_ROLE

    def has_capability(self, channel: Channel | str) -> bool:
        """Whether the recipient carries the contact detail a channel needs."""
        match Channel(channel):
            case Channel.PUSH:
                return bool(self.device_token)
            case Channel.EMAIL:
                return bool(self.email)
            case Channel.SMS:
                return bool(self.phone)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Recipient:
        data = data or {}
        return cls(
            user_id=data.get("user_id"),
            email=data.get("email"),
            phone=data.get("phone"),
            device_token=data.get("device_token"),
            role=data.get("role"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "phone": self.phone,
            "device_token": self.device_token,
            "role": self.role,
        }


@dataclass(slots=True)
class Notification:
    """Durable record of one event's delivery lifecycle.

    ``id`` is assigned by the repository on first save. ``idempotency_key``
    equals ``event_id`` and is unique at the storage boundary.
    """

    event_id: str
    event_type: str
    template_key: str
    recipient: Recipient
    metadata: dict[str, Any] = field(default_factory=dict)
    id: uuid.UUID | None = None
    idempotency_key: str = ""
    status: NotificationStatus = NotificationStatus.QUEUED
    channels_tried: list[str] = field(default_factory=list)
    last_error: str | None = None
    next_attempt_at: datetime | None = None
    rendered: dict[str, dict[str, Any]] = field(default_factory=dict)
    correlation_id: str | None = None
    trace_id: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if not self.idempotency_key:
            self.idempotency_key = self.event_id

    def _touch(self, now: datetime | None = None) -> None:
        now = now or utcnow()
        # updated_at never moves backwards, even if the clock does
        if now > self.updated_at:
            self.updated_at = now

    def transition(self, target: NotificationStatus, now: datetime | None = None) -> None:
        """Move to ``target``, enforcing the lifecycle state machine.

        Raises:
            InvalidTransitionError: If the state machine forbids the move.
        """
        target = NotificationStatus(target)
        if target not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError("Notification", self.status.value, target.value)
        self.status = target
        self._touch(now)

    def mark_channel_tried(self, channel: str, now: datetime | None = None) -> None:
        if channel not in self.channels_tried:
            self.channels_tried.append(channel)
        self._touch(now)

    def set_rendered(self, channel: str, content: dict[str, Any]) -> None:
        self.rendered[channel] = content
        self._touch()

    def mark_sent(self, now: datetime | None = None) -> None:
        self.transition(NotificationStatus.SENT, now)

    def mark_failed(self, error: str | None, now: datetime | None = None) -> None:
        self.transition(NotificationStatus.FAILED, now)
        self.last_error = error

    def schedule_retry(
        self,
        next_attempt_at: datetime,
        error: str | None = None,
        now: datetime | None = None,
    ) -> None:
        self.transition(NotificationStatus.RETRY, now)
        self.next_attempt_at = next_attempt_at
        if error is not None:
            self.last_error = error

    @property
    def is_retryable(self) -> bool:
        return self.status in RETRYABLE_STATUSES

    @property
    def is_deliverer(self) -> bool:
        return self.recipient.is_deliverer


@dataclass(slots=True)
class Attempt:
    """One try to deliver a notification over one channel.

    Created PENDING right before the provider call and finalized exactly once
    right after it. A finalized attempt is an append-only audit record.
    """

    notification_id: uuid.UUID | None
    channel: str
    provider: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    status: AttemptStatus = AttemptStatus.PENDING
    attempt_number: int = 1
    error: str | None = None
    error_code: str | None = None
    provider_message_id: str | None = None
    started_at: datetime = field(default_factory=utcnow)
    finished_at: datetime | None = None
    duration_ms: int | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not AttemptStatus.PENDING

    def _finalize(self, target: AttemptStatus, now: datetime | None) -> None:
        if self.is_terminal:
            raise InvalidTransitionError("Attempt", self.status.value, target.value)
        finished = now or utcnow()
        if finished < self.started_at:
            finished = self.started_at
        self.status = target
        self.finished_at = finished
        self.duration_ms = int((finished - self.started_at).total_seconds() * 1000)

    def mark_success(self, provider_message_id: str | None, now: datetime | None = None) -> None:
        self._finalize(AttemptStatus.SUCCESS, now)
        self.provider_message_id = provider_message_id

    def mark_failed(
        self,
        error: str | None,
        error_code: str | None = None,
        now: datetime | None = None,
    ) -> None:
        self._finalize(AttemptStatus.FAILED, now)
        self.error = error
        self.error_code = error_code


@dataclass(slots=True)
class QuietHours:
    """Hour-of-day window (0-23); wraps midnight when ``start > end``."""

    start: int
    end: int

    def contains(self, hour: int) -> bool:
        if self.start < self.end:
            return self.start <= hour < self.end
        return hour >= self.start or hour < self.end


def default_channel_toggles() -> dict[str, bool]:
    return {Channel.PUSH.value: True, Channel.EMAIL.value: True, Channel.SMS.value: False}


@dataclass(slots=True)
class Preferences:
    """Per-user channel preferences.

    ``events`` maps an event type to per-channel overrides; when an event type
    has an entry it wins over the global ``channels`` toggles.
    """

    user_id: str | None = None
    channels: dict[str, bool] = field(default_factory=default_channel_toggles)
    events: dict[str, dict[str, bool]] = field(default_factory=dict)
    quiet_hours: QuietHours | None = None
    locale: str = "pt-BR"
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def defaults(cls, user_id: str | None = None, locale: str = "pt-BR") -> Preferences:
        return cls(user_id=user_id, locale=locale)

    def is_channel_enabled(self, channel: str) -> bool:
        return self.channels.get(channel) is True

    def is_event_channel_enabled(self, event_type: str, channel: str) -> bool:
        overrides = self.events.get(event_type)
        if overrides:
            return overrides.get(channel) is True
        return self.is_channel_enabled(channel)

    def is_in_quiet_hours(self, now: datetime | None = None) -> bool:
        if self.quiet_hours is None:
            return False
        return self.quiet_hours.contains((now or utcnow()).hour)


@dataclass(slots=True)
class Template:
    """Message template for one (key, channel, locale)."""

    template_key: str
    channel: str
    body: str
    locale: str = "pt-BR"
    subject: str | None = None
    version: int = 1
    id: uuid.UUID | None = None
    updated_at: datetime = field(default_factory=utcnow)
