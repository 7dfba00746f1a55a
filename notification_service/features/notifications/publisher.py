"""Best-effort publishing of status updates and dead letters.

Publishing never fails the operation that triggered it: errors are logged
and returned as a ``PublishOutcome`` the caller may ignore.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
import logging
from typing import TYPE_CHECKING, Any

from notification_service.features.notifications.schemas import StatusRecipient, StatusUpdateEvent
from notification_service.utils.masking import mask_email, mask_phone

if TYPE_CHECKING:
    from notification_service.features.notifications.entities import Attempt, Notification
    from notification_service.features.notifications.ports import EventPublisher

STATUS_SUBJECT = "notifications.status.updated"
DLQ_SUBJECT = "notifications.dlq"


@dataclass(frozen=True, slots=True)
class PublishOutcome:
    success: bool
    error: str | None = None


def build_status_event(
    notification: Notification,
    attempt: Attempt | None = None,
    now: datetime | None = None,
) -> StatusUpdateEvent:
    """Status payload for the notification's current state."""
    return StatusUpdateEvent(
        event_id=notification.event_id,
        notification_id=str(notification.id) if notification.id else None,
        event_type=notification.event_type,
        status=notification.status.value,
        channel=attempt.channel if attempt else None,
        provider=attempt.provider if attempt else None,
        provider_message_id=attempt.provider_message_id if attempt else None,
        error_code=attempt.error_code if attempt else None,
        error=notification.last_error,
        recipient=StatusRecipient(
            user_id=notification.recipient.user_id,
            role=notification.recipient.role,
        ),
        timestamp=now or datetime.now(UTC),
        correlation_id=notification.correlation_id,
        trace_id=notification.trace_id,
    )


class StatusPublisher:
    """Emit lifecycle transitions to downstream consumers."""

    def __init__(
        self,
        event_publisher: EventPublisher,
        subject: str = STATUS_SUBJECT,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self._publisher = event_publisher
        self._subject = subject
        self._logger = logger or logging.getLogger(__name__)

    async def publish(self, notification: Notification, attempt: Attempt | None = None) -> PublishOutcome:
        event = build_status_event(notification, attempt)
        try:
            await self._publisher.publish(self._subject, event.to_wire())
        except Exception as exc:
            self._logger.exception(
                "Failed to publish status update",
                extra={"notification_id": str(notification.id), "status": event.status},
            )
            return PublishOutcome(success=False, error=str(exc))

        self._logger.info(
            "Status update published",
            extra={
                "notification_id": str(notification.id),
                "event_id": notification.event_id,
                "status": event.status,
                "channel": event.channel,
                "recipient_email": mask_email(notification.recipient.email),
                "recipient_phone": mask_phone(notification.recipient.phone),
            },
        )
        return PublishOutcome(success=True)


class DeadLetterPublisher:
    """Forward events that failed processing, with the error attached."""

    def __init__(
        self,
        event_publisher: EventPublisher,
        subject: str = DLQ_SUBJECT,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self._publisher = event_publisher
        self._subject = subject
        self._logger = logger or logging.getLogger(__name__)

    async def publish(self, event: dict[str, Any], error: BaseException | str) -> PublishOutcome:
        payload = {
            **event,
            "error": str(error),
            "timestamp": datetime.now(UTC).isoformat(),
        }
        try:
            await self._publisher.publish(self._subject, payload)
        except Exception as exc:
            self._logger.exception(
                "Failed to publish to DLQ",
                extra={"event_id": event.get("eventId")},
            )
            return PublishOutcome(success=False, error=str(exc))

        self._logger.warning("Event sent to DLQ", extra={"event_id": event.get("eventId")})
        return PublishOutcome(success=True)
