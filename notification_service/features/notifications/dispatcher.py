"""First-attempt dispatch of inbound events.

Flow: validate, dedupe through the inbox, create the notification, pick
candidate channels and run the fallback cascade. Channel failures are
absorbed into attempt and notification state; unexpected faults send the
event to the dead-letter sink.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from notification_service.core.exceptions import DuplicateNotificationError
from notification_service.features.notifications.entities import Notification
from notification_service.features.notifications.schemas import DispatchResult, InboundEvent
from notification_service.infra.logging import log_context
from notification_service.utils.masking import mask_recipient

if TYPE_CHECKING:
    from datetime import datetime

    from notification_service.features.notifications.cascade import ChannelCascade
    from notification_service.features.notifications.metrics import NotificationMetrics
    from notification_service.features.notifications.ports import (
        InboxRepository,
        NotificationRepository,
    )
    from notification_service.features.notifications.preferences import PreferencesService
    from notification_service.features.notifications.publisher import (
        DeadLetterPublisher,
        StatusPublisher,
    )
    from notification_service.features.notifications.selector import ChannelSelector

NO_ELIGIBLE_CHANNELS = "No eligible channels"
INVALID_EVENT = "Invalid event schema"


class NotificationDispatcher:
    """Drive the first-attempt fallback cascade for fresh events."""

    def __init__(
        self,
        *,
        inbox: InboxRepository,
        notifications: NotificationRepository,
        preferences: PreferencesService,
        selector: ChannelSelector,
        cascade: ChannelCascade,
        status_publisher: StatusPublisher,
        dead_letters: DeadLetterPublisher,
        metrics: NotificationMetrics,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self._inbox = inbox
        self._notifications = notifications
        self._preferences = preferences
        self._selector = selector
        self._cascade = cascade
        self._status = status_publisher
        self._dead_letters = dead_letters
        self._metrics = metrics
        self._logger = logger or logging.getLogger(__name__)

    async def dispatch(
        self,
        raw_event: dict[str, Any] | InboundEvent,
        now: datetime | None = None,
    ) -> DispatchResult:
        """Process one inbound event.

        ``now`` overrides the clock used for the quiet-hours check.

        Returns a failed result (never raises) for invalid events and for
        unexpected faults; the inbox mark is kept in the latter case.
        """
        if isinstance(raw_event, InboundEvent):
            event = raw_event
        else:
            try:
                event = InboundEvent.model_validate(raw_event)
            except ValidationError as exc:
                self._logger.error(
                    "Invalid event schema",
                    extra={"event_id": _raw_event_id(raw_event), "errors": exc.errors(include_url=False)},
                )
                return DispatchResult(success=False, error=INVALID_EVENT)

        with log_context(
            event_id=event.event_id,
            correlation_id=event.correlation_id,
            trace_id=event.trace_id,
        ):
            try:
                if await self._inbox.is_processed(event.event_id):
                    return self._duplicate(event)
                return await self._process(event, now)
            except Exception as exc:
                self._logger.exception("Failed to dispatch notification")
                await self._dead_letters.publish(event.to_wire(), exc)
                return DispatchResult(success=False, error=str(exc))

    def _duplicate(self, event: InboundEvent) -> DispatchResult:
        self._logger.info("Event already processed (dedupe)")
        self._metrics.record_dedupe_hit()
        return DispatchResult(success=True, reason="duplicate")

    async def _process(self, event: InboundEvent, now: datetime | None) -> DispatchResult:
        # The conditional insert is authoritative: losing the race is a duplicate
        if not await self._inbox.mark_processed(event.event_id):
            return self._duplicate(event)

        self._metrics.record_received(event.event_type)
        recipient = event.recipient.to_entity()
        preferences = await self._preferences.resolve(recipient.user_id)
        self._selector.check_quiet_hours(preferences, event.event_id, now)

        try:
            notification = await self._notifications.save(
                Notification(
                    event_id=event.event_id,
                    event_type=event.event_type,
                    template_key=event.template_key,
                    recipient=recipient,
                    metadata=dict(event.data),
                    correlation_id=event.correlation_id,
                    trace_id=event.trace_id,
                ),
            )
        except DuplicateNotificationError:
            # Inbox entry expired but the notification is still stored
            return self._duplicate(event)
        self._logger.info(
            "Notification created",
            extra={"notification_id": str(notification.id), "recipient": mask_recipient(recipient)},
        )

        channels = self._selector.select(recipient, event.event_type, preferences)
        outcome = await self._cascade.run(notification, channels, preferences.locale)

        if outcome.succeeded:
            notification.mark_sent()
            await self._notifications.update(notification)
            await self._status.publish(notification, outcome.successful_attempt)
            return DispatchResult(success=True, notification_id=notification.id)

        error = outcome.last_error or NO_ELIGIBLE_CHANNELS
        notification.mark_failed(error)
        await self._notifications.update(notification)
        await self._status.publish(notification)
        self._logger.warning(
            "All channels failed",
            extra={"notification_id": str(notification.id), "channels": channels, "error": error},
        )
        reason = "all_channels_failed" if outcome.attempts else "no_eligible_channels"
        return DispatchResult(success=True, notification_id=notification.id, reason=reason)


def _raw_event_id(raw_event: Any) -> Any:
    return raw_event.get("eventId") if isinstance(raw_event, dict) else None
