"""Retry engine for notifications in RETRY or FAILED state."""

from __future__ import annotations

from datetime import UTC, datetime
import logging
from typing import TYPE_CHECKING
import uuid

from notification_service.features.notifications.schemas import RetryResult
from notification_service.infra.logging import log_context

if TYPE_CHECKING:
    from notification_service.features.notifications.backoff import BackoffPolicy
    from notification_service.features.notifications.cascade import ChannelCascade
    from notification_service.features.notifications.ports import (
        AttemptRepository,
        NotificationRepository,
    )
    from notification_service.features.notifications.preferences import PreferencesService
    from notification_service.features.notifications.publisher import StatusPublisher
    from notification_service.features.notifications.selector import ChannelSelector

MAX_RETRY_ATTEMPTS_REACHED = "Max retry attempts reached"
NO_CHANNELS_AVAILABLE = "No channels available for retry"


class RetryEngine:
    """Re-run the cascade over channels that still have budget left.

    The backoff sequence doubles as the overall retry budget: once prior
    attempts plus this round's channels reach its length the notification
    is failed for good instead of being rescheduled.
    """

    def __init__(
        self,
        *,
        notifications: NotificationRepository,
        attempts: AttemptRepository,
        selector: ChannelSelector,
        cascade: ChannelCascade,
        status_publisher: StatusPublisher,
        backoff: BackoffPolicy,
        preferences: PreferencesService,
        max_attempts_per_channel: int = 3,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self._notifications = notifications
        self._attempts = attempts
        self._selector = selector
        self._cascade = cascade
        self._status = status_publisher
        self._backoff = backoff
        self._preferences = preferences
        self._max_per_channel = max_attempts_per_channel
        self._logger = logger or logging.getLogger(__name__)

    async def retry(self, notification_id: uuid.UUID, now: datetime | None = None) -> RetryResult:
        """Run one retry round. Infrastructure faults propagate to the caller."""
        with log_context(notification_id=str(notification_id)):
            notification = await self._notifications.find_by_id(notification_id)
            if notification is None:
                self._logger.warning("Notification not found for retry")
                return RetryResult(success=False, reason="not_found", notification_id=notification_id)

            if not notification.is_retryable:
                self._logger.warning(
                    "Notification not in retryable state",
                    extra={"status": notification.status.value},
                )
                return RetryResult(success=False, reason="not_retryable", notification_id=notification_id)

            history = list(await self._attempts.find_by_notification_id(notification_id))
            channels = self._selector.retry_candidates(
                notification.recipient,
                history,
                self._max_per_channel,
            )

            if not channels:
                self._logger.info(
                    "No channels available for retry",
                    extra={"channels_tried": notification.channels_tried},
                )
                notification.mark_failed(notification.last_error or NO_CHANNELS_AVAILABLE)
                await self._notifications.update(notification)
                await self._status.publish(notification)
                return RetryResult(
                    success=False,
                    reason="no_channels_available",
                    notification_id=notification_id,
                )

            preferences = await self._preferences.resolve(notification.recipient.user_id)
            outcome = await self._cascade.run(notification, channels, preferences.locale, history)

            if outcome.succeeded:
                attempt = outcome.successful_attempt
                notification.mark_sent()
                await self._notifications.update(notification)
                await self._status.publish(notification, attempt)
                self._logger.info("Notification retry succeeded", extra={"channel": attempt.channel})
                return RetryResult(
                    success=True,
                    reason="sent",
                    notification_id=notification_id,
                    channel=attempt.channel,
                )

            total_attempts = len(history) + len(channels)
            next_attempt_at = self._backoff.next_delay(total_attempts, now or datetime.now(UTC))

            if next_attempt_at is None:
                notification.mark_failed(MAX_RETRY_ATTEMPTS_REACHED)
                await self._notifications.update(notification)
                await self._status.publish(notification)
                self._logger.warning(
                    "Notification retry exhausted",
                    extra={"total_attempts": total_attempts, "max_attempts": len(self._backoff)},
                )
                return RetryResult(
                    success=False,
                    reason="max_attempts_reached",
                    notification_id=notification_id,
                )

            notification.schedule_retry(next_attempt_at, outcome.last_error)
            await self._notifications.update(notification)
            self._logger.info(
                "Notification retry scheduled",
                extra={"next_attempt_at": next_attempt_at.isoformat(), "attempt_count": total_attempts},
            )
            return RetryResult(
                success=False,
                reason="scheduled_for_retry",
                notification_id=notification_id,
                next_attempt_at=next_attempt_at,
            )
