"""Sequential fallback across candidate channels.

Shared by first dispatch and retries: for each channel in order, look up
the template, record a PENDING attempt, call the sender, finalize and
persist the attempt, and stop at the first success.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
import logging
from typing import TYPE_CHECKING

from notification_service.features.notifications.channels.base import SendResult
from notification_service.features.notifications.entities import Attempt, Notification

if TYPE_CHECKING:
    from notification_service.features.notifications.channels.base import ChannelSender
    from notification_service.features.notifications.metrics import NotificationMetrics
    from notification_service.features.notifications.ports import (
        AttemptRepository,
        TemplateRepository,
    )

SENDER_EXCEPTION = "SENDER_EXCEPTION"


class ChannelOutcomeKind(StrEnum):
    SKIPPED = "skipped"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ChannelOutcome:
    channel: str
    kind: ChannelOutcomeKind
    attempt: Attempt | None = None
    error: str | None = None


@dataclass(slots=True)
class CascadeOutcome:
    """Result of one pass over the candidate channels."""

    outcomes: list[ChannelOutcome] = field(default_factory=list)

    @property
    def successful_attempt(self) -> Attempt | None:
        for outcome in self.outcomes:
            if outcome.kind is ChannelOutcomeKind.SUCCESS:
                return outcome.attempt
        return None

    @property
    def succeeded(self) -> bool:
        return self.successful_attempt is not None

    @property
    def last_error(self) -> str | None:
        """Error of the last failed delivery; skipped channels never count."""
        for outcome in reversed(self.outcomes):
            if outcome.kind is ChannelOutcomeKind.FAILED and outcome.error:
                return outcome.error
        return None

    @property
    def attempts(self) -> list[Attempt]:
        return [outcome.attempt for outcome in self.outcomes if outcome.attempt is not None]


class ChannelCascade:
    """Try channels one after the other until one delivers."""

    def __init__(
        self,
        senders: Mapping[str, ChannelSender],
        templates: TemplateRepository,
        attempts: AttemptRepository,
        metrics: NotificationMetrics,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self._senders = senders
        self._templates = templates
        self._attempts = attempts
        self._metrics = metrics
        self._logger = logger or logging.getLogger(__name__)

    async def run(
        self,
        notification: Notification,
        channels: Sequence[str],
        locale: str,
        prior_attempts: Sequence[Attempt] = (),
    ) -> CascadeOutcome:
        result = CascadeOutcome()
        for channel in channels:
            attempt_number = sum(1 for a in prior_attempts if a.channel == channel) + 1
            outcome = await self.try_channel(notification, channel, locale, attempt_number)
            result.outcomes.append(outcome)
            if outcome.kind is ChannelOutcomeKind.SUCCESS:
                break
        return result

    async def try_channel(
        self,
        notification: Notification,
        channel: str,
        locale: str,
        attempt_number: int = 1,
    ) -> ChannelOutcome:
        """Run one channel; template and persistence faults propagate."""
        sender = self._senders.get(channel)
        if sender is None:
            self._logger.warning("No sender configured for channel", extra={"channel": channel})
            return ChannelOutcome(channel, ChannelOutcomeKind.SKIPPED, error="No sender configured")

        template = await self._templates.find_by_key(notification.template_key, channel, locale)
        if template is None:
            self._logger.warning(
                "Template not found",
                extra={"template_key": notification.template_key, "channel": channel, "locale": locale},
            )
            return ChannelOutcome(channel, ChannelOutcomeKind.SKIPPED, error="Template not found")

        attempt = Attempt(
            notification_id=notification.id,
            channel=channel,
            provider=sender.provider,
            attempt_number=attempt_number,
        )
        notification.mark_channel_tried(channel)
        self._metrics.record_dispatched(channel, sender.provider)

        with self._metrics.inflight(channel):
            try:
                result = await sender.send(notification, template)
            except Exception as exc:
                self._logger.exception(
                    "Sender raised, treating as failed delivery",
                    extra={"notification_id": str(notification.id), "channel": channel},
                )
                result = SendResult.failed(str(exc) or type(exc).__name__, SENDER_EXCEPTION)

        if result.success:
            attempt.mark_success(result.provider_message_id)
            self._metrics.record_sent(channel, sender.provider, attempt.duration_ms)
            await self._attempts.save(attempt)
            self._logger.info(
                "Channel delivered notification",
                extra={"notification_id": str(notification.id), "channel": channel, "provider": sender.provider},
            )
            return ChannelOutcome(channel, ChannelOutcomeKind.SUCCESS, attempt=attempt)

        attempt.mark_failed(result.error, result.error_code)
        self._metrics.record_failed(channel, sender.provider, result.error_code, attempt.duration_ms)
        if result.rate_limited:
            self._metrics.record_rate_limited(sender.provider)
        await self._attempts.save(attempt)
        self._logger.warning(
            "Channel delivery failed, trying fallback",
            extra={"notification_id": str(notification.id), "channel": channel, "error": result.error},
        )
        return ChannelOutcome(channel, ChannelOutcomeKind.FAILED, attempt=attempt, error=result.error)
