"""Channel selection for first dispatch and for retries."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import datetime
import logging
from typing import TYPE_CHECKING

from notification_service.features.notifications.entities import (
    CHANNEL_PRIORITY,
    Attempt,
    Channel,
    Preferences,
    Recipient,
)

if TYPE_CHECKING:
    from notification_service.infra.logging import ContextBoundLogger


class ChannelSelector:
    """Compute ordered candidate channels (push, then email, then sms).

    First dispatch honours preferences; retries only look at recipient
    capabilities, the deliverer restriction on SMS and the per-channel cap.
    """

    def __init__(self, logger: logging.Logger | ContextBoundLogger | None = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    def select(
        self,
        recipient: Recipient,
        event_type: str,
        preferences: Preferences | None = None,
    ) -> list[str]:
        """Channels eligible for a fresh event, in priority order."""
        preferences = preferences or Preferences.defaults()
        candidates: list[str] = []
        for channel in CHANNEL_PRIORITY:
            if not recipient.has_capability(channel):
                continue
            if not preferences.is_event_channel_enabled(event_type, channel):
                continue
            if channel is Channel.SMS and not (
                recipient.is_deliverer or preferences.is_channel_enabled(Channel.SMS)
            ):
                continue
            candidates.append(channel.value)
        return candidates

    def retry_candidates(
        self,
        recipient: Recipient,
        attempts: Iterable[Attempt],
        max_attempts_per_channel: int,
    ) -> list[str]:
        """Channels still worth retrying, in priority order."""
        counts = attempt_counts(attempts)
        candidates: list[str] = []
        for channel in CHANNEL_PRIORITY:
            if not recipient.has_capability(channel):
                continue
            if channel is Channel.SMS and not recipient.is_deliverer:
                continue
            if counts[channel.value] >= max_attempts_per_channel:
                continue
            candidates.append(channel.value)
        return candidates

    def check_quiet_hours(
        self,
        preferences: Preferences,
        event_id: str,
        now: datetime | None = None,
    ) -> bool:
        """Report whether the user is in quiet hours.

        Advisory only: nothing is suppressed or delayed.
        """
        in_quiet_hours = preferences.is_in_quiet_hours(now)
        if in_quiet_hours:
            self._logger.info(
                "User in quiet hours, dispatching anyway",
                extra={"event_id": event_id, "user_id": preferences.user_id},
            )
        return in_quiet_hours


def attempt_counts(attempts: Iterable[Attempt]) -> Counter[str]:
    """Number of recorded attempts per channel."""
    return Counter(attempt.channel for attempt in attempts)
