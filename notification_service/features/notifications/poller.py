"""Periodic sweep resurfacing notifications due for retry.

Only needed when the event bus has no native delayed redelivery. Each tick
fetches a bounded batch of due notifications and hands them to the retry
engine one by one; a failing notification never blocks the rest.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
import logging
from typing import TYPE_CHECKING

from apscheduler.triggers.interval import IntervalTrigger

if TYPE_CHECKING:
    from apscheduler.schedulers.base import BaseScheduler

    from notification_service.features.notifications.ports import NotificationRepository
    from notification_service.features.notifications.retry import RetryEngine

JOB_ID = "notification_retry_poller"


@dataclass(slots=True)
class PollSummary:
    found: int = 0
    errors: int = 0
    reasons: Counter[str] = field(default_factory=Counter)


class RetryPoller:
    """Feed due notifications to the retry engine on a fixed interval."""

    def __init__(
        self,
        *,
        notifications: NotificationRepository,
        engine: RetryEngine,
        interval_seconds: float = 30.0,
        batch_size: int = 100,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self._notifications = notifications
        self._engine = engine
        self.interval_seconds = interval_seconds
        self.batch_size = batch_size
        self._logger = logger or logging.getLogger(__name__)

    async def run_once(self, now: datetime | None = None) -> PollSummary:
        """Process one batch of due notifications. Never raises."""
        summary = PollSummary()
        now = now or datetime.now(UTC)
        try:
            pending = await self._notifications.find_pending_retries(now, limit=self.batch_size)
        except Exception:
            self._logger.exception("Error in retry poller")
            summary.errors += 1
            return summary

        summary.found = len(pending)
        if not pending:
            self._logger.debug("No pending retries found")
            return summary

        self._logger.info("Processing pending retries", extra={"count": summary.found})
        for notification in pending:
            try:
                result = await self._engine.retry(notification.id, now)
            except Exception:
                summary.errors += 1
                self._logger.exception(
                    "Failed to retry notification",
                    extra={"notification_id": str(notification.id)},
                )
                continue
            summary.reasons[result.reason] += 1

        self._logger.info(
            "Finished processing retries",
            extra={"processed": summary.found, "errors": summary.errors, "reasons": dict(summary.reasons)},
        )
        return summary

    async def _tick(self) -> None:
        await self.run_once()

    def register(self, scheduler: BaseScheduler) -> None:
        """Add the sweep to ``scheduler``; the first run happens immediately."""
        scheduler.add_job(
            func=self._tick,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=JOB_ID,
            name="Retry due notifications",
            replace_existing=True,
            next_run_time=datetime.now(UTC),
        )
        self._logger.info("Retry poller scheduled", extra={"interval_seconds": self.interval_seconds})
