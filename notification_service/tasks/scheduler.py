"""APScheduler integration for in-process periodic jobs.

Jobs:
- Retry poller (interval, when enabled)
- Inbox purge (hourly): drop dedup records older than the dedup window
- Notification retention (daily): drop finished notifications past retention
"""

from __future__ import annotations

from datetime import timedelta
import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

if TYPE_CHECKING:
    from notification_service.features.notifications.container import NotificationContainer

logger = logging.getLogger(__name__)

# Initialize APScheduler (runs in same process as FastAPI)
scheduler = AsyncIOScheduler(
    timezone="UTC",
    job_defaults={
        "coalesce": True,  # Combine multiple pending executions into one
        "max_instances": 1,  # Only one instance of each job at a time
        "misfire_grace_time": 60,  # Allow 60s delay before considering job missed
    },
)


def setup_scheduled_jobs(
    container: NotificationContainer,
    *,
    retry_poller_enabled: bool = True,
    retention_days: int | None = None,
) -> None:
    """Register the notification jobs on the module scheduler.

    The retention job is only added when ``retention_days`` is given.
    """
    if retry_poller_enabled:
        container.poller.register(scheduler)
    else:
        logger.info("Retry poller disabled; relying on bus redelivery")

    scheduler.add_job(
        func=_purge_inbox,
        args=[container],
        trigger=IntervalTrigger(hours=1),
        id="inbox_purge",
        name="Purge expired inbox entries",
        replace_existing=True,
    )
    if retention_days is not None:
        scheduler.add_job(
            func=_purge_old_notifications,
            args=[container, timedelta(days=retention_days)],
            trigger=IntervalTrigger(days=1),
            id="notification_retention",
            name="Delete finished notifications past retention",
            replace_existing=True,
        )
    logger.info("Scheduled %d jobs", len(scheduler.get_jobs()))


async def _purge_inbox(container: NotificationContainer) -> None:
    try:
        deleted = await container.inbox.purge_expired()
    except Exception:
        logger.exception("Failed to purge inbox")
        return
    logger.info("Purged expired inbox entries", extra={"deleted": deleted})


async def _purge_old_notifications(container: NotificationContainer, retention: timedelta) -> None:
    try:
        await container.erasure.purge_finished(retention)
    except Exception:
        logger.exception("Failed to purge expired notifications")


async def start_scheduler() -> None:
    """Start the APScheduler.

    Call during application startup after setup_scheduled_jobs().
    """
    if not scheduler.running:
        scheduler.start()
        logger.info("APScheduler started with %d jobs", len(scheduler.get_jobs()))
    else:
        logger.warning("APScheduler is already running")


async def stop_scheduler() -> None:
    """Stop the APScheduler gracefully.

    Call during application shutdown.
    """
    if scheduler.running:
        scheduler.remove_all_jobs()
        scheduler.shutdown(wait=False)
        logger.info("APScheduler stopped")
    else:
        logger.debug("APScheduler is not running")
