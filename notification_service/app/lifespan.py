"""Application lifespan management.

Startup Order:
1. Core (logging)
2. Database (create tables, seed default templates)
3. Messaging broker (created, subscriber attached)
4. Notification engine wiring
5. Broker connection (degraded mode when RabbitMQ is unavailable)
6. Scheduler (retry poller, inbox purge)

Shutdown Order: Reverse of startup (what starts first, shuts down last)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import TYPE_CHECKING

from notification_service.core.settings import (
    get_app_settings,
    get_logging_settings,
    get_notification_settings,
    get_provider_settings,
    get_rabbit_settings,
)
from notification_service.features.notifications.container import build_container
from notification_service.features.notifications.templates import seed_default_templates
from notification_service.infra.database import close_database, get_session_factory, init_database
from notification_service.infra.logging import setup_logging, shutdown as shutdown_logging
from notification_service.infra.messaging import (
    BrokerEventPublisher,
    NullEventPublisher,
    create_broker,
    register_inbound_handler,
    start_broker,
    stop_broker,
)
from notification_service.tasks.scheduler import (
    setup_scheduled_jobs,
    start_scheduler,
    stop_scheduler,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

    from notification_service.features.notifications.dispatcher import NotificationDispatcher
    from notification_service.features.notifications.ports import EventPublisher

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start every service in dependency order and stop them in reverse."""
    app_settings = get_app_settings()
    rabbit_settings = get_rabbit_settings()
    notification_settings = get_notification_settings()

    setup_logging(log_settings=get_logging_settings(), force=True)
    logger.info(
        "Application starting",
        extra={"service": app_settings.service_name, "environment": app_settings.environment},
    )

    await init_database()
    session_factory = get_session_factory()

    def current_dispatcher() -> NotificationDispatcher | None:
        container = getattr(app.state, "notifications", None)
        return container.dispatcher if container is not None else None

    broker = create_broker(rabbit_settings)
    event_publisher: EventPublisher
    if broker is not None:
        register_inbound_handler(broker, rabbit_settings, current_dispatcher)
        event_publisher = BrokerEventPublisher(broker, rabbit_settings)
    else:
        event_publisher = NullEventPublisher()

    container = build_container(
        session_factory=session_factory,
        event_publisher=event_publisher,
        notification_settings=notification_settings,
        provider_settings=get_provider_settings(),
        rabbit_settings=rabbit_settings,
    )
    counts = await seed_default_templates(container.templates)
    logger.info("Default templates seeded", extra=counts)
    app.state.notifications = container

    if broker is not None:
        try:
            await start_broker(broker, rabbit_settings)
        except Exception as e:
            logger.warning(
                "RabbitMQ unavailable, continuing in degraded mode",
                extra={"error": str(e)},
            )

    setup_scheduled_jobs(
        container,
        retry_poller_enabled=notification_settings.retry_poller_enabled,
        retention_days=notification_settings.retention_days,
    )
    await start_scheduler()

    logger.info("Application startup complete")
    try:
        yield
    finally:
        logger.info("Application shutting down")
        await stop_scheduler()
        await stop_broker(broker)
        app.state.notifications = None
        await close_database()
        logger.info("Application shutdown complete")
        shutdown_logging()
