"""RabbitMQ broker lifecycle using FastStream.

The broker is created by the application lifespan, subscribers are attached
before it starts, and it is closed on shutdown. When messaging is disabled
no broker exists and publishing falls back to a logging no-op.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from faststream.rabbit import RabbitBroker

from notification_service.infra.messaging.exchanges import bind_inbound_routing_keys

if TYPE_CHECKING:
    from notification_service.core.settings import RabbitSettings

logger = logging.getLogger(__name__)


def create_broker(settings: RabbitSettings) -> RabbitBroker | None:
    """Create a broker for ``settings`` or ``None`` when messaging is disabled."""
    if not settings.is_configured:
        logger.warning("RabbitMQ not configured - messaging features disabled")
        return None

    return RabbitBroker(
        settings.get_url(),
        graceful_timeout=settings.graceful_timeout,
        max_consumers=settings.prefetch_count,
        logger=logger,
    )


async def start_broker(broker: RabbitBroker, settings: RabbitSettings) -> None:
    """Connect the broker and bind every inbound routing key.

    The connection is wrapped with a timeout so an unavailable RabbitMQ cannot
    block startup indefinitely.

    Raises:
        ConnectionError: If the connection does not succeed within the timeout.
    """
    logger.info(
        "Starting RabbitMQ broker",
        extra={"host": settings.host, "connection_timeout": settings.connection_timeout},
    )
    try:
        await asyncio.wait_for(broker.start(), timeout=settings.connection_timeout)
    except TimeoutError:
        error_msg = f"RabbitMQ connection timeout after {settings.connection_timeout}s"
        logger.error(error_msg, extra={"connection_timeout": settings.connection_timeout})
        raise ConnectionError(error_msg) from None

    await bind_inbound_routing_keys(broker, settings)
    logger.info(
        "RabbitMQ broker started successfully",
        extra={"routing_keys": settings.inbound_routing_keys},
    )


async def stop_broker(broker: RabbitBroker | None) -> None:
    if broker is None:
        logger.debug("RabbitMQ not configured, skipping broker shutdown")
        return

    logger.info("Stopping RabbitMQ broker")
    try:
        await broker.close()
        logger.info("RabbitMQ broker stopped successfully")
    except Exception as e:
        logger.exception("Error stopping RabbitMQ broker", extra={"error": str(e)})
