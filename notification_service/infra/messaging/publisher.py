"""Event publishers backing the notification engine's outbound port."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from notification_service.infra.messaging.exchanges import notifications_exchange

if TYPE_CHECKING:
    from faststream.rabbit import RabbitBroker

    from notification_service.core.settings import RabbitSettings

logger = logging.getLogger(__name__)


class BrokerEventPublisher:
    """Publish JSON payloads to the notifications exchange, subject as routing key."""

    def __init__(self, broker: RabbitBroker, settings: RabbitSettings) -> None:
        self._broker = broker
        self._exchange = notifications_exchange(settings)

    async def publish(self, subject: str, payload: dict[str, Any]) -> None:
        await self._broker.publish(
            payload,
            routing_key=subject,
            exchange=self._exchange,
            persist=True,
        )
        logger.debug("Published event", extra={"subject": subject})


class NullEventPublisher:
    """Used when messaging is disabled; events are logged and dropped."""

    async def publish(self, subject: str, payload: dict[str, Any]) -> None:
        logger.info(
            "Messaging disabled, dropping event",
            extra={"subject": subject, "event_id": payload.get("eventId")},
        )
