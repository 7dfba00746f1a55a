"""FastStream exchange and queue definitions.

All traffic of the service goes through one durable topic exchange:
- inbound business events, routed by subject (``orders.#``, ``rentals.#``...)
- ``notifications.status.updated`` status events
- ``notifications.dlq`` dead letters

Inbound events are consumed from a single shared queue so every event is
handled by exactly one worker.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from faststream.rabbit import ExchangeType, RabbitExchange, RabbitQueue

if TYPE_CHECKING:
    from faststream.rabbit import RabbitBroker

    from notification_service.core.settings import RabbitSettings

logger = logging.getLogger(__name__)

INBOUND_QUEUE = "inbound-events"


def notifications_exchange(settings: RabbitSettings) -> RabbitExchange:
    return RabbitExchange(
        name=settings.exchange_name,
        type=ExchangeType.TOPIC,
        durable=True,
        auto_delete=False,
    )


def inbound_queue(settings: RabbitSettings) -> RabbitQueue:
    """Shared inbound queue, bound with the first inbound routing key.

    Remaining routing keys are bound by :func:`bind_inbound_routing_keys`
    once the broker is connected. Messages rejected by the broker are
    dead-lettered to the DLQ subject on the same exchange.
    """
    routing_key = settings.inbound_routing_keys[0] if settings.inbound_routing_keys else "#"
    return RabbitQueue(
        name=settings.queue_name(INBOUND_QUEUE),
        durable=True,
        auto_delete=False,
        routing_key=routing_key,
        arguments={
            "x-dead-letter-exchange": settings.exchange_name,
            "x-dead-letter-routing-key": settings.dlq_subject,
        },
    )


async def bind_inbound_routing_keys(broker: RabbitBroker, settings: RabbitSettings) -> None:
    """Bind the extra inbound routing keys to the shared inbound queue."""
    extra_keys = settings.inbound_routing_keys[1:]
    if not extra_keys:
        return

    queue = await broker.declare_queue(inbound_queue(settings))
    exchange = await broker.declare_exchange(notifications_exchange(settings))
    for routing_key in extra_keys:
        await queue.bind(exchange, routing_key=routing_key)
        logger.debug("Bound inbound routing key", extra={"routing_key": routing_key})
