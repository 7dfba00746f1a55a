"""Inbound event subscriber.

Every message on the inbound queue is handed to the dispatcher. The handler
never raises: failures are already routed to the dead-letter subject by the
dispatcher, so the message is always acknowledged.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
import logging
from typing import TYPE_CHECKING, Any

from notification_service.infra.messaging.exchanges import (
    INBOUND_QUEUE,
    inbound_queue,
    notifications_exchange,
)

if TYPE_CHECKING:
    from faststream.rabbit import RabbitBroker

    from notification_service.core.settings import RabbitSettings
    from notification_service.features.notifications.dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)

InboundHandler = Callable[[dict[str, Any]], Awaitable[None]]


def build_inbound_handler(get_dispatcher: Callable[[], NotificationDispatcher | None]) -> InboundHandler:
    """Create the subscriber coroutine.

    ``get_dispatcher`` is resolved per message because the subscriber is
    registered before the engine is wired.
    """

    async def handle_inbound_event(body: dict[str, Any]) -> None:
        event_id = body.get("eventId") if isinstance(body, dict) else None
        dispatcher = get_dispatcher()
        if dispatcher is None:
            logger.error("Dispatcher not ready, dropping inbound event", extra={"event_id": event_id})
            return

        try:
            result = await dispatcher.dispatch(body)
        except Exception:
            logger.exception("Unhandled error dispatching inbound event", extra={"event_id": event_id})
            return

        if result.success:
            logger.info(
                "Inbound event processed",
                extra={
                    "event_id": event_id,
                    "notification_id": str(result.notification_id) if result.notification_id else None,
                    "reason": result.reason,
                },
            )
        else:
            logger.warning(
                "Inbound event rejected",
                extra={"event_id": event_id, "error": result.error},
            )

    return handle_inbound_event


def register_inbound_handler(
    broker: RabbitBroker,
    settings: RabbitSettings,
    get_dispatcher: Callable[[], NotificationDispatcher | None],
) -> InboundHandler:
    """Attach the inbound subscriber to ``broker``; call before the broker starts."""
    handler = build_inbound_handler(get_dispatcher)
    broker.subscriber(inbound_queue(settings), exchange=notifications_exchange(settings))(handler)
    logger.debug(
        "Registered inbound subscriber",
        extra={"queue": settings.queue_name(INBOUND_QUEUE)},
    )
    return handler
