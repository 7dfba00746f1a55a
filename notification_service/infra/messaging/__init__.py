"""RabbitMQ messaging via FastStream: broker, topology, publisher and inbound handler."""

from notification_service.infra.messaging.broker import create_broker, start_broker, stop_broker
from notification_service.infra.messaging.handlers import build_inbound_handler, register_inbound_handler
from notification_service.infra.messaging.publisher import BrokerEventPublisher, NullEventPublisher

__all__ = [
    "BrokerEventPublisher",
    "NullEventPublisher",
    "build_inbound_handler",
    "create_broker",
    "register_inbound_handler",
    "start_broker",
    "stop_broker",
]
