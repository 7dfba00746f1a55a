"""Unit tests for the FastStream messaging adapters."""

from __future__ import annotations

import logging
from typing import Any

from faststream.rabbit import ExchangeType
from faststream.rabbit.testing import TestRabbitBroker
import pytest

from notification_service.core.settings import RabbitSettings
from notification_service.features.notifications.schemas import DispatchResult
from notification_service.infra.messaging import (
    BrokerEventPublisher,
    NullEventPublisher,
    build_inbound_handler,
    create_broker,
    register_inbound_handler,
)
from notification_service.infra.messaging.exchanges import (
    bind_inbound_routing_keys,
    inbound_queue,
    notifications_exchange,
)
from tests.fixtures.notifications import event_payload


class FakeDispatcher:
    def __init__(self, result: DispatchResult | None = None, error: Exception | None = None) -> None:
        self.result = result or DispatchResult(success=True, reason="sent")
        self.error = error
        self.received: list[dict[str, Any]] = []

    async def dispatch(self, raw_event):
        self.received.append(raw_event)
        if self.error is not None:
            raise self.error
        return self.result


class FakeBroker:
    """Records publish and declare calls made by the adapters."""

    def __init__(self) -> None:
        self.published: list[tuple[Any, dict[str, Any]]] = []
        self.bindings: list[str] = []

    async def publish(self, message, **kwargs):
        self.published.append((message, kwargs))

    async def declare_queue(self, queue):
        broker = self

        class _Queue:
            async def bind(self, exchange, routing_key):
                broker.bindings.append(routing_key)

        return _Queue()

    async def declare_exchange(self, exchange):
        return exchange


def enabled_settings(**overrides) -> RabbitSettings:
    return RabbitSettings(enabled=True, **overrides)


@pytest.mark.unit
class TestInboundHandler:
    async def test_passes_body_to_dispatcher(self):
        dispatcher = FakeDispatcher()
        handler = build_inbound_handler(lambda: dispatcher)

        await handler(event_payload())

        assert dispatcher.received == [event_payload()]

    async def test_swallows_dispatcher_errors(self, caplog):
        dispatcher = FakeDispatcher(error=RuntimeError("db gone"))
        handler = build_inbound_handler(lambda: dispatcher)

        await handler(event_payload())

        assert "Unhandled error dispatching inbound event" in caplog.text

    async def test_drops_event_when_engine_not_ready(self, caplog):
        handler = build_inbound_handler(lambda: None)

        await handler(event_payload())

        assert "Dispatcher not ready" in caplog.text

    async def test_logs_rejections(self, caplog):
        dispatcher = FakeDispatcher(DispatchResult(success=False, error="Invalid event schema"))

        await build_inbound_handler(lambda: dispatcher)({"eventId": ""})

        assert "Inbound event rejected" in caplog.text


@pytest.mark.unit
class TestPublishers:
    async def test_broker_publisher_routes_by_subject(self):
        broker = FakeBroker()
        publisher = BrokerEventPublisher(broker, enabled_settings(exchange_name="notif"))

        await publisher.publish("notifications.status.updated", {"notificationId": "n1"})

        [(message, kwargs)] = broker.published
        assert message == {"notificationId": "n1"}
        assert kwargs["routing_key"] == "notifications.status.updated"
        assert kwargs["exchange"].name == "notif"
        assert kwargs["persist"] is True

    async def test_null_publisher_drops(self, caplog):
        with caplog.at_level(logging.INFO, logger="notification_service.infra.messaging"):
            await NullEventPublisher().publish("notifications.dlq", {"eventId": "evt-1"})

        assert "Messaging disabled" in caplog.text


@pytest.mark.unit
class TestTopology:
    def test_exchange_is_durable_topic(self):
        exchange = notifications_exchange(enabled_settings())

        assert exchange.name == "notifications"
        assert exchange.type == ExchangeType.TOPIC
        assert exchange.durable

    def test_inbound_queue_uses_first_routing_key(self):
        queue = inbound_queue(enabled_settings())

        assert queue.name == "notification-service.inbound-events"
        assert queue.routing_key == "orders.#"
        assert queue.arguments["x-dead-letter-routing-key"] == "notifications.dlq"

    async def test_binds_remaining_routing_keys(self):
        broker = FakeBroker()

        await bind_inbound_routing_keys(broker, enabled_settings())

        assert broker.bindings == ["deliveries.#", "rentals.#"]

    async def test_single_routing_key_needs_no_binding(self):
        broker = FakeBroker()

        await bind_inbound_routing_keys(broker, enabled_settings(inbound_routing_keys=["orders.#"]))

        assert broker.bindings == []

    def test_no_broker_when_disabled(self):
        assert create_broker(RabbitSettings(enabled=False)) is None


@pytest.mark.unit
class TestInboundSubscription:
    async def test_in_memory_broker_delivers_to_dispatcher(self, harness):
        settings = enabled_settings()
        broker = create_broker(settings)
        register_inbound_handler(broker, settings, lambda: harness.dispatcher)

        async with TestRabbitBroker(broker) as test_broker:
            await test_broker.publish(
                event_payload(),
                routing_key="orders.paid",
                exchange=notifications_exchange(settings),
            )

        [notification] = harness.notifications.items.values()
        assert notification.event_id == "evt-1"
        assert notification.status == "SENT"
