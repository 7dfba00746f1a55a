"""Unit tests for status and dead-letter publishing."""

from __future__ import annotations

from datetime import UTC, datetime
import uuid

import pytest

from notification_service.features.notifications.entities import Attempt
from notification_service.features.notifications.publisher import (
    DeadLetterPublisher,
    StatusPublisher,
    build_status_event,
)
from tests.fixtures.notifications import RecordingEventPublisher, make_notification


@pytest.mark.unit
class TestBuildStatusEvent:
    def test_camel_case_wire_payload(self):
        notification = make_notification(correlation_id="c1", trace_id="t1")
        notification.id = uuid.uuid4()
        notification.mark_sent()
        attempt = Attempt(notification_id=notification.id, channel="email", provider="sendgrid")
        attempt.mark_success("m-1")
        now = datetime(2026, 1, 1, tzinfo=UTC)

        payload = build_status_event(notification, attempt, now).to_wire()

        assert payload == {
            "eventId": "evt-1",
            "notificationId": str(notification.id),
            "eventType": "order.paid",
            "status": "SENT",
            "channel": "email",
            "provider": "sendgrid",
            "providerMessageId": "m-1",
            "recipient": {"userId": "user-1", "role": "customer"},
            "timestamp": "2026-01-01T00:00:00Z",
            "correlationId": "c1",
            "traceId": "t1",
        }

    def test_failure_payload_carries_error_without_channel(self):
        notification = make_notification()
        notification.mark_failed("No eligible channels")

        payload = build_status_event(notification).to_wire()

        assert payload["status"] == "FAILED"
        assert payload["error"] == "No eligible channels"
        assert "channel" not in payload
        assert "provider" not in payload


@pytest.mark.unit
class TestStatusPublisher:
    async def test_publishes_on_status_subject(self):
        bus = RecordingEventPublisher()
        notification = make_notification()
        notification.mark_sent()

        outcome = await StatusPublisher(bus).publish(notification)

        assert outcome.success
        assert bus.published[0][0] == "notifications.status.updated"

    async def test_custom_subject(self):
        bus = RecordingEventPublisher()

        await StatusPublisher(bus, "custom.status").publish(make_notification())

        assert bus.published[0][0] == "custom.status"

    async def test_failure_is_reported_not_raised(self):
        bus = RecordingEventPublisher()
        bus.fail_with = ConnectionError("bus down")

        outcome = await StatusPublisher(bus).publish(make_notification())

        assert not outcome.success
        assert outcome.error == "bus down"


@pytest.mark.unit
class TestDeadLetterPublisher:
    async def test_payload_is_event_plus_error(self):
        bus = RecordingEventPublisher()
        event = {"eventId": "e1", "templateKey": "order_paid"}

        outcome = await DeadLetterPublisher(bus).publish(event, RuntimeError("boom"))

        assert outcome.success
        subject, payload = bus.published[0]
        assert subject == "notifications.dlq"
        assert payload["eventId"] == "e1"
        assert payload["templateKey"] == "order_paid"
        assert payload["error"] == "boom"
        assert payload["timestamp"]

    async def test_failure_is_reported_not_raised(self):
        bus = RecordingEventPublisher()
        bus.fail_with = ConnectionError("bus down")

        outcome = await DeadLetterPublisher(bus).publish({"eventId": "e1"}, "boom")

        assert not outcome.success
