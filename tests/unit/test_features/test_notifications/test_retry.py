"""Unit tests for the retry engine."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
import uuid

import pytest

from notification_service.features.notifications.channels.base import SendResult
from notification_service.features.notifications.entities import (
    AttemptStatus,
    NotificationStatus,
    Preferences,
)
from notification_service.features.notifications.retry import MAX_RETRY_ATTEMPTS_REACHED
from tests.fixtures.notifications import (
    EngineHarness,
    ScriptedSender,
    event_payload,
    failing,
    make_notification,
    ok_senders,
)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


def flaky_senders() -> dict[str, ScriptedSender]:
    """Push and email fail once, then succeed."""
    return {
        "push": ScriptedSender("push", "fcm", SendResult.failed("push down", "PUSH_SEND_FAILED"), SendResult.ok("p2")),
        "email": ScriptedSender(
            "email",
            "sendgrid",
            SendResult.failed("smtp down", "EMAIL_SEND_FAILED"),
            SendResult.ok("e2"),
        ),
        "sms": ScriptedSender("sms", "twilio"),
    }


async def failed_notification(harness: EngineHarness) -> uuid.UUID:
    result = await harness.dispatcher.dispatch(event_payload())
    assert harness.notifications.items[result.notification_id].status is NotificationStatus.FAILED
    return result.notification_id


@pytest.mark.unit
class TestRetryOutcomes:
    async def test_retry_after_failed_dispatch_delivers(self):
        harness = EngineHarness(senders=flaky_senders())
        notification_id = await failed_notification(harness)

        result = await harness.retry_engine.retry(notification_id, NOW)

        assert result.success
        assert result.reason == "sent"
        assert result.channel == "push"
        assert harness.notifications.items[notification_id].status is NotificationStatus.SENT
        push_attempts = harness.attempts.for_channel("push")
        assert [a.attempt_number for a in push_attempts] == [1, 2]
        assert push_attempts[-1].status is AttemptStatus.SUCCESS
        assert harness.status_events()[-1]["status"] == "SENT"

    async def test_schedules_next_attempt_from_backoff(self):
        harness = EngineHarness(
            senders={"push": failing("push", "fcm"), "email": failing("email", "sendgrid", "smtp down")},
        )
        notification_id = await failed_notification(harness)
        published_before = len(harness.publisher.published)

        result = await harness.retry_engine.retry(notification_id, NOW)

        # 2 attempts from dispatch + 2 channels this round -> index 4 of the default sequence (30m)
        assert result.reason == "scheduled_for_retry"
        assert result.next_attempt_at == NOW + timedelta(minutes=30)
        notification = harness.notifications.items[notification_id]
        assert notification.status is NotificationStatus.RETRY
        assert notification.next_attempt_at == NOW + timedelta(minutes=30)
        assert notification.last_error == "smtp down"
        # Rescheduling is not a published transition
        assert len(harness.publisher.published) == published_before

    async def test_budget_exhausted_fails_for_good(self):
        harness = EngineHarness(
            senders={"push": failing("push", "fcm"), "email": failing("email", "sendgrid")},
            backoff="5s,25s",
        )
        notification_id = await failed_notification(harness)

        result = await harness.retry_engine.retry(notification_id, NOW)

        assert result.reason == "max_attempts_reached"
        notification = harness.notifications.items[notification_id]
        assert notification.status is NotificationStatus.FAILED
        assert notification.last_error == MAX_RETRY_ATTEMPTS_REACHED
        assert harness.status_events()[-1]["error"] == MAX_RETRY_ATTEMPTS_REACHED

    async def test_per_channel_cap_leaves_nothing_to_retry(self):
        harness = EngineHarness(
            senders={"push": failing("push", "fcm"), "email": failing("email", "sendgrid")},
            max_attempts_per_channel=1,
        )
        notification_id = await failed_notification(harness)
        calls_before = len(harness.senders["push"].calls)

        result = await harness.retry_engine.retry(notification_id, NOW)

        assert result.reason == "no_channels_available"
        assert len(harness.senders["push"].calls) == calls_before
        assert harness.notifications.items[notification_id].status is NotificationStatus.FAILED
        assert harness.status_events()[-1]["status"] == "FAILED"

    async def test_cap_reached_across_rounds(self):
        harness = EngineHarness(
            senders={"push": failing("push", "fcm"), "email": failing("email", "sendgrid")},
            max_attempts_per_channel=2,
        )
        notification_id = await failed_notification(harness)

        first = await harness.retry_engine.retry(notification_id, NOW)
        second = await harness.retry_engine.retry(notification_id, NOW + timedelta(hours=1))

        assert first.reason == "scheduled_for_retry"
        assert second.reason == "no_channels_available"
        assert len(harness.attempts.for_channel("push")) == 2
        assert len(harness.attempts.for_channel("email")) == 2


@pytest.mark.unit
class TestRetryGuards:
    async def test_unknown_notification(self, harness):
        result = await harness.retry_engine.retry(uuid.uuid4())

        assert not result.success
        assert result.reason == "not_found"

    async def test_sent_is_not_retryable(self, harness):
        result = await harness.dispatcher.dispatch(event_payload())
        calls_before = len(harness.senders["push"].calls)

        retry = await harness.retry_engine.retry(result.notification_id)

        assert retry.reason == "not_retryable"
        assert len(harness.senders["push"].calls) == calls_before

    async def test_queued_is_not_retryable(self, harness):
        notification = await harness.notifications.save(make_notification())

        retry = await harness.retry_engine.retry(notification.id)

        assert retry.reason == "not_retryable"
        assert harness.notifications.update_calls == 0

    async def test_sms_only_retried_for_deliverers(self, harness):
        notification = make_notification()
        notification.mark_failed("x")
        harness.senders["push"] = failing("push", "fcm")
        harness.senders["email"] = failing("email", "sendgrid")
        await harness.notifications.save(notification)

        await harness.retry_engine.retry(notification.id, NOW)

        assert harness.senders["sms"].calls == []

    async def test_retry_ignores_channel_preferences(self):
        harness = EngineHarness(senders=ok_senders(), preferences_enabled=True)
        harness.preferences_repository.items["user-1"] = Preferences(
            user_id="user-1",
            channels={"push": False, "email": True, "sms": False},
        )
        notification = make_notification()
        notification.mark_failed("x")
        await harness.notifications.save(notification)

        result = await harness.retry_engine.retry(notification.id, NOW)

        assert result.channel == "push"

    async def test_retry_uses_preferred_locale_for_templates(self):
        harness = EngineHarness(senders=ok_senders(), preferences_enabled=True)
        harness.preferences_repository.items["user-1"] = Preferences(user_id="user-1", locale="en-US")
        notification = make_notification()
        notification.mark_failed("x")
        await harness.notifications.save(notification)

        result = await harness.retry_engine.retry(notification.id, NOW)

        # No en-US templates are seeded, so every channel is skipped
        assert not result.success
        assert harness.attempts.items == []

    async def test_infrastructure_faults_propagate(self, harness):
        notification = make_notification()
        notification.mark_failed("x")
        await harness.notifications.save(notification)
        harness.attempts.fail_with = ConnectionError("db gone")

        with pytest.raises(ConnectionError):
            await harness.retry_engine.retry(notification.id, NOW)
