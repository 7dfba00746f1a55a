"""Unit tests for notification lifecycle entities."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from notification_service.core.exceptions import InvalidTransitionError
from notification_service.features.notifications.entities import (
    Attempt,
    AttemptStatus,
    NotificationStatus,
    Preferences,
    QuietHours,
    Recipient,
)
from tests.fixtures.notifications import make_notification


@pytest.mark.unit
class TestRecipient:
    def test_capabilities(self):
        recipient = Recipient(email="a@b.c", device_token="tok")

        assert recipient.has_capability("push")
        assert recipient.has_capability("email")
        assert not recipient.has_capability("sms")

    def test_empty_strings_are_not_capabilities(self):
        assert not Recipient(email="", phone="").has_capability("email")

    def test_deliverer_role(self):
        assert Recipient(role="deliverer").is_deliverer
        assert not Recipient(role="customer").is_deliverer


@pytest.mark.unit
class TestNotificationStateMachine:
    def test_new_notification_defaults(self):
        notification = make_notification()

        assert notification.status is NotificationStatus.QUEUED
        assert notification.idempotency_key == notification.event_id
        assert notification.channels_tried == []

    @pytest.mark.parametrize("target", list(NotificationStatus))
    def test_sent_is_terminal(self, target):
        notification = make_notification()
        notification.mark_sent()

        with pytest.raises(InvalidTransitionError):
            notification.transition(target)

    def test_failed_can_be_retried_and_sent(self):
        notification = make_notification()
        notification.mark_failed("boom")
        notification.schedule_retry(datetime.now(UTC) + timedelta(seconds=5))
        notification.mark_sent()

        assert notification.status is NotificationStatus.SENT

    def test_schedule_retry_keeps_previous_error_when_none_given(self):
        notification = make_notification()
        notification.mark_failed("first")
        next_at = datetime.now(UTC) + timedelta(minutes=1)

        notification.schedule_retry(next_at)

        assert notification.status is NotificationStatus.RETRY
        assert notification.next_attempt_at == next_at
        assert notification.last_error == "first"

    def test_channels_tried_has_no_duplicates(self):
        notification = make_notification()
        notification.mark_channel_tried("push")
        notification.mark_channel_tried("email")
        notification.mark_channel_tried("push")

        assert notification.channels_tried == ["push", "email"]

    def test_updated_at_never_moves_backwards(self):
        notification = make_notification()
        before = notification.updated_at

        notification.mark_channel_tried("push", now=before - timedelta(hours=1))

        assert notification.updated_at == before
        assert notification.updated_at >= notification.created_at

    def test_is_retryable(self):
        notification = make_notification()
        assert not notification.is_retryable

        notification.mark_failed("x")
        assert notification.is_retryable


@pytest.mark.unit
class TestAttempt:
    def test_mark_success_sets_duration(self):
        start = datetime(2026, 1, 1, tzinfo=UTC)
        attempt = Attempt(notification_id=None, channel="push", provider="fcm", started_at=start)

        attempt.mark_success("msg-1", now=start + timedelta(milliseconds=250))

        assert attempt.status is AttemptStatus.SUCCESS
        assert attempt.provider_message_id == "msg-1"
        assert attempt.duration_ms == 250

    def test_finalizing_twice_raises(self):
        attempt = Attempt(notification_id=None, channel="sms", provider="twilio")
        attempt.mark_failed("nope", "SMS_SEND_FAILED")

        with pytest.raises(InvalidTransitionError):
            attempt.mark_success("late")
        assert attempt.error_code == "SMS_SEND_FAILED"

    def test_clock_skew_never_yields_negative_duration(self):
        start = datetime(2026, 1, 1, tzinfo=UTC)
        attempt = Attempt(notification_id=None, channel="push", provider="fcm", started_at=start)

        attempt.mark_failed("x", now=start - timedelta(seconds=3))

        assert attempt.duration_ms == 0
        assert attempt.finished_at == start


@pytest.mark.unit
class TestPreferences:
    def test_defaults(self):
        preferences = Preferences.defaults("u1")

        assert preferences.is_channel_enabled("push")
        assert preferences.is_channel_enabled("email")
        assert not preferences.is_channel_enabled("sms")
        assert preferences.locale == "pt-BR"

    def test_event_override_wins_over_global_toggles(self):
        preferences = Preferences(events={"order.paid": {"email": False, "sms": True}})

        assert not preferences.is_event_channel_enabled("order.paid", "email")
        assert not preferences.is_event_channel_enabled("order.paid", "push")
        assert preferences.is_event_channel_enabled("order.paid", "sms")
        assert preferences.is_event_channel_enabled("rental.started", "email")

    @pytest.mark.parametrize(
        ("start", "end", "hour", "expected"),
        [
            (22, 7, 23, True),
            (22, 7, 3, True),
            (22, 7, 7, False),
            (22, 7, 12, False),
            (9, 17, 9, True),
            (9, 17, 17, False),
            (0, 6, 0, True),
        ],
    )
    def test_quiet_hours(self, start, end, hour, expected):
        assert QuietHours(start, end).contains(hour) is expected

    def test_is_in_quiet_hours_uses_given_clock(self):
        preferences = Preferences(quiet_hours=QuietHours(22, 7))

        assert preferences.is_in_quiet_hours(datetime(2026, 1, 1, 23, tzinfo=UTC))
        assert not preferences.is_in_quiet_hours(datetime(2026, 1, 1, 12, tzinfo=UTC))
        assert not Preferences().is_in_quiet_hours()
