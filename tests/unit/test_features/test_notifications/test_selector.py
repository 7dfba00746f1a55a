"""Unit tests for channel selection."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from notification_service.features.notifications.entities import (
    Attempt,
    Preferences,
    QuietHours,
    Recipient,
)
from notification_service.features.notifications.selector import ChannelSelector, attempt_counts

FULL = Recipient(user_id="u1", email="a@b.c", phone="+551199", device_token="tok", role="customer")
DELIVERER = Recipient(user_id="d1", email="d@b.c", phone="+551188", device_token="tok", role="deliverer")


def attempts(*channels: str) -> list[Attempt]:
    return [Attempt(notification_id=None, channel=c, provider="p") for c in channels]


@pytest.mark.unit
class TestSelect:
    def test_priority_order_with_defaults(self):
        """Customers with default preferences never get SMS."""
        assert ChannelSelector().select(FULL, "order.paid") == ["push", "email"]

    def test_deliverer_gets_sms(self):
        assert ChannelSelector().select(DELIVERER, "delivery.assigned") == ["push", "email", "sms"]

    def test_sms_for_customer_when_globally_enabled(self):
        preferences = Preferences(channels={"push": True, "email": True, "sms": True})

        assert ChannelSelector().select(FULL, "order.paid", preferences) == ["push", "email", "sms"]

    def test_event_override_enabling_sms_still_requires_deliverer_or_global_toggle(self):
        preferences = Preferences(events={"order.paid": {"push": True, "email": True, "sms": True}})

        assert ChannelSelector().select(FULL, "order.paid", preferences) == ["push", "email"]

    def test_capabilities_filter(self):
        recipient = Recipient(email="a@b.c")

        assert ChannelSelector().select(recipient, "order.paid") == ["email"]

    def test_preferences_can_disable_every_channel(self):
        preferences = Preferences(channels={"push": False, "email": False, "sms": False})

        assert ChannelSelector().select(DELIVERER, "order.paid", preferences) == []

    def test_no_capabilities(self):
        assert ChannelSelector().select(Recipient(user_id="u1"), "order.paid") == []


@pytest.mark.unit
class TestRetryCandidates:
    def test_all_capable_channels_without_history(self):
        assert ChannelSelector().retry_candidates(DELIVERER, [], 3) == ["push", "email", "sms"]

    def test_sms_only_for_deliverers(self):
        assert ChannelSelector().retry_candidates(FULL, [], 3) == ["push", "email"]

    def test_channels_at_cap_are_excluded(self):
        history = attempts("push", "push", "email", "push")

        assert ChannelSelector().retry_candidates(FULL, history, 3) == ["email"]

    def test_everything_capped(self):
        history = attempts("push", "email")

        assert ChannelSelector().retry_candidates(FULL, history, 1) == []

    def test_attempt_counts(self):
        counts = attempt_counts(attempts("push", "email", "push"))

        assert counts["push"] == 2
        assert counts["email"] == 1
        assert counts["sms"] == 0


@pytest.mark.unit
class TestQuietHours:
    def test_advisory_check_reports_without_suppressing(self):
        preferences = Preferences(user_id="u1", quiet_hours=QuietHours(22, 7))
        selector = ChannelSelector()

        assert selector.check_quiet_hours(preferences, "e1", datetime(2026, 1, 1, 23, tzinfo=UTC))
        assert not selector.check_quiet_hours(preferences, "e1", datetime(2026, 1, 1, 12, tzinfo=UTC))
