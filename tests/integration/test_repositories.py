"""SQLAlchemy repository adapters against SQLite."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from notification_service.core.exceptions import DuplicateNotificationError
from notification_service.features.notifications.entities import (
    Attempt,
    NotificationStatus,
    Preferences,
    QuietHours,
    Recipient,
    Template,
)
from notification_service.features.notifications.models import InboxEntryModel
from notification_service.features.notifications.ports import NotificationFilters
from notification_service.features.notifications.preferences import ErasureService
from notification_service.features.notifications.repository import (
    SqlAttemptRepository,
    SqlInboxRepository,
    SqlNotificationRepository,
    SqlPreferencesRepository,
    SqlTemplateRepository,
)
from notification_service.features.notifications.templates import seed_default_templates
from tests.fixtures.notifications import make_notification

pytestmark = pytest.mark.integration


@pytest.fixture
def notifications(session_factory):
    return SqlNotificationRepository(session_factory)


@pytest.fixture
def attempts(session_factory):
    return SqlAttemptRepository(session_factory)


@pytest.fixture
def inbox(session_factory):
    return SqlInboxRepository(session_factory, dedup_window=timedelta(seconds=600))


class TestInboxRepository:
    async def test_first_mark_wins(self, inbox):
        assert await inbox.is_processed("evt-1") is False

        assert await inbox.mark_processed("evt-1") is True
        assert await inbox.mark_processed("evt-1") is False
        assert await inbox.is_processed("evt-1") is True

    async def test_expired_entry_no_longer_blocks(self, inbox, session_factory):
        async with session_factory() as session, session.begin():
            session.add(InboxEntryModel(event_id="evt-old", processed_at=datetime.now(UTC) - timedelta(seconds=700)))

        assert await inbox.is_processed("evt-old") is False
        assert await inbox.mark_processed("evt-old") is True
        assert await inbox.is_processed("evt-old") is True

    async def test_purge_expired(self, inbox, session_factory):
        async with session_factory() as session, session.begin():
            session.add(InboxEntryModel(event_id="evt-old", processed_at=datetime.now(UTC) - timedelta(hours=1)))
        await inbox.mark_processed("evt-new")

        assert await inbox.purge_expired() == 1
        assert await inbox.is_processed("evt-new") is True


class TestNotificationRepository:
    async def test_save_and_find(self, notifications):
        saved = await notifications.save(make_notification(correlation_id="corr-1"))

        found = await notifications.find_by_id(saved.id)

        assert found is not None
        assert found.event_id == "evt-1"
        assert found.idempotency_key == "evt-1"
        assert found.recipient.email == "alice@example.com"
        assert found.metadata == {"orderId": "42", "customerName": "Alice"}
        assert found.correlation_id == "corr-1"
        assert found.status == NotificationStatus.QUEUED
        assert (await notifications.find_by_event_id("evt-1")).id == saved.id

    async def test_duplicate_idempotency_key(self, notifications):
        await notifications.save(make_notification())

        with pytest.raises(DuplicateNotificationError):
            await notifications.save(make_notification())

    async def test_update_overwrites_row(self, notifications):
        saved = await notifications.save(make_notification())
        saved.mark_channel_tried("push")
        saved.set_rendered("push", {"body": "Pedido #42"})
        saved.schedule_retry(datetime.now(UTC) + timedelta(minutes=5), error="provider down")

        await notifications.update(saved)
        found = await notifications.find_by_id(saved.id)

        assert found.status == NotificationStatus.RETRY
        assert found.channels_tried == ["push"]
        assert found.last_error == "provider down"
        assert found.rendered == {"push": {"body": "Pedido #42"}}
        assert found.next_attempt_at.tzinfo is not None

    async def test_pending_retries(self, notifications):
        now = datetime.now(UTC)
        due = await notifications.save(make_notification(event_id="due"))
        due.schedule_retry(now - timedelta(seconds=1))
        await notifications.update(due)
        later = await notifications.save(make_notification(event_id="later"))
        later.schedule_retry(now + timedelta(hours=1))
        await notifications.update(later)
        queued = await notifications.save(make_notification(event_id="queued"))
        sent = await notifications.save(make_notification(event_id="sent"))
        sent.mark_sent()
        await notifications.update(sent)

        pending = await notifications.find_pending_retries(now=now, limit=10)

        assert {n.event_id for n in pending} == {due.event_id, queued.event_id}

    async def test_due_retries_come_before_queued_rows(self, notifications):
        now = datetime.now(UTC)
        for i in range(3):
            await notifications.save(make_notification(event_id=f"stuck-{i}", created_at=now - timedelta(hours=1)))
        due = await notifications.save(make_notification(event_id="due"))
        due.schedule_retry(now - timedelta(seconds=1))
        await notifications.update(due)

        pending = await notifications.find_pending_retries(now=now, limit=1)

        assert [n.event_id for n in pending] == ["due"]

    async def test_filters_and_pagination(self, notifications):
        base = datetime(2026, 1, 1, tzinfo=UTC)
        for i in range(5):
            await notifications.save(
                make_notification(event_id=f"evt-{i}", created_at=base + timedelta(minutes=i)),
            )
        await notifications.save(make_notification(event_id="other", event_type="rental.started"))

        page = await notifications.find_by_filters(
            NotificationFilters(event_type="order.paid", page=2, limit=2),
        )

        assert page.total == 5
        assert page.pages == 3
        assert [n.event_id for n in page.items] == ["evt-2", "evt-1"]

        window = await notifications.find_by_filters(
            NotificationFilters(created_from=base + timedelta(minutes=3), created_to=base + timedelta(minutes=4)),
        )
        assert {n.event_id for n in window.items} == {"evt-3", "evt-4"}


class TestAttemptRepository:
    async def test_history_in_start_order(self, notifications, attempts):
        saved = await notifications.save(make_notification())
        started = datetime.now(UTC)
        first = Attempt(notification_id=saved.id, channel="push", provider="fcm", started_at=started)
        first.mark_failed("provider down", "PUSH_SEND_FAILED", now=started + timedelta(milliseconds=20))
        second = Attempt(notification_id=saved.id, channel="email", provider="sendgrid", started_at=started + timedelta(seconds=1))
        second.mark_success("msg-1", now=started + timedelta(seconds=2))
        await attempts.save(second)
        await attempts.save(first)

        history = await attempts.find_by_notification_id(saved.id)

        assert [a.channel for a in history] == ["push", "email"]
        assert history[0].error_code == "PUSH_SEND_FAILED"
        assert history[1].provider_message_id == "msg-1"
        assert history[1].duration_ms == 1000


class TestPreferencesRepository:
    async def test_save_replaces_whole_document(self, session_factory):
        repository = SqlPreferencesRepository(session_factory)
        await repository.save(
            Preferences(user_id="u1", events={"order.paid": {"sms": False}}, quiet_hours=QuietHours(0, 6)),
        )
        await repository.save(Preferences(user_id="u1", channels={"push": False, "email": True, "sms": True}, locale="en-US"))

        found = await repository.find_by_user_id("u1")

        assert found.channels == {"push": False, "email": True, "sms": True}
        assert found.events == {}
        assert found.quiet_hours is None
        assert found.locale == "en-US"
        assert await repository.find_by_user_id("nobody") is None


class TestTemplateRepository:
    async def test_seed_is_idempotent(self, session_factory):
        repository = SqlTemplateRepository(session_factory)

        first = await seed_default_templates(repository)
        second = await seed_default_templates(repository)

        assert first["inserted"] == 9
        assert second == {"inserted": 0, "skipped": 9, "total": 9}

    async def test_save_upserts_and_invalidates_cache(self, session_factory):
        repository = SqlTemplateRepository(session_factory)
        await repository.save(Template(template_key="order_paid", channel="sms", body="v1"))
        assert (await repository.find_by_key("order_paid", "sms", "pt-BR")).body == "v1"

        await repository.save(Template(template_key="order_paid", channel="sms", body="v2", version=2))
        found = await repository.find_by_key("order_paid", "sms", "pt-BR")

        assert found.body == "v2"
        assert found.version == 2
        assert await repository.find_by_key("order_paid", "sms", "en-US") is None


class TestErasure:
    async def test_erases_everything_for_user(self, session_factory, notifications, attempts, inbox):
        preferences = SqlPreferencesRepository(session_factory)
        mine = await notifications.save(make_notification())
        theirs = await notifications.save(make_notification(event_id="evt-2", recipient=Recipient(user_id="user-2", email="b@example.com")))
        await attempts.save(Attempt(notification_id=mine.id, channel="push", provider="fcm"))
        await attempts.save(Attempt(notification_id=theirs.id, channel="email", provider="sendgrid"))
        await preferences.save(Preferences(user_id="user-1"))

        report = await ErasureService(
            notifications=notifications,
            attempts=attempts,
            preferences=preferences,
            inbox=inbox,
        ).erase_user("user-1")

        assert report.notifications_deleted == 1
        assert report.attempts_deleted == 1
        assert report.preferences_deleted == 1
        assert await notifications.find_by_id(mine.id) is None
        assert await notifications.find_by_id(theirs.id) is not None
        assert len(await attempts.find_by_notification_id(theirs.id)) == 1

    async def test_update_after_erasure_does_not_restore_row(self, session_factory, notifications, attempts, inbox):
        in_flight = await notifications.save(make_notification())
        await ErasureService(
            notifications=notifications,
            attempts=attempts,
            preferences=SqlPreferencesRepository(session_factory),
            inbox=inbox,
        ).erase_user("user-1")

        in_flight.mark_failed("provider down")
        await notifications.update(in_flight)

        assert await notifications.find_by_id(in_flight.id) is None
        assert await notifications.find_by_event_id(in_flight.event_id) is None

    async def test_retention_purge_keeps_recent_and_pending_rows(self, session_factory, notifications, attempts, inbox):
        now = datetime.now(UTC)
        old = now - timedelta(days=120)
        expired = make_notification(event_id="expired", created_at=old)
        expired.mark_sent()
        expired = await notifications.save(expired)
        await attempts.save(Attempt(notification_id=expired.id, channel="email", provider="sendgrid"))
        recent = make_notification(event_id="recent")
        recent.mark_sent()
        recent = await notifications.save(recent)
        pending = await notifications.save(make_notification(event_id="pending", created_at=old))

        deleted = await ErasureService(
            notifications=notifications,
            attempts=attempts,
            preferences=SqlPreferencesRepository(session_factory),
            inbox=inbox,
        ).purge_finished(timedelta(days=90), now=now)

        assert deleted == 1
        assert await notifications.find_by_id(expired.id) is None
        assert await attempts.find_by_notification_id(expired.id) == []
        assert await notifications.find_by_id(recent.id) is not None
        assert await notifications.find_by_id(pending.id) is not None
