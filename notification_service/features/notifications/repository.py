"""SQLAlchemy adapters for the notification ports.

Each adapter owns a session factory and runs every port call in its own
transaction. Entities are mapped to and from ORM rows at this boundary.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
import logging
from typing import TYPE_CHECKING
import uuid

from sqlalchemy import case, func, insert, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError

from notification_service.core.database import BaseRepository, ensure_utc
from notification_service.core.exceptions import DuplicateNotificationError
from notification_service.features.notifications.entities import (
    Attempt,
    AttemptStatus,
    Notification,
    NotificationStatus,
    Preferences,
    QuietHours,
    Recipient,
    Template,
)
from notification_service.features.notifications.models import (
    AttemptModel,
    InboxEntryModel,
    NotificationModel,
    PreferencesModel,
    TemplateModel,
)
from notification_service.features.notifications.ports import NotificationFilters, Page
from notification_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)
_lazy = get_lazy_logger(__name__)


# ============================================================================
# Mapping
# ============================================================================


def _notification_to_entity(row: NotificationModel) -> Notification:
    return Notification(
        id=row.id,
        event_id=row.event_id,
        idempotency_key=row.idempotency_key,
        event_type=row.event_type,
        template_key=row.template_key,
        recipient=Recipient(
            user_id=row.user_id,
            email=row.email,
            phone=row.phone,
            device_token=row.device_token,
            role=row.role,
        ),
        metadata=dict(row.template_data or {}),
        status=NotificationStatus(row.status),
        channels_tried=list(row.channels_tried or []),
        last_error=row.last_error,
        next_attempt_at=ensure_utc(row.next_attempt_at),
        rendered=dict(row.rendered or {}),
        correlation_id=row.correlation_id,
        trace_id=row.trace_id,
        created_at=ensure_utc(row.created_at),
        updated_at=ensure_utc(row.updated_at),
    )


def _apply_notification(row: NotificationModel, notification: Notification) -> None:
    recipient = notification.recipient
    row.event_id = notification.event_id
    row.idempotency_key = notification.idempotency_key
    row.event_type = notification.event_type
    row.template_key = notification.template_key
    row.user_id = recipient.user_id
    row.email = recipient.email
    row.phone = recipient.phone
    row.device_token = recipient.device_token
    row.role = recipient.role
    row.status = notification.status.value
    row.channels_tried = list(notification.channels_tried)
    row.last_error = notification.last_error
    row.next_attempt_at = notification.next_attempt_at
    row.template_data = dict(notification.metadata)
    row.rendered = dict(notification.rendered)
    row.correlation_id = notification.correlation_id
    row.trace_id = notification.trace_id
    row.created_at = notification.created_at
    row.updated_at = notification.updated_at


def _attempt_to_entity(row: AttemptModel) -> Attempt:
    return Attempt(
        id=row.id,
        notification_id=row.notification_id,
        channel=row.channel,
        provider=row.provider,
        status=AttemptStatus(row.status),
        attempt_number=row.attempt_number,
        error=row.error,
        error_code=row.error_code,
        provider_message_id=row.provider_message_id,
        started_at=ensure_utc(row.started_at),
        finished_at=ensure_utc(row.finished_at),
        duration_ms=row.duration_ms,
    )


def _preferences_to_entity(row: PreferencesModel) -> Preferences:
    quiet_hours = None
    if row.quiet_hours_start is not None and row.quiet_hours_end is not None:
        quiet_hours = QuietHours(start=row.quiet_hours_start, end=row.quiet_hours_end)
    return Preferences(
        user_id=row.user_id,
        channels=dict(row.channels or {}),
        events={key: dict(value) for key, value in (row.events or {}).items()},
        quiet_hours=quiet_hours,
        locale=row.locale,
        updated_at=ensure_utc(row.updated_at),
    )


def _template_to_entity(row: TemplateModel) -> Template:
    return Template(
        id=row.id,
        template_key=row.template_key,
        channel=row.channel,
        locale=row.locale,
        version=row.version,
        subject=row.subject,
        body=row.body,
        updated_at=ensure_utc(row.updated_at),
    )


# ============================================================================
# Adapters
# ============================================================================


class _SessionScoped:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory


class SqlNotificationRepository(_SessionScoped):
    """Notifications table adapter.

    ``update`` overwrites the stored row with the entity (last write wins).
    It never inserts: a row removed by erasure stays removed.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        super().__init__(session_factory)
        self._rows = BaseRepository(NotificationModel)

    async def save(self, notification: Notification) -> Notification:
        if notification.id is None:
            notification.id = uuid.uuid4()
        row = NotificationModel(id=notification.id)
        _apply_notification(row, notification)
        try:
            async with self._session_factory() as session, session.begin():
                await self._rows.create(session, row)
        except IntegrityError as exc:
            notification.id = None
            raise DuplicateNotificationError(notification.idempotency_key) from exc
        return notification

    async def find_by_id(self, notification_id: uuid.UUID) -> Notification | None:
        async with self._session_factory() as session:
            row = await self._rows.get(session, notification_id)
            return _notification_to_entity(row) if row else None

    async def find_by_event_id(self, event_id: str) -> Notification | None:
        async with self._session_factory() as session:
            rows = await self._rows.list_where(session, NotificationModel.event_id == event_id, limit=1)
            return _notification_to_entity(rows[0]) if rows else None

    async def find_pending_retries(
        self,
        now: datetime | None = None,
        limit: int = 100,
    ) -> Sequence[Notification]:
        now = now or datetime.now(UTC)
        async with self._session_factory() as session:
            rows = await self._rows.list_where(
                session,
                NotificationModel.status.in_([NotificationStatus.RETRY.value, NotificationStatus.QUEUED.value]),
                or_(NotificationModel.next_attempt_at.is_(None), NotificationModel.next_attempt_at <= now),
                # Due RETRY rows first so stale QUEUED rows cannot fill the batch
                order_by=(
                    case((NotificationModel.status == NotificationStatus.RETRY.value, 0), else_=1),
                    NotificationModel.created_at,
                ),
                limit=limit,
            )
            return [_notification_to_entity(row) for row in rows]

    async def find_by_filters(self, filters: NotificationFilters) -> Page[Notification]:
        criteria = []
        if filters.status is not None:
            criteria.append(NotificationModel.status == filters.status.value)
        if filters.user_id:
            criteria.append(NotificationModel.user_id == filters.user_id)
        if filters.event_type:
            criteria.append(NotificationModel.event_type == filters.event_type)
        if filters.created_from:
            criteria.append(NotificationModel.created_at >= filters.created_from)
        if filters.created_to:
            criteria.append(NotificationModel.created_at <= filters.created_to)

        page = max(filters.page, 1)
        async with self._session_factory() as session:
            total = await session.scalar(select(func.count()).select_from(NotificationModel).where(*criteria))
            rows = await self._rows.list_where(
                session,
                *criteria,
                order_by=(NotificationModel.created_at.desc(),),
                limit=filters.limit,
                offset=(page - 1) * filters.limit,
            )
            items = [_notification_to_entity(row) for row in rows]
        return Page(items=items, total=total or 0, page=page, limit=filters.limit)

    async def update(self, notification: Notification) -> Notification:
        if notification.id is None:
            return await self.save(notification)
        async with self._session_factory() as session, session.begin():
            row = await self._rows.get(session, notification.id)
            if row is None:
                # Erased while in flight; re-inserting would restore the contact data
                logger.warning(
                    "Notification row gone, update dropped",
                    extra={"notification_id": str(notification.id), "status": notification.status.value},
                )
                return notification
            _apply_notification(row, notification)
        _lazy.debug(lambda: f"notification {notification.id} -> {notification.status.value}")
        return notification

    async def delete_by_user_id(self, user_id: str) -> list[uuid.UUID]:
        async with self._session_factory() as session, session.begin():
            ids = list(
                (await session.scalars(select(NotificationModel.id).where(NotificationModel.user_id == user_id))).all(),
            )
            if ids:
                await self._rows.delete_where(session, NotificationModel.id.in_(ids))
        return ids

    async def delete_finished_before(self, cutoff: datetime) -> list[uuid.UUID]:
        """Delete SENT and FAILED notifications created before ``cutoff``."""
        finished = (NotificationStatus.SENT.value, NotificationStatus.FAILED.value)
        async with self._session_factory() as session, session.begin():
            ids = list(
                (
                    await session.scalars(
                        select(NotificationModel.id).where(
                            NotificationModel.status.in_(finished),
                            NotificationModel.created_at < cutoff,
                        ),
                    )
                ).all(),
            )
            if ids:
                await self._rows.delete_where(session, NotificationModel.id.in_(ids))
        return ids


class SqlAttemptRepository(_SessionScoped):
    """Attempts are inserted once and never updated."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        super().__init__(session_factory)
        self._rows = BaseRepository(AttemptModel)

    async def save(self, attempt: Attempt) -> Attempt:
        row = AttemptModel(
            id=attempt.id,
            notification_id=attempt.notification_id,
            channel=attempt.channel,
            provider=attempt.provider,
            status=attempt.status.value,
            attempt_number=attempt.attempt_number,
            error=attempt.error,
            error_code=attempt.error_code,
            provider_message_id=attempt.provider_message_id,
            started_at=attempt.started_at,
            finished_at=attempt.finished_at,
            duration_ms=attempt.duration_ms,
        )
        async with self._session_factory() as session, session.begin():
            await self._rows.create(session, row)
        return attempt

    async def find_by_notification_id(self, notification_id: uuid.UUID) -> Sequence[Attempt]:
        async with self._session_factory() as session:
            rows = await self._rows.list_where(
                session,
                AttemptModel.notification_id == notification_id,
                order_by=(AttemptModel.started_at,),
            )
            return [_attempt_to_entity(row) for row in rows]

    async def delete_by_notification_ids(self, notification_ids: Sequence[uuid.UUID]) -> int:
        if not notification_ids:
            return 0
        async with self._session_factory() as session, session.begin():
            return await self._rows.delete_where(session, AttemptModel.notification_id.in_(list(notification_ids)))


class SqlPreferencesRepository(_SessionScoped):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        super().__init__(session_factory)
        self._rows = BaseRepository(PreferencesModel)

    async def find_by_user_id(self, user_id: str) -> Preferences | None:
        async with self._session_factory() as session:
            row = await self._rows.get(session, user_id)
            return _preferences_to_entity(row) if row else None

    async def save(self, preferences: Preferences) -> Preferences:
        quiet = preferences.quiet_hours
        row = PreferencesModel(
            user_id=preferences.user_id,
            channels=dict(preferences.channels),
            events={key: dict(value) for key, value in preferences.events.items()},
            quiet_hours_start=quiet.start if quiet else None,
            quiet_hours_end=quiet.end if quiet else None,
            locale=preferences.locale,
            updated_at=preferences.updated_at,
        )
        async with self._session_factory() as session, session.begin():
            await session.merge(row)
        return preferences

    async def delete_by_user_id(self, user_id: str) -> int:
        async with self._session_factory() as session, session.begin():
            return await self._rows.delete_where(session, PreferencesModel.user_id == user_id)


class SqlTemplateRepository(_SessionScoped):
    """Templates with an in-process read cache, invalidated on save."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        super().__init__(session_factory)
        self._rows = BaseRepository(TemplateModel)
        self._cache: dict[tuple[str, str, str], Template] = {}

    async def find_by_key(self, template_key: str, channel: str, locale: str) -> Template | None:
        cache_key = (template_key, channel, locale)
        if cache_key in self._cache:
            return self._cache[cache_key]

        async with self._session_factory() as session:
            rows = await self._rows.list_where(
                session,
                TemplateModel.template_key == template_key,
                TemplateModel.channel == channel,
                TemplateModel.locale == locale,
                limit=1,
            )
        if not rows:
            return None
        template = _template_to_entity(rows[0])
        self._cache[cache_key] = template
        return template

    async def save(self, template: Template) -> Template:
        async with self._session_factory() as session, session.begin():
            rows = await self._rows.list_where(
                session,
                TemplateModel.template_key == template.template_key,
                TemplateModel.channel == template.channel,
                TemplateModel.locale == template.locale,
                limit=1,
            )
            row = rows[0] if rows else TemplateModel(id=template.id or uuid.uuid4())
            row.template_key = template.template_key
            row.channel = template.channel
            row.locale = template.locale
            row.version = template.version
            row.subject = template.subject
            row.body = template.body
            row.updated_at = template.updated_at
            if not rows:
                await self._rows.create(session, row)
            template.id = row.id
        self._cache.pop((template.template_key, template.channel, template.locale), None)
        return template


class SqlInboxRepository(_SessionScoped):
    """Idempotency gate backed by a conditional insert.

    Entries older than the dedup window count as absent, so a replay after
    the window is processed again.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dedup_window: timedelta = timedelta(seconds=600),
    ) -> None:
        super().__init__(session_factory)
        self._rows = BaseRepository(InboxEntryModel)
        self.dedup_window = dedup_window

    def _cutoff(self) -> datetime:
        return datetime.now(UTC) - self.dedup_window

    async def is_processed(self, event_id: str) -> bool:
        async with self._session_factory() as session:
            rows = await self._rows.list_where(
                session,
                InboxEntryModel.event_id == event_id,
                InboxEntryModel.processed_at >= self._cutoff(),
                limit=1,
            )
            return bool(rows)

    async def mark_processed(self, event_id: str) -> bool:
        now = datetime.now(UTC)
        async with self._session_factory() as session, session.begin():
            # An expired entry no longer blocks the event id
            await self._rows.delete_where(
                session,
                InboxEntryModel.event_id == event_id,
                InboxEntryModel.processed_at < now - self.dedup_window,
            )
            return await self._insert_if_absent(session, event_id, now)

    async def _insert_if_absent(self, session: AsyncSession, event_id: str, now: datetime) -> bool:
        values = {"event_id": event_id, "processed_at": now}
        dialect = session.bind.dialect.name
        if dialect == "postgresql":
            stmt = pg_insert(InboxEntryModel).values(values).on_conflict_do_nothing(index_elements=["event_id"])
        elif dialect == "sqlite":
            stmt = sqlite_insert(InboxEntryModel).values(values).on_conflict_do_nothing(index_elements=["event_id"])
        else:
            try:
                async with session.begin_nested():
                    await session.execute(insert(InboxEntryModel).values(values))
            except IntegrityError:
                return False
            return True
        result = await session.execute(stmt)
        return (result.rowcount or 0) == 1  # type: ignore[attr-defined]

    async def delete_by_user_id(self, user_id: str) -> int:
        # Inbox rows carry only event ids; nothing is user-attributable.
        return 0

    async def purge_expired(self) -> int:
        async with self._session_factory() as session, session.begin():
            return await self._rows.delete_where(session, InboxEntryModel.processed_at < self._cutoff())
