"""Ports the notification core depends on.

Concrete adapters live in ``repository`` (SQLAlchemy), ``channels``
(providers) and ``infra.messaging`` (event bus). Tests provide in-memory
implementations.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, Protocol, TypeVar
import uuid

from notification_service.features.notifications.entities import (
    Attempt,
    Notification,
    NotificationStatus,
    Preferences,
    Template,
)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class NotificationFilters:
    """Listing filters; ``None`` means unconstrained."""

    status: NotificationStatus | None = None
    user_id: str | None = None
    event_type: str | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    page: int = 1
    limit: int = 50


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    items: Sequence[T]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0


class InboxRepository(Protocol):
    """Idempotency gate keyed on the inbound event id."""

    async def is_processed(self, event_id: str) -> bool: ...

    async def mark_processed(self, event_id: str) -> bool:
        """Conditionally record ``event_id``; False if it was already recorded."""
        ...

    async def delete_by_user_id(self, user_id: str) -> int: ...


class NotificationRepository(Protocol):
    async def save(self, notification: Notification) -> Notification: ...

    async def find_by_id(self, notification_id: uuid.UUID) -> Notification | None: ...

    async def find_by_event_id(self, event_id: str) -> Notification | None: ...

    async def find_pending_retries(
        self,
        now: datetime | None = None,
        limit: int = 100,
    ) -> Sequence[Notification]: ...

    async def find_by_filters(self, filters: NotificationFilters) -> Page[Notification]: ...

    async def update(self, notification: Notification) -> Notification: ...

    async def delete_by_user_id(self, user_id: str) -> list[uuid.UUID]:
        """Delete a user's notifications, returning the removed ids."""
        ...

    async def delete_finished_before(self, cutoff: datetime) -> list[uuid.UUID]:
        """Delete SENT and FAILED notifications created before ``cutoff``."""
        ...


class AttemptRepository(Protocol):
    async def save(self, attempt: Attempt) -> Attempt: ...

    async def find_by_notification_id(self, notification_id: uuid.UUID) -> Sequence[Attempt]: ...

    async def delete_by_notification_ids(self, notification_ids: Sequence[uuid.UUID]) -> int: ...


class PreferencesRepository(Protocol):
    async def find_by_user_id(self, user_id: str) -> Preferences | None: ...

    async def save(self, preferences: Preferences) -> Preferences: ...

    async def delete_by_user_id(self, user_id: str) -> int: ...


class TemplateRepository(Protocol):
    async def find_by_key(self, template_key: str, channel: str, locale: str) -> Template | None: ...

    async def save(self, template: Template) -> Template: ...


class EventPublisher(Protocol):
    """Event bus used for status updates and dead letters."""

    async def publish(self, subject: str, payload: dict[str, Any]) -> None: ...
