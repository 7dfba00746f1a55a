"""User preference management and data-subject erasure."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
from typing import TYPE_CHECKING

from notification_service.core.exceptions import ValidationException
from notification_service.features.notifications.entities import (
    Preferences,
    default_channel_toggles,
    utcnow,
)
from notification_service.features.notifications.schemas import quiet_hours_entity

if TYPE_CHECKING:
    from notification_service.features.notifications.ports import (
        AttemptRepository,
        InboxRepository,
        NotificationRepository,
        PreferencesRepository,
    )
    from notification_service.features.notifications.schemas import PreferencesUpdate

logger = logging.getLogger(__name__)


class PreferencesService:
    """Read and replace per-user channel preferences.

    Args:
        repository: Preferences storage.
        enabled: When False, ``resolve`` ignores stored preferences and the
            dispatch path always uses defaults.
        default_locale: Locale for users without a stored preference.
    """

    def __init__(
        self,
        repository: PreferencesRepository,
        *,
        enabled: bool = False,
        default_locale: str = "pt-BR",
    ) -> None:
        self._repository = repository
        self.enabled = enabled
        self.default_locale = default_locale

    async def resolve(self, user_id: str | None) -> Preferences:
        """Preferences used for delivery decisions."""
        if not user_id or not self.enabled:
            return Preferences.defaults(user_id, self.default_locale)
        return await self.get(user_id)

    async def get(self, user_id: str) -> Preferences:
        """Stored preferences, or defaults when the user has none."""
        stored = await self._repository.find_by_user_id(user_id)
        return stored or Preferences.defaults(user_id, self.default_locale)

    async def update(self, user_id: str, data: PreferencesUpdate) -> Preferences:
        """Replace a user's preferences.

        Omitted fields fall back to defaults rather than to the stored values.
        """
        if not user_id:
            raise ValidationException("userId is required", extra={"field": "userId"})

        channels = default_channel_toggles()
        if data.channels:
            channels.update(data.channels)

        preferences = Preferences(
            user_id=user_id,
            channels=channels,
            events=data.events or {},
            quiet_hours=quiet_hours_entity(data.quiet_hours),
            locale=data.locale or self.default_locale,
            updated_at=utcnow(),
        )
        await self._repository.save(preferences)
        logger.info("Preferences updated", extra={"user_id": user_id})
        return preferences


@dataclass(frozen=True, slots=True)
class ErasureReport:
    user_id: str
    notifications_deleted: int
    attempts_deleted: int
    preferences_deleted: int
    inbox_deleted: int


class ErasureService:
    """Delete everything stored about a user (LGPD/GDPR requests)."""

    def __init__(
        self,
        *,
        notifications: NotificationRepository,
        attempts: AttemptRepository,
        preferences: PreferencesRepository,
        inbox: InboxRepository,
    ) -> None:
        self._notifications = notifications
        self._attempts = attempts
        self._preferences = preferences
        self._inbox = inbox

    async def erase_user(self, user_id: str) -> ErasureReport:
        if not user_id:
            raise ValidationException("userId is required", extra={"field": "userId"})

        notification_ids = await self._notifications.delete_by_user_id(user_id)
        attempts_deleted = await self._attempts.delete_by_notification_ids(notification_ids)
        preferences_deleted = await self._preferences.delete_by_user_id(user_id)
        inbox_deleted = await self._inbox.delete_by_user_id(user_id)

        report = ErasureReport(
            user_id=user_id,
            notifications_deleted=len(notification_ids),
            attempts_deleted=attempts_deleted,
            preferences_deleted=preferences_deleted,
            inbox_deleted=inbox_deleted,
        )
        logger.info(
            "User data deleted",
            extra={
                "user_id": user_id,
                "notifications_deleted": report.notifications_deleted,
                "attempts_deleted": report.attempts_deleted,
            },
        )
        return report

    async def purge_finished(self, retention: timedelta, now: datetime | None = None) -> int:
        """Delete SENT and FAILED notifications older than ``retention`` with their attempts.

        QUEUED and RETRY rows are kept whatever their age. Returns the number of
        notifications removed.
        """
        cutoff = (now or utcnow()) - retention
        notification_ids = await self._notifications.delete_finished_before(cutoff)
        attempts_deleted = await self._attempts.delete_by_notification_ids(notification_ids)
        if notification_ids:
            logger.info(
                "Expired notifications deleted",
                extra={
                    "notifications_deleted": len(notification_ids),
                    "attempts_deleted": attempts_deleted,
                    "cutoff": cutoff.isoformat(),
                },
            )
        return len(notification_ids)
