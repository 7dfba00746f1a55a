"""Explicit wiring of the notification engine.

Every component gets its collaborators (repositories, senders, metrics,
publishers) through its constructor; this module is the only place that
knows the concrete types.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
import logging
from typing import TYPE_CHECKING

from notification_service.features.notifications.backoff import BackoffPolicy
from notification_service.features.notifications.cascade import ChannelCascade
from notification_service.features.notifications.channels import EmailSender, PushSender, SmsSender
from notification_service.features.notifications.dispatcher import NotificationDispatcher
from notification_service.features.notifications.metrics import NotificationMetrics
from notification_service.features.notifications.poller import RetryPoller
from notification_service.features.notifications.preferences import ErasureService, PreferencesService
from notification_service.features.notifications.publisher import DeadLetterPublisher, StatusPublisher
from notification_service.features.notifications.repository import (
    SqlAttemptRepository,
    SqlInboxRepository,
    SqlNotificationRepository,
    SqlPreferencesRepository,
    SqlTemplateRepository,
)
from notification_service.features.notifications.retry import RetryEngine
from notification_service.features.notifications.selector import ChannelSelector
from notification_service.features.notifications.templates import TemplateRenderer

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from notification_service.core.settings import (
        NotificationSettings,
        ProviderSettings,
        RabbitSettings,
    )
    from notification_service.features.notifications.channels import ChannelSender
    from notification_service.features.notifications.ports import EventPublisher

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class NotificationContainer:
    notifications: SqlNotificationRepository
    attempts: SqlAttemptRepository
    preferences_repository: SqlPreferencesRepository
    templates: SqlTemplateRepository
    inbox: SqlInboxRepository
    metrics: NotificationMetrics
    senders: Mapping[str, ChannelSender]
    dispatcher: NotificationDispatcher
    retry_engine: RetryEngine
    poller: RetryPoller
    preferences: PreferencesService
    erasure: ErasureService


def build_senders(settings: ProviderSettings, renderer: TemplateRenderer) -> dict[str, ChannelSender]:
    """Instantiate a sender for every configured provider."""
    senders: dict[str, ChannelSender] = {}
    if settings.push_configured:
        senders["push"] = PushSender(renderer, settings)
    if settings.email_configured:
        senders["email"] = EmailSender(renderer, settings)
    if settings.sms_configured:
        senders["sms"] = SmsSender(renderer, settings)
    logger.info(
        "Channel senders configured",
        extra={"channels": sorted(senders), "mock_mode": settings.mock_mode},
    )
    return senders


def build_container(
    *,
    session_factory: async_sessionmaker[AsyncSession],
    event_publisher: EventPublisher,
    notification_settings: NotificationSettings,
    provider_settings: ProviderSettings,
    rabbit_settings: RabbitSettings,
    senders: Mapping[str, ChannelSender] | None = None,
    metrics: NotificationMetrics | None = None,
) -> NotificationContainer:
    metrics = metrics or NotificationMetrics()
    if senders is None:
        senders = build_senders(provider_settings, TemplateRenderer())

    notifications = SqlNotificationRepository(session_factory)
    attempts = SqlAttemptRepository(session_factory)
    preferences_repository = SqlPreferencesRepository(session_factory)
    templates = SqlTemplateRepository(session_factory)
    inbox = SqlInboxRepository(
        session_factory,
        dedup_window=timedelta(seconds=notification_settings.dedup_window_sec),
    )

    preferences = PreferencesService(
        preferences_repository,
        enabled=notification_settings.feature_preferences,
        default_locale=notification_settings.default_locale,
    )
    selector = ChannelSelector()
    cascade = ChannelCascade(senders, templates, attempts, metrics)
    status_publisher = StatusPublisher(event_publisher, rabbit_settings.status_subject)
    dead_letters = DeadLetterPublisher(event_publisher, rabbit_settings.dlq_subject)

    dispatcher = NotificationDispatcher(
        inbox=inbox,
        notifications=notifications,
        preferences=preferences,
        selector=selector,
        cascade=cascade,
        status_publisher=status_publisher,
        dead_letters=dead_letters,
        metrics=metrics,
    )
    retry_engine = RetryEngine(
        notifications=notifications,
        attempts=attempts,
        selector=selector,
        cascade=cascade,
        status_publisher=status_publisher,
        backoff=BackoffPolicy.from_string(notification_settings.backoff_sequence),
        preferences=preferences,
        max_attempts_per_channel=notification_settings.max_attempts_per_channel,
    )
    poller = RetryPoller(
        notifications=notifications,
        engine=retry_engine,
        interval_seconds=notification_settings.retry_poll_interval_sec,
        batch_size=notification_settings.retry_poll_batch_size,
    )
    erasure = ErasureService(
        notifications=notifications,
        attempts=attempts,
        preferences=preferences_repository,
        inbox=inbox,
    )

    return NotificationContainer(
        notifications=notifications,
        attempts=attempts,
        preferences_repository=preferences_repository,
        templates=templates,
        inbox=inbox,
        metrics=metrics,
        senders=senders,
        dispatcher=dispatcher,
        retry_engine=retry_engine,
        poller=poller,
        preferences=preferences,
        erasure=erasure,
    )
