"""FastAPI dependencies for the notifications feature.

Provides Annotated type aliases for dependency injection in route handlers.

Example usage:
    @router.post("/dispatch")
    async def dispatch(body: DispatchRequest, dispatcher: DispatcherDep) -> DispatchResult:
        ...
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from notification_service.core.exceptions import ServiceUnavailableException
from notification_service.features.notifications.container import NotificationContainer
from notification_service.features.notifications.dispatcher import NotificationDispatcher
from notification_service.features.notifications.preferences import ErasureService, PreferencesService
from notification_service.features.notifications.repository import (
    SqlAttemptRepository,
    SqlNotificationRepository,
)
from notification_service.features.notifications.retry import RetryEngine


def get_container(request: Request) -> NotificationContainer:
    """Notification container stored on the app by the lifespan."""
    container = getattr(request.app.state, "notifications", None)
    if container is None:
        raise ServiceUnavailableException("Notification engine is not initialized")
    return container


ContainerDep = Annotated[NotificationContainer, Depends(get_container)]


def get_dispatcher(container: ContainerDep) -> NotificationDispatcher:
    return container.dispatcher


def get_retry_engine(container: ContainerDep) -> RetryEngine:
    return container.retry_engine


def get_notification_repository(container: ContainerDep) -> SqlNotificationRepository:
    return container.notifications


def get_attempt_repository(container: ContainerDep) -> SqlAttemptRepository:
    return container.attempts


def get_preferences_service(container: ContainerDep) -> PreferencesService:
    return container.preferences


def get_erasure_service(container: ContainerDep) -> ErasureService:
    return container.erasure


DispatcherDep = Annotated[NotificationDispatcher, Depends(get_dispatcher)]
RetryEngineDep = Annotated[RetryEngine, Depends(get_retry_engine)]
NotificationRepositoryDep = Annotated[SqlNotificationRepository, Depends(get_notification_repository)]
AttemptRepositoryDep = Annotated[SqlAttemptRepository, Depends(get_attempt_repository)]
PreferencesServiceDep = Annotated[PreferencesService, Depends(get_preferences_service)]
ErasureServiceDep = Annotated[ErasureService, Depends(get_erasure_service)]
