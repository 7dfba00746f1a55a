"""API router for the notifications feature.

Endpoints:
- POST /notifications/dispatch - Dispatch an event synchronously
- POST /notifications/{notification_id}/retry - Run one retry round
- GET /notifications/{notification_id} - Get a notification
- GET /notifications/{notification_id}/attempts - Attempt history
- GET /notifications - List notifications with filters
- GET /notifications/preferences/{user_id} - Get user preferences
- PUT /notifications/preferences/{user_id} - Replace user preferences
- DELETE /notifications/users/{user_id} - Erase all data of a user
- GET /notifications/metrics - Prometheus exposition
"""

from __future__ import annotations

from datetime import UTC, datetime
import logging
from typing import Annotated
from uuid import UUID, uuid4

from fastapi import APIRouter, Header, Query, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from notification_service.core.exceptions import NotFoundException
from notification_service.features.notifications.dependencies import (
    AttemptRepositoryDep,
    ContainerDep,
    DispatcherDep,
    ErasureServiceDep,
    NotificationRepositoryDep,
    PreferencesServiceDep,
    RetryEngineDep,
)
from notification_service.features.notifications.entities import NotificationStatus
from notification_service.features.notifications.ports import NotificationFilters
from notification_service.features.notifications.schemas import (
    AttemptResponse,
    DispatchRequest,
    DispatchResult,
    ErasureResponse,
    InboundEvent,
    NotificationListResponse,
    NotificationResponse,
    PreferencesResponse,
    PreferencesUpdate,
    RetryResult,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


# ──────────────────────────────────────────────────────────────
# Static paths first so they are not captured by /{notification_id}
# ──────────────────────────────────────────────────────────────


@router.get("/metrics", include_in_schema=False)
async def metrics(container: ContainerDep) -> Response:
    """Expose notification metrics in Prometheus text format."""
    return Response(
        content=generate_latest(container.metrics.registry),
        media_type=CONTENT_TYPE_LATEST,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"},
    )


@router.post(
    "/dispatch",
    response_model=DispatchResult,
    status_code=status.HTTP_201_CREATED,
    response_model_exclude_none=True,
)
async def dispatch_notification(
    body: DispatchRequest,
    dispatcher: DispatcherDep,
    x_correlation_id: Annotated[str | None, Header()] = None,
    x_trace_id: Annotated[str | None, Header()] = None,
) -> DispatchResult | JSONResponse:
    """Dispatch an event through the same path as bus-delivered events."""
    event = InboundEvent(
        event_id=body.event_id or f"manual-{uuid4()}",
        event_type=body.event_type,
        occurred_at=datetime.now(UTC),
        recipient=body.recipient,
        template_key=body.template_key,
        data=body.data,
        correlation_id=x_correlation_id,
        trace_id=x_trace_id,
    )
    result = await dispatcher.dispatch(event)
    if not result.success:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=result.to_wire())
    return result


@router.get("/preferences/{user_id}", response_model=PreferencesResponse)
async def get_preferences(user_id: str, service: PreferencesServiceDep) -> PreferencesResponse:
    return PreferencesResponse.from_entity(await service.get(user_id))


@router.put("/preferences/{user_id}", response_model=PreferencesResponse)
async def update_preferences(
    user_id: str,
    body: PreferencesUpdate,
    service: PreferencesServiceDep,
) -> PreferencesResponse:
    return PreferencesResponse.from_entity(await service.update(user_id, body))


@router.delete("/users/{user_id}", response_model=ErasureResponse)
async def erase_user_data(user_id: str, service: ErasureServiceDep) -> ErasureResponse:
    """Delete all notifications, attempts and preferences of a user."""
    report = await service.erase_user(user_id)
    return ErasureResponse(
        user_id=report.user_id,
        notifications_deleted=report.notifications_deleted,
        attempts_deleted=report.attempts_deleted,
        preferences_deleted=report.preferences_deleted,
        inbox_deleted=report.inbox_deleted,
    )


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    repository: NotificationRepositoryDep,
    status_filter: Annotated[NotificationStatus | None, Query(alias="status")] = None,
    user_id: Annotated[str | None, Query(alias="userId")] = None,
    event_type: Annotated[str | None, Query(alias="eventType")] = None,
    created_from: Annotated[datetime | None, Query(alias="from")] = None,
    created_to: Annotated[datetime | None, Query(alias="to")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
) -> NotificationListResponse:
    result = await repository.find_by_filters(
        NotificationFilters(
            status=status_filter,
            user_id=user_id,
            event_type=event_type,
            created_from=created_from,
            created_to=created_to,
            page=page,
            limit=limit,
        ),
    )
    return NotificationListResponse(
        items=[NotificationResponse.from_entity(item) for item in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        pages=result.pages,
    )


@router.get("/{notification_id}", response_model=NotificationResponse)
async def get_notification(
    notification_id: UUID,
    repository: NotificationRepositoryDep,
) -> NotificationResponse:
    notification = await repository.find_by_id(notification_id)
    if notification is None:
        raise NotFoundException(
            detail=f"Notification {notification_id} not found",
            type="notification-not-found",
            extra={"notification_id": str(notification_id)},
        )
    return NotificationResponse.from_entity(notification)


@router.get("/{notification_id}/attempts", response_model=list[AttemptResponse])
async def list_attempts(
    notification_id: UUID,
    repository: NotificationRepositoryDep,
    attempts: AttemptRepositoryDep,
) -> list[AttemptResponse]:
    if await repository.find_by_id(notification_id) is None:
        raise NotFoundException(
            detail=f"Notification {notification_id} not found",
            type="notification-not-found",
            extra={"notification_id": str(notification_id)},
        )
    return [AttemptResponse.from_entity(a) for a in await attempts.find_by_notification_id(notification_id)]


@router.post("/{notification_id}/retry", response_model=RetryResult, response_model_exclude_none=True)
async def retry_notification(notification_id: UUID, engine: RetryEngineDep) -> RetryResult:
    """Run one retry round now, regardless of the scheduled time."""
    result = await engine.retry(notification_id)
    if result.reason == "not_found":
        raise NotFoundException(
            detail=f"Notification {notification_id} not found",
            type="notification-not-found",
            extra={"notification_id": str(notification_id)},
        )
    return result
