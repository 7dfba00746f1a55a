"""Push sender using the FCM HTTP v1 API over httpx."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from notification_service.features.notifications.channels.base import (
    ProviderSender,
    SendResult,
    json_or_empty,
)
from notification_service.utils.masking import mask_token

if TYPE_CHECKING:
    from notification_service.core.settings import ProviderSettings
    from notification_service.features.notifications.entities import Notification
    from notification_service.features.notifications.templates.renderer import TemplateRenderer

DEFAULT_TITLE = "Notificação"


class PushSender(ProviderSender):
    """Send rendered templates as FCM notifications to a device token.

    Notification metadata travels in the FCM ``data`` block, stringified as
    FCM requires.
    """

    channel_name = "push"
    provider_name = "fcm"
    failure_code = "PUSH_SEND_FAILED"

    def __init__(
        self,
        renderer: TemplateRenderer,
        settings: ProviderSettings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(renderer, mock_mode=settings.mock_mode)
        self._url = f"{settings.fcm_base_url}/projects/{settings.fcm_project_id}/messages:send"
        self._token = settings.fcm_access_token.get_secret_value() if settings.fcm_access_token else ""
        self._timeout = settings.request_timeout
        self._client = http_client

    @property
    def _contact_label(self) -> str:
        return "device token"

    def _masked_contact(self, notification: Notification) -> str | None:
        return mask_token(notification.recipient.device_token)

    def _build_content(self, notification: Notification, rendered: dict[str, Any]) -> dict[str, Any]:
        data = {key: str(value) for key, value in notification.metadata.items()}
        data.update(
            notificationId=str(notification.id),
            eventId=notification.event_id,
            eventType=notification.event_type,
        )
        return {
            "token": notification.recipient.device_token,
            "notification": {
                "title": rendered.get("subject") or DEFAULT_TITLE,
                "body": rendered["body"],
            },
            "data": data,
        }

    async def _post(self, client: httpx.AsyncClient, content: dict[str, Any]) -> httpx.Response:
        return await client.post(
            self._url,
            json={"message": content},
            headers={"Authorization": f"Bearer {self._token}"},
            timeout=self._timeout,
        )

    async def _deliver(self, notification: Notification, content: dict[str, Any]) -> SendResult:
        try:
            if self._client is not None:
                response = await self._post(self._client, content)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._post(client, content)
        except httpx.HTTPError as exc:
            return SendResult.failed(str(exc) or type(exc).__name__, self.failure_code)

        payload = json_or_empty(response)
        if response.is_success:
            return SendResult.ok(payload.get("name"))

        error = payload.get("error") or {}
        return SendResult.failed(
            error.get("message") or f"FCM returned HTTP {response.status_code}",
            error.get("status") or self.failure_code,
            rate_limited=response.status_code == 429,
        )
