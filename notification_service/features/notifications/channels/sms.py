"""SMS sender using the Twilio REST API over httpx."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from notification_service.features.notifications.channels.base import (
    ProviderSender,
    SendResult,
    json_or_empty,
)
from notification_service.utils.masking import mask_phone

if TYPE_CHECKING:
    from notification_service.core.settings import ProviderSettings
    from notification_service.features.notifications.entities import Notification
    from notification_service.features.notifications.templates.renderer import TemplateRenderer


class SmsSender(ProviderSender):
    """Send rendered template bodies as SMS through Twilio."""

    channel_name = "sms"
    provider_name = "twilio"
    failure_code = "SMS_SEND_FAILED"

    def __init__(
        self,
        renderer: TemplateRenderer,
        settings: ProviderSettings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(renderer, mock_mode=settings.mock_mode)
        self._account_sid = settings.twilio_account_sid or ""
        self._auth_token = settings.twilio_auth_token.get_secret_value() if settings.twilio_auth_token else ""
        self._from = settings.twilio_from
        self._url = f"{settings.twilio_base_url}/Accounts/{self._account_sid}/Messages.json"
        self._timeout = settings.request_timeout
        self._client = http_client

    @property
    def _contact_label(self) -> str:
        return "phone number"

    def _masked_contact(self, notification: Notification) -> str | None:
        return mask_phone(notification.recipient.phone)

    def _build_content(self, notification: Notification, rendered: dict[str, Any]) -> dict[str, Any]:
        return {"body": rendered["body"]}

    async def _post(self, client: httpx.AsyncClient, data: dict[str, Any]) -> httpx.Response:
        return await client.post(
            self._url,
            data=data,
            auth=(self._account_sid, self._auth_token),
            timeout=self._timeout,
        )

    async def _deliver(self, notification: Notification, content: dict[str, Any]) -> SendResult:
        data = {"To": notification.recipient.phone, "From": self._from, "Body": content["body"]}
        try:
            if self._client is not None:
                response = await self._post(self._client, data)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._post(client, data)
        except httpx.HTTPError as exc:
            return SendResult.failed(str(exc) or type(exc).__name__, self.failure_code)

        payload = json_or_empty(response)
        if response.is_success:
            return SendResult.ok(payload.get("sid"))

        code = payload.get("code")
        return SendResult.failed(
            payload.get("message") or f"Twilio returned HTTP {response.status_code}",
            str(code) if code else self.failure_code,
            rate_limited=response.status_code == 429,
        )
