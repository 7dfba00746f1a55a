"""Base protocol and types for channel senders."""

from __future__ import annotations

from abc import ABC, abstractmethod
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from notification_service.core.exceptions import TemplateRenderError
from notification_service.infra.logging import get_logger

if TYPE_CHECKING:
    import httpx

    from notification_service.features.notifications.entities import Notification, Template
    from notification_service.features.notifications.templates.renderer import TemplateRenderer


@dataclass(frozen=True, slots=True)
class SendResult:
    """Result of one provider call.

    Attributes:
        success: Whether the provider accepted the message
        provider_message_id: Provider-side message identifier
        error: Error description if failed
        error_code: Provider or adapter error code (e.g. EMAIL_SEND_FAILED)
        rate_limited: Provider rejected the call for rate limiting
    """

    success: bool
    provider_message_id: str | None = None
    error: str | None = None
    error_code: str | None = None
    rate_limited: bool = False

    @classmethod
    def ok(cls, provider_message_id: str | None) -> SendResult:
        return cls(success=True, provider_message_id=provider_message_id)

    @classmethod
    def failed(cls, error: str, error_code: str | None = None, *, rate_limited: bool = False) -> SendResult:
        return cls(success=False, error=error, error_code=error_code, rate_limited=rate_limited)


@runtime_checkable
class ChannelSender(Protocol):
    """Protocol for channel-specific senders.

    Each channel (push, email, sms) implements this protocol. Ordinary
    delivery failures are reported through ``SendResult``; only
    infrastructure faults should raise.
    """

    @property
    def channel(self) -> str:
        """Channel identifier (push, email, sms)."""
        ...

    @property
    def provider(self) -> str:
        """Provider identifier (fcm, sendgrid, twilio)."""
        ...

    async def send(self, notification: Notification, template: Template) -> SendResult:
        """Render ``template`` for ``notification`` and deliver it."""
        ...


class ProviderSender(ABC):
    """Shared send flow for provider-backed senders.

    Subclasses set ``channel_name``/``provider_name`` and implement
    ``_deliver``. The base class checks the recipient capability, renders the
    template, records the rendered content on the notification and
    short-circuits in mock mode.
    """

    channel_name: str = ""
    provider_name: str = ""
    failure_code: str = "SEND_FAILED"

    def __init__(self, renderer: TemplateRenderer, *, mock_mode: bool = False) -> None:
        self._renderer = renderer
        self.mock_mode = mock_mode
        self._logger = get_logger(__name__, channel=self.channel_name, provider=self.provider_name)

    @property
    def channel(self) -> str:
        return self.channel_name

    @property
    def provider(self) -> str:
        return self.provider_name

    async def send(self, notification: Notification, template: Template) -> SendResult:
        if not notification.recipient.has_capability(self.channel_name):
            return SendResult.failed(f"No {self._contact_label} provided", self.failure_code)

        try:
            rendered = self._renderer.render(template, notification.metadata)
        except TemplateRenderError as exc:
            self._logger.warning("Template render failed", extra={"error": str(exc)})
            return SendResult.failed(str(exc), "TEMPLATE_RENDER_FAILED")

        content = self._build_content(notification, rendered)
        notification.set_rendered(self.channel_name, content)

        if self.mock_mode:
            self._logger.info(
                "MOCK: message would be sent",
                extra={"to": self._masked_contact(notification), "notification_id": str(notification.id)},
            )
            return SendResult.ok(f"mock-{self.channel_name}-{int(time.time() * 1000)}")

        result = await self._deliver(notification, content)
        if result.success:
            self._logger.info(
                "Message sent",
                extra={
                    "to": self._masked_contact(notification),
                    "provider_message_id": result.provider_message_id,
                    "notification_id": str(notification.id),
                },
            )
        else:
            self._logger.error(
                "Message send failed",
                extra={
                    "error": result.error,
                    "error_code": result.error_code,
                    "notification_id": str(notification.id),
                },
            )
        return result

    @property
    def _contact_label(self) -> str:
        return "contact"

    def _masked_contact(self, notification: Notification) -> str | None:
        return None

    def _build_content(self, notification: Notification, rendered: dict[str, Any]) -> dict[str, Any]:
        return rendered

    @abstractmethod
    async def _deliver(self, notification: Notification, content: dict[str, Any]) -> SendResult:
        """Call the provider with the built content."""


def json_or_empty(response: httpx.Response) -> dict[str, Any]:
    """Decode a provider error/success body, tolerating non-JSON replies."""
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}
