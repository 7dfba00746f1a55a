"""Email sender using aiosmtplib against an SMTP relay (SendGrid)."""

from __future__ import annotations

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import TYPE_CHECKING, Any
import uuid

import aiosmtplib

from notification_service.features.notifications.channels.base import ProviderSender, SendResult
from notification_service.utils.masking import mask_email

if TYPE_CHECKING:
    from notification_service.core.settings import ProviderSettings
    from notification_service.features.notifications.entities import Notification
    from notification_service.features.notifications.templates.renderer import TemplateRenderer

DEFAULT_SUBJECT = "Notificação"


class EmailSender(ProviderSender):
    """Send rendered templates as plain text email.

    Port 465 uses implicit TLS; any other port negotiates STARTTLS.
    """

    channel_name = "email"
    provider_name = "sendgrid"
    failure_code = "EMAIL_SEND_FAILED"

    def __init__(self, renderer: TemplateRenderer, settings: ProviderSettings) -> None:
        super().__init__(renderer, mock_mode=settings.mock_mode)
        self._host = settings.smtp_host
        self._port = settings.smtp_port
        self._user = settings.smtp_user
        self._password = settings.smtp_password.get_secret_value() if settings.smtp_password else None
        self._from = settings.email_from
        self._timeout = settings.request_timeout

    @property
    def _contact_label(self) -> str:
        return "email address"

    def _masked_contact(self, notification: Notification) -> str | None:
        return mask_email(notification.recipient.email)

    def _build_content(self, notification: Notification, rendered: dict[str, Any]) -> dict[str, Any]:
        body = rendered["body"]
        return {"subject": rendered.get("subject") or DEFAULT_SUBJECT, "text": body, "html": body}

    def _build_message(self, notification: Notification, content: dict[str, Any]) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["From"] = self._from
        message["To"] = notification.recipient.email or ""
        message["Subject"] = content["subject"]
        message["Message-ID"] = f"<{uuid.uuid4()}@{self._host or 'localhost'}>"
        message["X-Notification-Id"] = str(notification.id)
        message["X-Event-Id"] = notification.event_id
        if notification.correlation_id:
            message["X-Correlation-Id"] = notification.correlation_id
        message.attach(MIMEText(content["text"], "plain", "utf-8"))
        message.attach(MIMEText(content["html"], "html", "utf-8"))
        return message

    async def _deliver(self, notification: Notification, content: dict[str, Any]) -> SendResult:
        message = self._build_message(notification, content)
        try:
            await aiosmtplib.send(
                message,
                hostname=self._host,
                port=self._port,
                username=self._user,
                password=self._password,
                use_tls=self._port == 465,
                start_tls=self._port != 465,
                timeout=self._timeout,
            )
        except aiosmtplib.SMTPResponseException as exc:
            return SendResult.failed(exc.message, str(exc.code) if exc.code else self.failure_code)
        except aiosmtplib.SMTPException as exc:
            return SendResult.failed(str(exc), self.failure_code)
        return SendResult.ok(message["Message-ID"])
