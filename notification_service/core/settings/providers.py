"""Delivery provider credentials (SMTP, Twilio, FCM)."""

from __future__ import annotations

from typing import ClassVar

from pydantic import Field, SecretStr
from pydantic_settings import SettingsConfigDict

from ._base import DomainSettings


class ProviderSettings(DomainSettings):
    """Credentials and endpoints for the channel senders.

    Environment variables use PROVIDER_ prefix.
    Example: PROVIDER_MOCK_MODE=true, PROVIDER_SMTP_HOST=smtp.sendgrid.net

    In mock mode every sender renders its template and reports success without
    contacting the provider.
    """

    yaml_domain: ClassVar[str] = "providers"

    mock_mode: bool = Field(default=False, description="Skip real provider calls")
    request_timeout: float = Field(default=10.0, gt=0, le=120.0)

    # Email (SendGrid SMTP relay)
    smtp_host: str | None = Field(default=None)
    smtp_port: int = Field(default=587, ge=1, le=65535)
    smtp_user: str | None = Field(default=None)
    smtp_password: SecretStr | None = Field(default=None)
    email_from: str = Field(default="notifications@clickdelivery.com.br")

    # SMS (Twilio REST)
    twilio_account_sid: str | None = Field(default=None)
    twilio_auth_token: SecretStr | None = Field(default=None)
    twilio_from: str | None = Field(default=None)
    twilio_base_url: str = Field(default="https://api.twilio.com/2010-04-01")

    # Push (FCM HTTP v1)
    fcm_project_id: str | None = Field(default=None)
    fcm_access_token: SecretStr | None = Field(
        default=None,
        description="OAuth2 bearer token for the FCM HTTP v1 API",
    )
    fcm_base_url: str = Field(default="https://fcm.googleapis.com/v1")

    model_config = SettingsConfigDict(
        env_prefix="PROVIDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @property
    def email_configured(self) -> bool:
        return self.mock_mode or bool(self.smtp_host)

    @property
    def sms_configured(self) -> bool:
        return self.mock_mode or bool(self.twilio_account_sid and self.twilio_auth_token and self.twilio_from)

    @property
    def push_configured(self) -> bool:
        return self.mock_mode or bool(self.fcm_project_id and self.fcm_access_token)
