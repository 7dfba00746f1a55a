"""Unit tests for the per-domain settings."""

from __future__ import annotations

from datetime import timedelta

import pytest
from pydantic import ValidationError

from notification_service.core.settings import (
    AppSettings,
    NotificationSettings,
    PostgresSettings,
    ProviderSettings,
    RabbitSettings,
    clear_all_caches,
    get_notification_settings,
)
from notification_service.features.notifications.backoff import BackoffPolicy


@pytest.mark.unit
class TestAppSettings:
    def test_environment_from_env(self):
        settings = AppSettings()

        assert settings.environment == "test"  # From env var in conftest
        assert settings.api_prefix == "/api/v1"

    def test_frozen(self):
        settings = AppSettings()

        with pytest.raises(ValidationError):
            settings.debug = True


@pytest.mark.unit
class TestNotificationSettings:
    def test_defaults(self):
        settings = NotificationSettings()

        assert settings.backoff_sequence == "5s,25s,2m,10m,30m,2h,6h,24h"
        assert settings.max_attempts_per_channel == 3
        assert settings.dedup_window_sec == 600
        assert settings.default_locale == "pt-BR"
        assert settings.feature_preferences is False

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("NOTIF_BACKOFF_SEQUENCE", "1s,2s")
        monkeypatch.setenv("NOTIF_MAX_ATTEMPTS_PER_CHANNEL", "5")

        settings = NotificationSettings()

        assert BackoffPolicy.from_string(settings.backoff_sequence).delays == (
            timedelta(seconds=1),
            timedelta(seconds=2),
        )
        assert settings.max_attempts_per_channel == 5

    def test_invalid_backoff_rejected(self):
        with pytest.raises(ValidationError):
            NotificationSettings(backoff_sequence="5s,soon")

    def test_loader_is_cached(self):
        first = get_notification_settings()

        assert get_notification_settings() is first
        clear_all_caches()
        assert get_notification_settings() is not first

    def test_yaml_confd_overrides_base_file(self, tmp_path, monkeypatch):
        (tmp_path / "notifications.yaml").write_text("max_attempts_per_channel: 4\nretention_days: 30\n")
        confd = tmp_path / "notifications.d"
        confd.mkdir()
        (confd / "10-local.yaml").write_text("max_attempts_per_channel: 7\n")
        monkeypatch.setenv("CONFIG_DIR", str(tmp_path))

        settings = NotificationSettings()

        assert settings.max_attempts_per_channel == 7
        assert settings.retention_days == 30

    def test_init_kwargs_beat_yaml(self, tmp_path, monkeypatch):
        (tmp_path / "notifications.yaml").write_text("max_attempts_per_channel: 4\n")
        monkeypatch.setenv("CONFIG_DIR", str(tmp_path))

        assert NotificationSettings(max_attempts_per_channel=2).max_attempts_per_channel == 2


@pytest.mark.unit
class TestRabbitSettings:
    def test_url_from_components(self):
        settings = RabbitSettings(host="mq", username="svc", password="p@ss", vhost="/")

        assert settings.get_url() == "amqp://svc:p%40ss@mq:5672/%2F"

    def test_explicit_uri_wins(self):
        settings = RabbitSettings(amqp_uri="amqp://a:b@broker:5672/notifications", host="ignored")

        assert settings.get_url() == "amqp://a:b@broker:5672/notifications"

    def test_disabled_by_test_env(self):
        assert RabbitSettings().is_configured is False

    def test_queue_name(self):
        assert RabbitSettings().queue_name("inbound-events") == "notification-service.inbound-events"


@pytest.mark.unit
class TestPostgresSettings:
    def test_falls_back_to_sqlite(self):
        settings = PostgresSettings(dsn=None, host=None)

        assert settings.is_sqlite
        assert settings.is_configured is False

    def test_url_from_components(self):
        settings = PostgresSettings(host="db", user="svc", password="pw", name="notifications")

        assert settings.get_sqlalchemy_url() == "postgresql+psycopg://svc:pw@db:5432/notifications"
        assert settings.is_configured


@pytest.mark.unit
class TestProviderSettings:
    def test_mock_mode_configures_every_channel(self):
        settings = ProviderSettings(mock_mode=True)

        assert settings.email_configured
        assert settings.sms_configured
        assert settings.push_configured

    def test_credentials_required_without_mock_mode(self):
        settings = ProviderSettings(mock_mode=False, twilio_account_sid="AC1", twilio_auth_token="t")

        assert not settings.sms_configured
        assert not settings.email_configured

    def test_secrets_hidden_in_repr(self):
        settings = ProviderSettings(twilio_auth_token="super-secret")

        assert "super-secret" not in repr(settings)
