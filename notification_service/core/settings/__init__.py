"""Modular Pydantic Settings v2 configuration.

Settings are split by domain (app, db, rabbit, logging, notifications,
providers), frozen after validation and cached by the loaders.

Import settings via cached loaders:
    from notification_service.core.settings import get_notification_settings

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. YAML/conf.d files (optional, local/dev)
    3. Environment variables (production)
    4. .env file (development only)
    5. secrets_dir (Kubernetes/Docker secrets)
"""

from __future__ import annotations

from .app import AppSettings
from .loader import (
    clear_all_caches,
    get_app_settings,
    get_db_settings,
    get_logging_settings,
    get_notification_settings,
    get_provider_settings,
    get_rabbit_settings,
)
from .logs import LoggingSettings
from .notifications import NotificationSettings
from .postgres import PostgresSettings
from .providers import ProviderSettings
from .rabbit import RabbitSettings

__all__ = [
    "AppSettings",
    "LoggingSettings",
    "NotificationSettings",
    "PostgresSettings",
    "ProviderSettings",
    "RabbitSettings",
    "clear_all_caches",
    "get_app_settings",
    "get_db_settings",
    "get_logging_settings",
    "get_notification_settings",
    "get_provider_settings",
    "get_rabbit_settings",
]
