"""Pytest configuration and shared fixtures.

Organization:
    - Environment: keep tests away from external infrastructure
    - Engine Fixtures: notification engine wired to in-memory ports
    - Settings Fixtures: cache isolation for the LRU settings loaders
"""

from __future__ import annotations

import os

import pytest
from prometheus_client import CollectorRegistry

# Ensure tests run without external infrastructure
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("RABBIT_ENABLED", "false")
os.environ.setdefault("NOTIF_RETRY_POLLER_ENABLED", "false")
os.environ.setdefault("PROVIDER_MOCK_MODE", "true")
os.environ.setdefault("CONFIG_DIR", "/nonexistent-config-dir")

from notification_service.core.settings import clear_all_caches  # noqa: E402
from notification_service.features.notifications.metrics import NotificationMetrics  # noqa: E402
from tests.fixtures.notifications import EngineHarness, ok_senders  # noqa: E402

# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _isolate_settings_cache():
    """Drop cached settings before and after each test."""
    clear_all_caches()
    yield
    clear_all_caches()


# ============================================================================
# Engine Fixtures
# ============================================================================


@pytest.fixture
def metrics() -> NotificationMetrics:
    """Metrics handle bound to a private registry."""
    return NotificationMetrics(CollectorRegistry())


@pytest.fixture
def harness() -> EngineHarness:
    """Engine whose three senders all succeed."""
    return EngineHarness(senders=ok_senders())
