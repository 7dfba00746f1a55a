"""Tests for the application factory."""

from __future__ import annotations

from fastapi.testclient import TestClient
import pytest

from notification_service.app.main import create_app


@pytest.mark.unit
class TestCreateApp:
    def test_routes_mounted_under_api_prefix(self):
        app = create_app()
        paths = {route.path for route in app.routes}

        assert "/api/v1/notifications/dispatch" in paths
        assert "/api/v1/notifications/{notification_id}/retry" in paths
        assert "/api/v1/notifications/preferences/{user_id}" in paths
        assert "/health" in paths

    def test_health_does_not_need_engine(self):
        response = TestClient(create_app()).get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "service": "notification-service"}
