"""Tests for the Flask application factory."""
from __future__ import annotations

from services.notifications import NotificationDispatcher
from services.rules_engine import VisaRulesEngine


def test_health_endpoint_returns_ok(client):
    """The health endpoint should respond with an OK payload."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}
    assert response.headers.get("X-Request-ID")


def test_blueprints_registered(app):
    """Application factory should register expected blueprints."""
    bps = set(app.blueprints.keys())
    assert {"visa", "trips", "applications", "notifications", "countries"}.issubset(bps)


def test_engine_and_dispatcher_are_injected(app):
    assert isinstance(app.extensions["visa_engine"], VisaRulesEngine)
    assert isinstance(app.extensions["notification_dispatcher"], NotificationDispatcher)


def test_request_id_is_echoed(client):
    response = client.get("/does-not-exist", headers={"X-Request-ID": "abc-123"})
    assert response.status_code == 404
    assert response.get_json()["request_id"] == "abc-123"
    assert response.headers["X-Request-ID"] == "abc-123"
