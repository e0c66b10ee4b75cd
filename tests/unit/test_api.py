# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the webhook API.

The enrolment service dependency is overridden with one built over the
in-memory fakes, so no database is needed.
"""

import pytest
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.api.dependencies import get_enrolment_service

MARKER_ROLE = 9
STUDENT = 57
TEACHER = 3
CONTEXT = 310
COURSE = 12
DAY = 86400
SECRET = "hook-secret"


def _event(**overrides) -> dict:
    body = {
        "actor_id": TEACHER,
        "subject_id": STUDENT,
        "context_id": CONTEXT,
        "course_id": COURSE,
        "role_id": MARKER_ROLE,
        "role_assignment_id": 1001,
    }
    body.update(overrides)
    return body


@pytest.fixture
def client(service, monkeypatch) -> TestClient:
    """Test client with the fake-backed service and a webhook secret."""
    monkeypatch.setenv("API_WEBHOOK_SECRET", SECRET)
    app = create_app()
    app.dependency_overrides[get_enrolment_service] = lambda: service
    return TestClient(app, headers={"X-Webhook-Secret": SECRET})


class TestWebhookAuth:
    """Tests for the X-Webhook-Secret check."""

    def test_missing_secret_rejected(self, client):
        """Test that calls without the header are unauthorized."""
        response = client.post(
            "/api/v1/events/role-assigned",
            json=_event(),
            headers={"X-Webhook-Secret": ""},
        )

        assert response.status_code in (401, 403)

    def test_wrong_secret_rejected(self, client):
        """Test that a wrong secret is forbidden."""
        response = client.post(
            "/api/v1/events/role-assigned",
            json=_event(),
            headers={"X-Webhook-Secret": "guess"},
        )

        assert response.status_code == 403

    def test_no_secret_configured_allows_calls(self, service, gateway):
        """Test that an unset secret leaves the webhooks open."""
        app = create_app()
        app.dependency_overrides[get_enrolment_service] = lambda: service
        gateway.assign(1001)

        response = TestClient(app).post("/api/v1/events/role-assigned", json=_event())

        assert response.status_code == 200


class TestEventEndpoints:
    """Tests for the role assignment webhooks."""

    def test_role_assigned_tracks(self, client, store, gateway, t0):
        """Test that a marker role grant is tracked."""
        gateway.assign(1001)

        response = client.post("/api/v1/events/role-assigned", json=_event(timestamp=t0))

        assert response.status_code == 200
        data = response.json()
        assert data["action"] == "tracked"
        assert data["emails_sent"] == ["student_init", "teacher_init"]
        assert store.records[1001].time_end == t0 + 14 * DAY

    def test_role_unassigned_expires(self, client, store, gateway, t0):
        """Test that a marker role removal expires the record."""
        store.add(1001, t0, 14 * DAY)

        response = client.post("/api/v1/events/role-unassigned", json=_event())

        assert response.status_code == 200
        assert response.json() == {
            "action": "expired",
            "record_id": 1,
            "emails_sent": ["expire"],
        }
        assert store.records == {}

    def test_invalid_body_rejected(self, client):
        """Test that malformed events are rejected before the engine."""
        response = client.post(
            "/api/v1/events/role-assigned",
            json=_event(role_assignment_id="not-a-number"),
        )

        assert response.status_code == 422

    def test_negative_timestamp_rejected(self, client):
        """Test that timestamps must not be negative."""
        response = client.post("/api/v1/events/role-assigned", json=_event(timestamp=-1))

        assert response.status_code == 422


class TestSweepEndpoints:
    """Tests for on-demand sweeps."""

    def test_enqueue_sweep(self, client):
        """Test that a sweep is enqueued and its message ID returned."""
        response = client.post("/api/v1/sweeps/expire")

        assert response.status_code == 202
        data = response.json()
        assert data["sweep"] == "expire"
        assert data["status"] == "queued"
        assert data["message_id"]

    def test_unknown_sweep_rejected(self, client):
        """Test that unknown sweep names are a validation error."""
        response = client.post("/api/v1/sweeps/vacuum")

        assert response.status_code == 422


class TestTrackingEndpoints:
    """Tests for tracking record access."""

    def test_list_records(self, client, store, t0):
        """Test listing tracking records."""
        store.add(1001, t0, 14 * DAY)
        store.add(1002, t0, 14 * DAY, upgraded=True)

        response = client.get("/api/v1/tracking")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [item["role_assignment_id"] for item in data["items"]] == [1001, 1002]
        assert data["items"][1]["upgraded"] is True

    def test_get_record(self, client, store, t0):
        """Test fetching one record."""
        store.add(1001, t0, 14 * DAY)

        response = client.get("/api/v1/tracking/1001")

        assert response.status_code == 200
        assert response.json()["time_end"] == t0 + 14 * DAY

    def test_get_missing_record(self, client):
        """Test that an untracked role assignment is not found."""
        response = client.get("/api/v1/tracking/4242")

        assert response.status_code == 404


class TestHealthEndpoints:
    """Tests for health endpoints."""

    def test_liveness(self, client):
        """Test that liveness needs no dependencies."""
        response = client.get("/health/live")

        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    def test_readiness_without_database(self, client):
        """Test that an uninitialized database makes the API not ready."""
        response = client.get("/health/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["ready"] is False
        assert data["checks"]["database"]["status"] == "unhealthy"

    def test_health_reports_components(self, client):
        """Test the detailed health report."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["components"]["database"]["status"] == "unhealthy"
        assert data["status"] in ("degraded", "unhealthy")
