"""
Tests for Reminders API
========================

Tests reminder actions and caregiver checks over HTTP.
"""

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from models import DoseStatus
from tools.notification_service import OneShotTrigger
from tests.factories import add_history, ts


class TestReminderActions:
    """Tests for the reminder action endpoint"""

    @pytest.mark.api
    def test_take(self, client: TestClient, scheduler, test_medication):
        response = client.post("/api/v1/reminders/actions", json={
            "action": "take",
            "payload": {"medication_id": test_medication.id, "time_slot": "08:00"},
            "trigger_id": "delivered-1"
        })

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["status"] == "taken"
        assert data["scheduled_time"] == ts("08:00")
        assert scheduler.dismissed_ids == ["delivered-1"]

    @pytest.mark.api
    def test_snooze(self, client: TestClient, scheduler, test_medication):
        response = client.post("/api/v1/reminders/actions", json={
            "action": "snooze",
            "payload": {"medication_id": test_medication.id, "time_slot": "20:00"},
            "snooze_minutes": 5
        })

        assert response.json()["status"] == "snoozed"
        assert scheduler.scheduled[0].request.trigger == OneShotTrigger(seconds=300)

    @pytest.mark.api
    def test_unknown_action(self, client: TestClient, test_medication):
        response = client.post("/api/v1/reminders/actions", json={
            "action": "later",
            "payload": {"medication_id": test_medication.id, "time_slot": "08:00"}
        })

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    @pytest.mark.api
    def test_payload_without_slot(self, client: TestClient, test_medication):
        response = client.post("/api/v1/reminders/actions", json={
            "action": "take",
            "payload": {"medication_id": test_medication.id}
        })

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"] == "ValidationError"


class TestCaregiverCheck:
    """Tests for the caregiver check endpoint"""

    @pytest.mark.api
    def test_disabled(self, client: TestClient):
        assert client.post("/api/v1/reminders/caregiver-check").json() == {"notified": False}

    @pytest.mark.api
    def test_notifies(self, client: TestClient, scheduler, db_session, test_medication):
        client.put("/api/v1/settings/caregiver_enabled", json={"value": "true"})
        client.put("/api/v1/settings/caregiver_phone", json={"value": "+15550100"})
        add_history(db_session, test_medication, "08:00", [(DoseStatus.MISSED, None)] * 3)

        assert client.post("/api/v1/reminders/caregiver-check").json() == {"notified": True}
        assert scheduler.scheduled[0].request.payload["caregiver_alert"] is True
