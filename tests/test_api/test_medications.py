"""
Tests for Medications API
==========================

Tests medication CRUD, reminder scheduling and prescription import.
"""

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from models import Dose, DoseStatus, ReminderPattern
from tests import SAMPLE_MEDICATIONS
from tests.factories import add_history, add_pattern


# ==================== CREATE TESTS ====================

class TestCreateMedication:
    """Tests for medication creation endpoint"""

    @pytest.mark.api
    def test_create_medication_success(self, client: TestClient, scheduler, sample_medication_data):
        response = client.post("/api/v1/medications/", json=sample_medication_data)

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["name"] == "Metformin"
        assert data["times"] == ["08:00", "20:00"]
        assert len(data["notification_ids"]) == 2
        assert len(scheduler.scheduled) == 2

    @pytest.mark.api
    def test_create_medication_without_times(self, client: TestClient):
        response = client.post("/api/v1/medications/", json={
            "name": "Vitamin D",
            "dosage": "1000 IU",
            "frequency": "as needed"
        })

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["notification_ids"] == []

    @pytest.mark.api
    def test_create_medication_malformed_time(self, client: TestClient, sample_medication_data):
        sample_medication_data["times"] = ["8:00"]

        response = client.post("/api/v1/medications/", json=sample_medication_data)

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"] == "ValidationError"

    @pytest.mark.api
    def test_create_medication_duplicate_time(self, client: TestClient, sample_medication_data):
        sample_medication_data["times"] = ["08:00", "08:00"]

        response = client.post("/api/v1/medications/", json=sample_medication_data)

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    @pytest.mark.api
    def test_create_medication_missing_name(self, client: TestClient):
        response = client.post("/api/v1/medications/", json={"dosage": "5mg", "frequency": "daily"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["error"] == "RequestValidationError"


# ==================== READ TESTS ====================

class TestGetMedications:
    """Tests for medication retrieval endpoints"""

    @pytest.mark.api
    def test_get_medication(self, client: TestClient, test_medication):
        response = client.get(f"/api/v1/medications/{test_medication.id}")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["id"] == test_medication.id

    @pytest.mark.api
    def test_get_medication_not_found(self, client: TestClient):
        response = client.get("/api/v1/medications/99999")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        data = response.json()
        assert data["error"] == "NotFoundError"
        assert data["status_code"] == 404
        assert "timestamp" in data

    @pytest.mark.api
    def test_list_medications_sorted_by_name(self, client: TestClient, test_medication):
        client.post("/api/v1/medications/", json={"name": "Aspirin", "dosage": "81mg", "frequency": "daily"})

        response = client.get("/api/v1/medications/")

        data = response.json()
        assert data["total"] == 2
        assert [m["name"] for m in data["medications"]] == ["Aspirin", "Metformin"]

    @pytest.mark.api
    def test_list_reminds_every_slot(self, client: TestClient, scheduler):
        for medication in SAMPLE_MEDICATIONS:
            client.post("/api/v1/medications/", json=medication)

        data = client.get("/api/v1/medications/").json()

        assert [m["name"] for m in data["medications"]] == ["Atorvastatin", "Lisinopril", "Metformin"]
        assert len(scheduler.scheduled) == 4


# ==================== UPDATE TESTS ====================

class TestUpdateMedication:
    """Tests for medication update endpoint"""

    @pytest.mark.api
    def test_update_times_reschedules(self, client: TestClient, scheduler, sample_medication_data):
        created = client.post("/api/v1/medications/", json=sample_medication_data).json()

        response = client.patch(f"/api/v1/medications/{created['id']}", json={"times": ["09:00"]})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["times"] == ["09:00"]
        assert len(data["notification_ids"]) == 1
        assert sorted(scheduler.cancelled_ids) == sorted(created["notification_ids"])
        assert [(n.request.trigger.hour, n.request.trigger.minute) for n in scheduler.scheduled] == [(9, 0)]

    @pytest.mark.api
    def test_update_color_keeps_reminders(self, client: TestClient, scheduler, sample_medication_data):
        created = client.post("/api/v1/medications/", json=sample_medication_data).json()

        response = client.patch(f"/api/v1/medications/{created['id']}", json={"color": "#FF8800"})

        assert response.json()["color"] == "#FF8800"
        assert response.json()["notification_ids"] == created["notification_ids"]
        assert scheduler.cancelled_ids == []

    @pytest.mark.api
    def test_update_dosage_reschedules(self, client: TestClient, scheduler, sample_medication_data):
        created = client.post("/api/v1/medications/", json=sample_medication_data).json()

        response = client.patch(f"/api/v1/medications/{created['id']}", json={"dosage": "850mg"})

        body = response.json()
        assert body["dosage"] == "850mg"
        assert sorted(scheduler.cancelled_ids) == sorted(created["notification_ids"])
        assert len(body["notification_ids"]) == 2
        assert scheduler.get(body["notification_ids"][0]).request.payload["dosage"] == "850mg"


# ==================== DELETE TESTS ====================

class TestDeleteMedication:
    """Tests for medication deletion endpoint"""

    @pytest.mark.api
    def test_delete_cascades(self, client: TestClient, db_session, test_medication):
        add_history(db_session, test_medication, "08:00", [(DoseStatus.TAKEN, 0)] * 3)
        add_pattern(db_session, test_medication, "08:00")

        response = client.delete(f"/api/v1/medications/{test_medication.id}")

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert db_session.query(Dose).count() == 0
        assert db_session.query(ReminderPattern).count() == 0
        assert client.get(f"/api/v1/medications/{test_medication.id}").status_code == 404


# ==================== IMPORT TESTS ====================

class TestPrescriptionImport:
    """Tests for prescription import endpoint"""

    @pytest.mark.api
    def test_import_skips_incomplete_entries(self, client: TestClient):
        response = client.post("/api/v1/medications/import", json={
            "doctorName": "Dr. Osei",
            "imageRef": "scan-001.jpg",
            "medications": [
                {"name": "Lisinopril", "dosage": "10", "dosageUnit": "mg",
                 "frequency": "once daily", "times": ["8:00"], "confidence": "high"},
                {"name": "Unknown", "dosage": "", "frequency": "", "times": []},
            ]
        })

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert [m["name"] for m in data["medications"]] == ["Lisinopril"]
        assert data["medications"][0]["dosage"] == "10mg"
        assert data["medications"][0]["times"] == ["08:00"]
        assert data["skipped"] == ["Unknown"]
