"""
Tests for Settings API
=======================
"""

import pytest
from fastapi import status
from fastapi.testclient import TestClient


class TestSettings:
    """Tests for settings endpoints"""

    @pytest.mark.api
    def test_defaults(self, client: TestClient):
        data = client.get("/api/v1/settings/").json()

        assert data["adaptive_enabled"] == "true"
        assert data["prealerts_enabled"] == "true"
        assert data["caregiver_enabled"] == "false"

    @pytest.mark.api
    def test_put_and_get(self, client: TestClient):
        response = client.put("/api/v1/settings/caregiver_name", json={"value": "Sam"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"key": "caregiver_name", "value": "Sam"}
        assert client.get("/api/v1/settings/caregiver_name").json()["value"] == "Sam"

    @pytest.mark.api
    def test_overwrite(self, client: TestClient):
        client.put("/api/v1/settings/prealerts_enabled", json={"value": "false"})
        client.put("/api/v1/settings/prealerts_enabled", json={"value": "true"})

        assert client.get("/api/v1/settings/").json()["prealerts_enabled"] == "true"

    @pytest.mark.api
    def test_unknown_key_is_empty(self, client: TestClient):
        assert client.get("/api/v1/settings/theme").json() == {"key": "theme", "value": ""}


class TestRootEndpoints:
    """Tests for root and health endpoints"""

    @pytest.mark.api
    def test_root(self, client: TestClient):
        data = client.get("/").json()

        assert data["name"] == "DoseRhythm"
        assert data["docs"] == "/docs"

    @pytest.mark.api
    def test_health(self, client: TestClient):
        assert client.get("/health").json()["status"] == "healthy"
