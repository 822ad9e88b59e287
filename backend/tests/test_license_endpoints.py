"""
Test suite for license, admin and health endpoints.

Tests cover:
- Admin password gate on /api/admin/* endpoints
- Admin login and login page
- Code activation responses
- Health checks on the assembled app
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import hashlib
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from ocr_enhancer.config import settings
from ocr_enhancer.routers import admin, licenses
from ocr_enhancer.utils.security import hash_admin_password, verify_admin_password

PASSWORD = "correct horse"
SALT = "pepper"
NOW = datetime.now(timezone.utc)


def _row(**overrides):
    row = {
        'code': 'AB12CD34',
        'duration_days': 30,
        'created_at': (NOW - timedelta(days=1)).isoformat(),
        'used_at': None,
        'device_id': None,
    }
    row.update(overrides)
    return row


@pytest.fixture(autouse=True)
def admin_password():
    with patch.object(settings, 'ADMIN_PASSWORD_HASH', hash_admin_password(PASSWORD, SALT)), \
            patch.object(settings, 'ADMIN_PASSWORD_SALT', SALT):
        yield


@pytest.fixture
def supabase():
    mock_supabase = Mock()
    with patch('ocr_enhancer.services.licenses.get_supabase_client', return_value=mock_supabase):
        yield mock_supabase


@pytest.fixture
def client():
    app = FastAPI()
    app.include_router(licenses.router)
    app.include_router(admin.router)
    return TestClient(app)


class TestAdminGate:
    """X-Admin-Password on admin endpoints."""

    def test_verify(self):
        assert verify_admin_password(PASSWORD)
        assert not verify_admin_password("wrong")
        assert not verify_admin_password(None)

    def test_empty_configured_hash_denies(self):
        with patch.object(settings, 'ADMIN_PASSWORD_HASH', ''):
            assert not verify_admin_password(PASSWORD)

    def test_hash_is_scrypt(self):
        expected = hashlib.scrypt(
            PASSWORD.encode(), salt=SALT.encode(), n=2 ** 14, r=8, p=1, dklen=32
        ).hex()

        assert hash_admin_password(PASSWORD, SALT) == expected
        assert hash_admin_password(PASSWORD, SALT) != hashlib.sha256((SALT + PASSWORD).encode()).hexdigest()

    @pytest.mark.parametrize("headers", [{}, {"X-Admin-Password": "wrong"}])
    def test_generate_requires_password(self, client, supabase, headers):
        response = client.post("/api/admin/generate", json={"count": 1, "durationDays": 30}, headers=headers)

        assert response.status_code == 401
        supabase.table.assert_not_called()

    def test_list_requires_password(self, client, supabase):
        assert client.get("/api/admin/licenses").status_code == 401


class TestAdminEndpoints:
    """Issuing and listing codes."""

    HEADERS = {"X-Admin-Password": PASSWORD}

    def test_generate(self, client, supabase):
        supabase.table.return_value.insert.return_value.execute.return_value = Mock(data=None)

        response = client.post(
            "/api/admin/generate",
            json={"count": 2, "durationDays": 30},
            headers=self.HEADERS
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert len(data["created"]) == 2
        assert all(item["durationDays"] == 30 for item in data["created"])

    @pytest.mark.parametrize("body", [{"count": 0, "durationDays": 30}, {"count": 1}])
    def test_generate_invalid_body(self, client, supabase, body):
        response = client.post("/api/admin/generate", json=body, headers=self.HEADERS)

        assert response.status_code == 422

    def test_generate_over_limit(self, client, supabase):
        response = client.post(
            "/api/admin/generate",
            json={"count": 10000, "durationDays": 30},
            headers=self.HEADERS
        )

        assert response.status_code == 400

    def test_generate_store_failure(self, client, supabase):
        supabase.table.return_value.insert.return_value.execute.side_effect = Exception("boom")

        response = client.post(
            "/api/admin/generate",
            json={"count": 1, "durationDays": 30},
            headers=self.HEADERS
        )

        assert response.status_code == 500

    def test_list(self, client, supabase):
        supabase.table.return_value.select.return_value.order.return_value.execute.return_value = Mock(
            data=[_row(), _row(code='USED0001', device_id='device-1')]
        )

        response = client.get("/api/admin/licenses", headers=self.HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert [item["code"] for item in data] == ['AB12CD34', 'USED0001']
        assert [item["status"] for item in data] == ['active', 'used']
        assert "expiresAt" in data[0]


class TestAdminLogin:
    """POST /api/admin-login and GET /admin"""

    def test_success(self, client):
        response = client.post("/api/admin-login", json={"password": PASSWORD})

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Login successful"}

    def test_wrong_password(self, client):
        response = client.post("/api/admin-login", json={"password": "nope"})

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Incorrect password"}

    def test_missing_password(self, client):
        response = client.post("/api/admin-login", json={})

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Password required"}

    def test_login_page(self, client):
        response = client.get("/admin")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "Admin Login" in response.text


class TestValidate:
    """POST /api/validate"""

    def _select_returns(self, supabase, rows):
        supabase.table.return_value.select.return_value.eq.return_value.limit.return_value.execute.return_value = Mock(data=rows)

    def test_activates(self, client, supabase):
        self._select_returns(supabase, [_row()])

        response = client.post("/api/validate", json={"code": "AB12CD34", "deviceId": "device-1"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["expiresAt"]

    def test_unknown_code(self, client, supabase):
        self._select_returns(supabase, [])

        response = client.post("/api/validate", json={"code": "NOPE", "deviceId": "device-1"})

        assert response.status_code == 404
        assert response.json()["reason"] == "not_found"

    def test_device_mismatch(self, client, supabase):
        self._select_returns(supabase, [_row(device_id='device-1')])

        response = client.post("/api/validate", json={"code": "AB12CD34", "deviceId": "device-2"})

        assert response.status_code == 200
        assert response.json() == {
            "success": False,
            "message": "Code already used on another device",
            "reason": "device_mismatch",
            "expiresAt": None,
        }

    def test_not_yet_active(self, client, supabase):
        self._select_returns(supabase, [_row(created_at=(NOW + timedelta(days=1)).isoformat())])

        response = client.post("/api/validate", json={"code": "AB12CD34", "deviceId": "device-1"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["reason"] == "not_yet_active"
        supabase.table.return_value.update.assert_not_called()

    def test_missing_device(self, client, supabase):
        response = client.post("/api/validate", json={"code": "AB12CD34"})

        assert response.status_code == 422


class TestHealth:
    """Assembled application."""

    def test_health(self):
        from ocr_enhancer.main import app

        client = TestClient(app)
        assert client.get("/health").json() == {"status": "healthy"}
        assert client.get("/").json()["status"] == "running"

    def test_root_lists_repair_stages(self):
        from ocr_enhancer.main import app

        data = TestClient(app).get("/").json()
        assert data["repairStages"][0] == "null_time_reconstruction"
        assert data["repairStages"][-1] == "bare_key_quoting"


class TestStoreUnavailable:
    """Supabase not configured."""

    def test_validate_returns_500(self, client):
        with patch.object(settings, 'SUPABASE_URL', ''):
            response = client.post("/api/validate", json={"code": "AB12CD34", "deviceId": "device-1"})

        assert response.status_code == 500
