"""
Authorization tests for RDR Finance.

Verifies:
- Unauthenticated requests return 401
- Employees are denied admin operations (403)
- Admins can perform privileged operations
- Login / logout / profile round trip
"""

import io

import pytest

from rdr_finance.extensions import db
from rdr_finance.models import ActivityLog, Employee, User

from conftest import ADMIN_PASSWORD, EMPLOYEE_PASSWORD, auth_headers, get_auth_token


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("POST", "/api/auth/logout"),
            ("PUT", "/api/profile"),
            ("POST", "/api/uploads"),
            ("GET", "/api/transactions"),
            ("POST", "/api/transactions"),
            ("GET", "/api/reimbursements"),
            ("POST", "/api/reimbursements"),
            ("POST", "/api/reimbursements/1/approve"),
            ("GET", "/api/reports/ledger"),
            ("GET", "/api/reports/ledger.csv"),
            ("GET", "/api/notifications"),
            ("GET", "/api/admin/notifications"),
            ("GET", "/api/employees"),
            ("GET", "/api/users"),
            ("GET", "/api/settings"),
            ("GET", "/api/categories"),
            ("GET", "/api/logs"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.get_json()["error"] == "unauthorized"

    def test_garbage_token_is_rejected(self, client, db_session):
        resp = client.get("/api/auth/me", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401

    def test_health_is_public(self, client, db_session):
        resp = client.get("/api/system/health")
        assert resp.status_code == 200
        assert resp.get_json()["database"]["status"] == "healthy"


# =============================================================================
# EMPLOYEE DENIED ADMIN OPERATIONS (403)
# =============================================================================


class TestEmployeeDenied:
    """Employee role cannot perform admin operations."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/transactions"),
            ("POST", "/api/transactions"),
            ("GET", "/api/reports/ledger"),
            ("GET", "/api/reports/ledger/print"),
            ("POST", "/api/notifications"),
            ("GET", "/api/admin/notifications"),
            ("GET", "/api/employees"),
            ("POST", "/api/employees"),
            ("GET", "/api/users"),
            ("GET", "/api/settings"),
            ("PUT", "/api/settings/drive_config"),
            ("POST", "/api/categories"),
            ("GET", "/api/logs"),
        ],
    )
    def test_admin_only_routes(self, client, employee_headers, method, path):
        resp = getattr(client, method.lower())(path, headers=employee_headers, json={})
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"

    def test_cannot_delete_reimbursement(self, client, employee_headers):
        resp = client.post("/api/reimbursements", headers=employee_headers, json={
            "date": "2025-01-05",
            "category": "Transport",
            "activity_name": "Taxi",
            "items": [{"name": "Taxi", "qty": 1, "price": 10000}],
        })
        assert resp.status_code == 201
        claim_id = resp.get_json()["reimbursement"]["id"]

        resp = client.delete(f"/api/reimbursements/{claim_id}", headers=employee_headers)
        assert resp.status_code == 403

    def test_can_read_categories(self, client, employee_headers):
        assert client.get("/api/categories", headers=employee_headers).status_code == 200


# =============================================================================
# ADMIN CAN PERFORM PRIVILEGED OPERATIONS (200)
# =============================================================================


class TestAdminAccess:
    """Admin role can perform privileged operations."""

    def test_create_employee_creates_login(self, client, admin_headers):
        resp = client.post("/api/employees", headers=admin_headers, json={
            "name": "Rina",
            "username": "rina",
            "password": "Rina12345",
            "email": "rina@example.com",
        })
        assert resp.status_code == 201
        body = resp.get_json()["employee"]
        assert body["username"] == "rina"
        assert "password_hash" not in str(resp.get_json())

        assert get_auth_token(client, "rina", "Rina12345") is not None

    def test_duplicate_username_rolls_back_employee(self, client, admin_headers, employee):
        resp = client.post("/api/employees", headers=admin_headers, json={
            "name": "Another Budi",
            "username": "budi",
            "password": "Budi12345",
        })
        assert resp.status_code == 409
        db.session.expire_all()
        assert db.session.query(Employee).count() == 1

    def test_weak_password_is_rejected(self, client, admin_headers):
        resp = client.post("/api/users", headers=admin_headers, json={"username": "ops", "password": "short"})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "validation_error"

    def test_cannot_delete_self(self, client, admin, admin_headers):
        resp = client.delete(f"/api/users/{admin.id}", headers=admin_headers)
        assert resp.status_code == 409

    def test_delete_employee(self, client, admin_headers, employee):
        resp = client.delete(f"/api/employees/{employee.id}", headers=admin_headers)
        assert resp.status_code == 200
        db.session.expire_all()
        assert db.session.query(User).filter_by(username="budi").first() is None

    def test_settings_and_logs(self, client, admin_headers):
        resp = client.put("/api/settings/drive_config", headers=admin_headers,
                          json={"value": {"folder_id": "abc"}})
        assert resp.status_code == 200
        assert resp.get_json()["version"] == 1

        resp = client.get("/api/settings", headers=admin_headers)
        assert resp.get_json()["settings"]["drive_config"] == {"folder_id": "abc"}

        resp = client.get("/api/logs?q=drive_config", headers=admin_headers)
        assert [log["action"] for log in resp.get_json()["logs"]] == ["Updated setting drive_config"]

    def test_category_round_trip(self, client, admin_headers):
        resp = client.post("/api/categories", headers=admin_headers, json={"name": "Fuel", "type": "EXPENSE"})
        assert resp.status_code == 201
        resp = client.post("/api/categories", headers=admin_headers, json={"name": "Fuel", "type": "EXPENSE"})
        assert resp.status_code == 409
        resp = client.delete("/api/categories/Fuel", headers=admin_headers)
        assert resp.status_code == 200


# =============================================================================
# SESSIONS AND PROFILE
# =============================================================================


class TestSessions:

    def test_login_logout(self, client, admin):
        token = get_auth_token(client, "admin", ADMIN_PASSWORD)
        assert token

        resp = client.get("/api/auth/me", headers=auth_headers(token))
        assert resp.get_json()["user"]["role"] == "admin"

        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 200
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401

        db.session.expire_all()
        actions = [row.action for row in db.session.query(ActivityLog).order_by(ActivityLog.id).all()]
        assert actions == ["Login", "Logout"]

    def test_wrong_password(self, client, admin):
        resp = client.post("/api/auth/login", json={"username": "admin", "password": "nope"})
        assert resp.status_code == 401

    def test_employee_updates_profile(self, client, employee, employee_headers):
        resp = client.put("/api/profile", headers=employee_headers, json={"full_name": "Budi S."})
        assert resp.status_code == 200
        assert resp.get_json()["user"]["full_name"] == "Budi S."
        assert get_auth_token(client, "budi", EMPLOYEE_PASSWORD)

    def test_upload_returns_reference(self, client, employee_headers):
        resp = client.post(
            "/api/uploads",
            headers=employee_headers,
            data={"file": (io.BytesIO(b"%PDF-1.4"), "receipt.pdf")},
            content_type="multipart/form-data",
        )
        assert resp.status_code == 201
        url = resp.get_json()["url"]
        assert url.startswith("/uploads/") and url.endswith(".pdf")

        assert client.get(url).data == b"%PDF-1.4"

    def test_upload_rejects_executables(self, client, employee_headers):
        resp = client.post(
            "/api/uploads",
            headers=employee_headers,
            data={"file": (io.BytesIO(b"MZ"), "run.exe")},
            content_type="multipart/form-data",
        )
        assert resp.status_code == 400

    def test_admin_password_reset_revokes_employee_sessions(self, client, admin_headers, employee, employee_headers):
        assert client.get("/api/auth/me", headers=employee_headers).status_code == 200

        resp = client.put(f"/api/employees/{employee.id}", headers=admin_headers, json={"password": "Fresh12345"})
        assert resp.status_code == 200

        assert client.get("/api/auth/me", headers=employee_headers).status_code == 401
        assert get_auth_token(client, "budi", "Fresh12345")
