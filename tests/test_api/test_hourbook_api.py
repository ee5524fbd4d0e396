"""
Tests for the HTTP API (session auth, gating, error mapping, invoicing flow)
"""
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hourbook.api.deps import get_db
from hourbook.infrastructure.db.session import Base
from hourbook.main import app, status_for
from hourbook.errors import HourbookError, NotFoundError, ConflictError, ExternalServiceError


@pytest.fixture
def db_engine():
    """One in-memory database shared by the test session and the app"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _foreign_keys_on(dbapi_connection, connection_record):
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def client(db_engine):
    SessionLocal = sessionmaker(bind=db_engine)

    def override_get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def login(client, username, password="secret-pass"):
    return client.post("/api/v1/auth/login", json={"username": username, "password": password})


class TestSystem:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.text == "ok"

    def test_routers_mounted(self):
        paths = {route.path for route in app.routes}
        assert {"/api/v1/projects/", "/api/v1/time-entries/", "/api/v1/invoices/generate"} <= paths

    def test_error_status_mapping(self):
        assert status_for(NotFoundError("x")) == 404
        assert status_for(ConflictError("x")) == 409
        assert status_for(ExternalServiceError("x")) == 502
        assert status_for(HourbookError("x")) == 400


class TestAuth:
    def test_requires_login(self, client):
        assert client.get("/api/v1/auth/me").status_code == 401
        assert client.get("/api/v1/projects/").status_code == 401

    def test_login_and_me(self, client, alice):
        response = login(client, "alice")
        assert response.status_code == 200
        assert response.json()["username"] == "alice"

        me = client.get("/api/v1/auth/me")
        assert me.status_code == 200
        assert me.json()["role"] == "user"

    def test_wrong_password(self, client, alice):
        response = login(client, "alice", "wrong-pass")
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid username or password"

    def test_logout(self, client, alice):
        login(client, "alice")
        assert client.post("/api/v1/auth/logout").json() == {"success": True}
        assert client.get("/api/v1/auth/me").status_code == 401

    def test_deactivated_session_rejected(self, client, db_session, admin, alice):
        login(client, "alice")
        alice.status = "deactivated"
        db_session.commit()
        assert client.get("/api/v1/auth/me").status_code == 401

    def test_admin_routes_forbidden_for_users(self, client, alice):
        login(client, "alice")
        assert client.get("/api/v1/users/").status_code == 403
        assert client.get("/api/v1/audit-logs/").status_code == 403
        response = client.post("/api/v1/projects/", json={
            "name": "Alpha", "hourly_rate": "150", "vat_type": "exclusive",
            "total_quota_hours": 50, "year": 2025,
        })
        assert response.status_code == 403


class TestProjects:
    def test_admin_creates_project(self, client, admin):
        login(client, "admin")
        response = client.post("/api/v1/projects/", json={
            "name": "Alpha", "hourly_rate": "150,50", "vat_type": "exclusive",
            "total_quota_hours": 50, "year": 2025,
        })
        assert response.status_code == 200
        data = response.json()
        assert data["hourly_rate"] == "150.50"
        assert data["warning_threshold"] == 80

    def test_validation_error_is_400(self, client, admin):
        login(client, "admin")
        response = client.post("/api/v1/projects/", json={
            "name": "Alpha", "hourly_rate": "1.234", "vat_type": "exclusive",
            "total_quota_hours": 50, "year": 2025,
        })
        assert response.status_code == 400

    def test_null_update_is_400(self, client, admin, project):
        login(client, "admin")
        response = client.patch(f"/api/v1/projects/{project.id}", json={"total_quota_hours": None})
        assert response.status_code == 400
        assert response.json()["detail"] == "total_quota_hours must not be null"

    def test_delete_with_entries_is_409(self, client, admin, alice, project, category, db_session, make_entry):
        make_entry(db_session, alice, project, category)
        login(client, "admin")
        assert client.delete(f"/api/v1/projects/{project.id}").status_code == 409

    def test_list_includes_usage(self, client, alice, project, category, db_session, make_entry):
        make_entry(db_session, alice, project, category, hours=4000)
        login(client, "alice")
        [row] = client.get("/api/v1/projects/", params={"year": 2025}).json()
        assert row["used_hours"] == "40.00"
        assert row["usage_percentage"] == 80.0
        assert row["is_warning"] is True


class TestTimeEntries:
    def test_create_with_times(self, client, alice, project, category):
        login(client, "alice")
        response = client.post("/api/v1/time-entries/", json={
            "project_id": project.id, "category_id": category.id,
            "date": "2025-11-03", "start_time": "23:00", "end_time": "01:00",
        })
        assert response.status_code == 200
        assert response.json()["duration_hours"] == "2.00"

    def test_create_with_manual_hours(self, client, alice, project, category):
        login(client, "alice")
        response = client.post("/api/v1/time-entries/", json={
            "project_id": project.id, "category_id": category.id,
            "date": "2025-11-03", "hours": "1,5",
        })
        assert response.json()["duration_hours"] == "1.50"

    def test_bad_time_is_400(self, client, alice, project, category):
        login(client, "alice")
        response = client.post("/api/v1/time-entries/", json={
            "project_id": project.id, "category_id": category.id,
            "date": "2025-11-03", "start_time": "25:00", "end_time": "26:00",
        })
        assert response.status_code == 400

    def test_foreign_entry_is_403(self, client, alice, bob, project, category, db_session, make_entry):
        entry = make_entry(db_session, bob, project, category)
        login(client, "alice")
        assert client.get(f"/api/v1/time-entries/{entry.id}").status_code == 403

    def test_update_hours(self, client, alice, project, category, db_session, make_entry):
        entry = make_entry(db_session, alice, project, category, start_time="09:00", end_time="10:00")
        login(client, "alice")
        response = client.patch(f"/api/v1/time-entries/{entry.id}", json={"hours": "3"})
        assert response.status_code == 200
        assert response.json()["duration_hours"] == "3.00"
        assert response.json()["start_time"] is None


class TestInvoices:
    def test_preview_then_generate(self, client, alice, project, category, db_session, make_entry):
        make_entry(db_session, alice, project, category, day=date(2025, 11, 3), hours=150)
        login(client, "alice")

        preview = client.get("/api/v1/invoices/preview", params={"month": 11, "year": 2025}).json()
        assert preview["total_amount"] == "225.00"
        assert preview["items"][0]["hours"] == "1.50"

        created = client.post("/api/v1/invoices/generate", json={
            "month": 11, "year": 2025, "recipient_name": "Acme AG",
        })
        assert created.status_code == 200
        assert created.json()["invoice_number"] == "2025-11-001"

        detail = client.get(f"/api/v1/invoices/{created.json()['id']}").json()
        assert detail["total_amount"] == "225.00"
        assert detail["items"][0]["project_name"] == "Alpha"

    def test_generate_empty_month_is_404(self, client, alice):
        login(client, "alice")
        response = client.post("/api/v1/invoices/generate", json={
            "month": 11, "year": 2025, "recipient_name": "Acme AG",
        })
        assert response.status_code == 404
        assert response.json()["detail"] == "No time entries found for the specified period"

    def test_paid_invoice_delete_is_409(self, client, alice, project, category, db_session, make_entry):
        make_entry(db_session, alice, project, category)
        login(client, "alice")
        invoice_id = client.post("/api/v1/invoices/generate", json={
            "month": 11, "year": 2025, "recipient_name": "Acme AG",
        }).json()["id"]

        status = client.patch(f"/api/v1/invoices/{invoice_id}/status", json={"status": "paid"})
        assert status.json() == {"success": True, "sync": None}
        assert client.delete(f"/api/v1/invoices/{invoice_id}").status_code == 409

    def test_sync_without_odoo_config(self, client, alice, project, category, db_session, make_entry):
        make_entry(db_session, alice, project, category)
        login(client, "alice")
        invoice_id = client.post("/api/v1/invoices/generate", json={
            "month": 11, "year": 2025, "recipient_name": "Acme AG",
        }).json()["id"]

        response = client.post(f"/api/v1/invoices/{invoice_id}/sync")
        assert response.status_code == 200
        assert response.json()["success"] is False


class TestReports:
    def test_monthly(self, client, alice, project, category, db_session, make_entry):
        make_entry(db_session, alice, project, category, hours=1000)
        login(client, "alice")
        data = client.get("/api/v1/reports/monthly", params={"year": 2025, "month": 11}).json()
        assert data["period"] == "November 2025"
        assert data["total_cost"] == "1500.00"
        assert data["total_cost_display"] == "CHF 1'500.00"


class TestAuditLogs:
    def test_admin_reads_login_events(self, client, admin, alice):
        login(client, "alice")
        client.post("/api/v1/auth/logout")
        login(client, "admin")

        count = client.get("/api/v1/audit-logs/count", params={"action": "user.login"}).json()
        assert count["count"] == 2
