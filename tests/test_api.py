from datetime import timedelta

import pytest

from src.geo_attendance.geo_attendance.auth.assertions import issue_assertion
from src.geo_attendance.geo_attendance.core.enums import Role
from src.geo_attendance.geo_attendance.main import create_app


@pytest.fixture()
def app(monkeypatch, container):
    monkeypatch.setenv("APP_ENV", "testing")
    return create_app(container)


def _client(app, employee_id, role=Role.EMPLOYEE):
    client = app.test_client()
    assertion = issue_assertion(app.secret_key, employee_id, "org-1", role)
    resp = client.post("/api/session", json={"assertion": assertion})
    assert resp.status_code == 200
    return client


@pytest.fixture()
def admin(app):
    return _client(app, "boss", role=Role.ADMIN)


@pytest.fixture()
def employee(app):
    return _client(app, "emp-1")


@pytest.fixture()
def hq(admin):
    resp = admin.post("/api/zones", json={"name": "HQ", "latitude": 0.0, "longitude": 0.0, "radius": 100, "type": "office"})
    assert resp.status_code == 201
    return resp.get_json()["zone"]


def test_requests_without_session_are_rejected(app):
    resp = app.test_client().get("/api/attendance/today")

    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


def test_session_rejects_claims_outside_a_signed_assertion(app):
    client = app.test_client()
    resp = client.post("/api/session", json={"employeeId": "x", "organizationId": "org-1", "role": "admin"})
    assert resp.status_code == 401

    forged = issue_assertion("someone-elses-key", "x", "org-1", Role.ADMIN)
    assert client.post("/api/session", json={"assertion": forged}).status_code == 401

    payload = {"employeeId": "victim", "date": "2025-01-06", "reason": "x", "status": "absent"}
    assert client.post("/api/attendance/override", json=payload).status_code == 401


def test_session_role_comes_from_the_assertion(app):
    client = app.test_client()
    resp = client.post("/api/session", json={"assertion": issue_assertion(app.secret_key, "emp-9", "org-1"), "role": "admin"})

    assert resp.status_code == 200
    assert resp.get_json()["role"] == "employee"
    payload = {"employeeId": "victim", "date": "2025-01-06", "reason": "x", "status": "absent"}
    assert client.post("/api/attendance/override", json=payload).status_code == 403


def test_malformed_zone_is_a_bad_request(admin):
    body = {"name": "HQ", "latitude": 0, "longitude": 0, "radius": 100, "workDays": ["monday"]}

    assert admin.post("/api/zones", json=body).status_code == 400


def test_only_admins_manage_zones(employee):
    resp = employee.post("/api/zones", json={"name": "HQ", "latitude": 0, "longitude": 0, "radius": 100})
    assert resp.status_code == 403


def test_zone_crud(admin, hq):
    assert hq["companyId"] == "org-1"
    assert hq["createdBy"] == "boss"

    resp = admin.put(f"/api/zones/{hq['id']}", json={"radius": 250})
    assert resp.get_json()["zone"]["radius"] == 250

    assert [z["id"] for z in admin.get("/api/zones").get_json()["zones"]] == [hq["id"]]
    assert admin.delete(f"/api/zones/{hq['id']}").status_code == 200
    assert admin.get(f"/api/zones/{hq['id']}").status_code == 404


def test_invalid_zone_is_rejected(admin):
    resp = admin.post("/api/zones", json={"name": "Bad", "latitude": 0, "longitude": 0, "radius": 0})
    assert resp.status_code == 400


def test_samples_drive_automatic_check_in(container, employee, hq, fixed_now):
    samples = [
        {"latitude": 0.0, "longitude": 0.0, "accuracy": 12, "capturedAt": (fixed_now + timedelta(seconds=s)).isoformat()}
        for s in (0, 15, 30)
    ]

    resp = employee.post("/api/tracking/samples", json={"samples": samples})
    container.tracking_service.drain()

    body = resp.get_json()
    assert resp.status_code == 200
    assert [e["type"] for e in body["events"]] == ["enter"]
    assert body["membership"] == {"phase": "inside", "zoneId": hq["id"]}

    record = employee.get("/api/attendance/today").get_json()["record"]
    assert record["status"] == "checkedIn"
    assert record["checkInMethod"] == "automatic"
    assert record["isGeofenceVerified"] is True


def test_malformed_sample_is_rejected(employee):
    resp = employee.post("/api/tracking/samples", json={"latitude": 200, "longitude": 0, "capturedAt": "2025-01-06T09:00:00"})
    assert resp.status_code == 400


def test_manual_check_in_and_out(employee, hq):
    resp = employee.post("/api/attendance/check-in", json={"latitude": 0.0, "longitude": 0.0, "accuracy": 8})
    assert resp.status_code == 201
    assert resp.get_json()["record"]["geofenceId"] == hq["id"]

    assert employee.post("/api/attendance/check-in", json={}).status_code == 400

    first = employee.post("/api/attendance/check-out", json={})
    second = employee.post("/api/attendance/check-out", json={})
    assert first.status_code == second.status_code == 200
    assert second.get_json()["record"]["checkOutTime"] == first.get_json()["record"]["checkOutTime"]


def test_check_out_without_check_in(employee):
    resp = employee.post("/api/attendance/check-out", json={})
    assert resp.status_code == 400


def test_qr_check_in(employee):
    assert employee.post("/api/attendance/check-in/qr", json={"qr_code": "nope"}).status_code == 400

    resp = employee.post("/api/attendance/check-in/qr", json={"qr_code": "TEST_QR_TOKEN"})
    assert resp.status_code == 201
    assert resp.get_json()["record"]["checkInMethod"] == "qrCode"


def test_override_is_admin_only_and_validated(admin, employee, fixed_now):
    payload = {"employeeId": "emp-1", "date": fixed_now.date().isoformat(), "reason": "forgot phone", "status": "halfDay"}
    assert employee.post("/api/attendance/override", json=payload).status_code == 403

    resp = admin.post("/api/attendance/override", json=payload)
    assert resp.status_code == 200
    assert resp.get_json()["record"]["isManuallyOverridden"] is True

    bad = dict(payload, checkInTime="2025-01-06T10:00:00", checkOutTime="2025-01-06T09:00:00")
    assert admin.post("/api/attendance/override", json=bad).status_code == 400


def test_history_and_stats(employee):
    employee.post("/api/attendance/check-in", json={})

    history = employee.get("/api/attendance/history?limit=5").get_json()["records"]
    stats = employee.get("/api/attendance/stats?start=2025-01-01&end=2025-01-31").get_json()["stats"]

    assert len(history) == 1
    assert stats["presentDays"] == 1
    assert employee.get("/api/attendance/history?start=06-01-2025").status_code == 400


def test_sync_endpoints(container, store, employee):
    store.offline = True
    employee.post("/api/attendance/check-in", json={})

    status = employee.get("/api/sync/status").get_json()
    assert status["pending"] == 1
    assert status["byCollection"] == {"attendance": 1}

    assert employee.post("/api/sync/connectivity", json={"online": "yes"}).status_code == 400

    store.offline = False
    result = employee.post("/api/sync/flush").get_json()["result"]
    assert result["synced"] == 1
    assert employee.get("/api/sync/status").get_json()["pending"] == 0


def test_tracking_status(employee):
    employee.post("/api/tracking/start")
    employee.post("/api/tracking/permission", json={"granted": False})

    status = employee.get("/api/tracking/status").get_json()["status"]
    assert status["tracking"] is True
    assert status["permissionDegraded"] is True
    assert status["pendingWrites"] == 0
    assert status["lastSyncAt"] is None

    resp = employee.get("/api/tracking/status")
    assert "permissionDegraded" not in resp.headers


def test_logout_halts_only_that_employees_tracking(app, container, employee):
    other = _client(app, "emp-2")
    employee.post("/api/tracking/start")
    other.post("/api/tracking/start")

    assert employee.delete("/api/session").status_code == 200

    assert container.tracking_service.stop("emp-1") is False
    assert container.tracking_service.membership("emp-2") is not None
    assert other.get("/api/tracking/status").get_json()["status"]["tracking"] is True
