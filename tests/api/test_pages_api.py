from __future__ import annotations

import io
from datetime import date

import pytest

from src.care_office.care_office.container import wire
from src.care_office.care_office.main import create_app

ADMIN = {"X-Staff-Id": "admin", "X-User-Name": "Boss", "X-User-Role": "admin"}


@pytest.fixture()
def container(store, storage):
    store.seed("staff", {"id": "s1", "name": "Ann Lee", "email": "ann@example.com", "status": "active"})
    return wire(store, storage)


@pytest.fixture()
def client(monkeypatch, container):
    monkeypatch.setenv("APP_ENV", "testing")
    app = create_app(container=container)
    app.config["TESTING"] = True
    return app.test_client()


def _open(client) -> str:
    res = client.post("/api/pages/staff/s1")
    assert res.status_code == 201
    return res.get_json()["data"]["token"]


def test_open_edit_and_save(client, store):
    token = _open(client)

    res = client.patch(f"/api/pages/{token}/form", json={"phone": "0400 111 222"})
    assert res.get_json()["data"]["is_dirty"] is True

    res = client.post(
        f"/api/pages/{token}/sections/documents/drafts",
        data={"file": (io.BytesIO(b"%PDF"), "plan.pdf")},
        content_type="multipart/form-data",
    )
    assert res.status_code == 201
    assert res.get_json()["data"]["page"]["pending_count"] == 1

    res = client.post(f"/api/pages/{token}/save", headers=ADMIN)
    body = res.get_json()
    assert res.status_code == 200
    assert body["data"]["mutations"] == 2
    assert body["data"]["page"]["is_dirty"] is False
    assert [t["severity"] for t in body["toasts"]] == ["success"]
    assert len(body["data"]["page"]["sections"]["documents"]) == 1
    assert {row["user_name"] for row in store.activity()} == {"Boss"}


def test_validation_failure_returns_field_and_single_toast(client, store):
    token = _open(client)
    client.patch(f"/api/pages/{token}/form", json={"email": ""})

    res = client.post(f"/api/pages/{token}/save")
    body = res.get_json()

    assert res.status_code == 400
    assert body["field"] == "email"
    assert len(body["toasts"]) == 1
    assert store.mutations() == []

    state = client.get(f"/api/pages/{token}").get_json()["data"]
    assert state["field_errors"] == {"email": "Email is required when status is Active or Inactive"}
    assert state["is_dirty"] is True


def test_remote_failure_is_reported_once(client, store):
    token = _open(client)
    client.post(f"/api/pages/{token}/sections/staff_compliance/drafts", json={"compliance_name": "CPR"})
    store.fail("create", "staff_compliance")

    res = client.post(f"/api/pages/{token}/save")

    body = res.get_json()
    assert res.status_code == 502
    assert len(body["toasts"]) == 1
    assert body["retryable"] is True
    assert client.get(f"/api/pages/{token}").get_json()["data"]["pending_count"] == 1


def test_concurrent_save_is_rejected(client, container):
    token = _open(client)
    container.pages.get(token).saving = True

    assert client.post(f"/api/pages/{token}/save").status_code == 409


def test_close_reports_discard_and_forgets_token(client):
    token = _open(client)
    client.patch(f"/api/pages/{token}/form", json={"notes": "x"})

    res = client.delete(f"/api/pages/{token}")
    assert res.get_json()["data"] == {"discarded": True}
    assert client.get(f"/api/pages/{token}").status_code == 404


def test_bad_input_maps_to_client_errors(client):
    token = _open(client)

    assert client.patch(f"/api/pages/{token}/form", json={"salary": 1}).status_code == 400
    assert client.post(f"/api/pages/{token}/sections/goals/drafts", json={}).status_code == 400
    assert client.post("/api/pages/widget/1").status_code == 400
    assert client.post("/api/pages/staff/missing").status_code == 404
    res = client.post(
        f"/api/pages/{token}/photo",
        data={"file": (io.BytesIO(b"text"), "notes.txt", "text/plain")},
        content_type="multipart/form-data",
    )
    assert res.status_code == 400


def test_roster_and_export(client, store):
    store.seed(
        "staff_shifts",
        {"id": "sh1", "staff_id": "s1", "shift_date": date(2024, 5, 13), "start_time": "09:00:00", "end_time": "17:00:00"},
    )

    body = client.get("/api/roster?date=2024-05-15&view=week").get_json()
    assert body["data"]["days"][0]["shifts"][0]["staff_name"] == "Ann Lee"
    assert client.get("/api/roster?date=soon").status_code == 400

    res = client.get("/api/roster/export?date=2024-05-15&view=week")
    assert res.status_code == 200
    assert res.headers["Content-Disposition"].endswith("roster_2024-05-13_2024-05-19.xlsx")


def test_leave_decisions_require_admin(client, store):
    store.seed("leave_requests", {"id": "l1", "staff_id": "s1", "status": "pending", "start_date": date(2024, 6, 3), "end_date": date(2024, 6, 3)})

    res = client.post("/api/leave/l1/approve", headers={"X-Staff-Id": "s1", "X-User-Role": "staff"})
    assert res.status_code == 403

    res = client.post("/api/leave/l1/approve", headers=ADMIN)
    assert res.status_code == 200
    assert res.get_json()["data"] == {"leave_cover_required": []}


def test_activity_feed_limits(client, store):
    store.seed("activity_log", {"id": "1", "activity_type": "create", "entity_type": "staff", "entity_id": "s1", "description": "x"})

    assert client.get("/api/activity?limit=0").status_code == 400
    body = client.get("/api/activity?entity_type=staff&entity_id=s1").get_json()
    assert [e["description"] for e in body["data"]] == ["x"]


def test_stored_files_are_served(client, storage):
    storage.objects[("staff-documents", "s1/documents/a.pdf")] = b"%PDF"

    res = client.get("/files/staff-documents/s1/documents/a.pdf")
    assert res.status_code == 200
    assert res.data == b"%PDF"
    assert client.get("/files/staff-documents/missing.pdf").status_code == 404


def test_submit_timesheet_route(client, store):
    res = client.post(
        "/api/timesheets",
        json={"clock_in": "2024-06-10T09:00", "clock_out": "2024-06-10T17:00", "break_minutes": 30},
        headers={"X-Staff-Id": "s1", "X-User-Name": "Ann Lee", "X-User-Role": "staff"},
    )

    assert res.status_code == 201
    data = res.get_json()["data"]
    assert data["staff_id"] == "s1"
    assert data["status"] == "pending"
    assert data["clock_out"] == "2024-06-10T17:00:00"

    res = client.post("/api/timesheets", json={"clock_in": "2024-06-10T09:00"}, headers={"X-Staff-Id": "s1"})
    assert res.status_code == 400
