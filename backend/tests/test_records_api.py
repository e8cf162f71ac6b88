import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.services.substitution import WorkflowRegistry


def test_remarks_filter_by_teacher(client, principal_headers):
    for teacher_id, note in (("T1", "  Punctual all month "), ("T2", "Late twice")):
        response = client.post(
            "/api/remarks",
            json={"teacher_id": teacher_id, "remark_date": "2024-05-06", "note": note, "type": "Monthly"},
            headers=principal_headers,
        )
        assert response.status_code == 201

    remarks = client.get("/api/remarks", params={"teacher_id": "T1"}, headers=principal_headers).json()

    assert len(remarks) == 1
    assert remarks[0]["note"] == "Punctual all month"
    assert remarks[0]["type"] == "Monthly"

    assert client.delete(f"/api/remarks/{remarks[0]['id']}", headers=principal_headers).status_code == 204
    assert client.delete("/api/remarks/missing", headers=principal_headers).status_code == 204
    assert client.get("/api/remarks", params={"teacher_id": "T1"}, headers=principal_headers).json() == []


def test_exam_grid_skips_blank_cells(client, management_headers):
    response = client.post(
        "/api/exams/grid",
        json={
            "examType": "Half Yearly",
            "startTime": "09:00",
            "endTime": "12:00",
            "entries": [
                {"date": "2024-09-16", "classId": "6", "subject": "Math"},
                {"date": "2024-09-16", "classId": "7", "subject": "  "},
                {"date": "2024-09-17", "classId": "7", "subject": "Science"},
            ],
        },
        headers=management_headers,
    )

    assert response.status_code == 201, response.text
    assert [(exam["classId"], exam["subject"]) for exam in response.json()] == [("6", "Math"), ("7", "Science")]

    listed = client.get("/api/exams", params={"examType": "Half Yearly"}, headers=management_headers).json()
    assert [exam["date"] for exam in listed] == ["2024-09-16", "2024-09-17"]
    assert listed[0]["examType"] == "Half Yearly"
    assert (listed[0]["startTime"], listed[0]["endTime"]) == ("09:00", "12:00")
    assert listed[0]["invigilatorId"] is None
    assert "exam_date" not in listed[0]


def test_exam_grid_with_only_blank_cells_is_rejected(client, management_headers):
    response = client.post(
        "/api/exams/grid",
        json={
            "examType": "Unit Test",
            "startTime": "09:00",
            "endTime": "10:00",
            "entries": [{"date": "2024-09-16", "classId": "6", "subject": ""}],
        },
        headers=management_headers,
    )

    assert response.status_code == 400
    assert response.json()["message"] == "No subjects assigned in the grid"


@pytest.mark.parametrize(
    ("start_time", "end_time", "exam_date"),
    [
        ("12:00", "09:00", "2024-09-16"),
        ("9am", "12:00", "2024-09-16"),
        ("09:00", "12:00", "2024-09-15"),
    ],
)
def test_exam_grid_rejects_bad_window_or_sunday(client, management_headers, start_time, end_time, exam_date):
    response = client.post(
        "/api/exams/grid",
        json={
            "examType": "Unit Test",
            "startTime": start_time,
            "endTime": end_time,
            "entries": [{"date": exam_date, "classId": "6", "subject": "Math"}],
        },
        headers=management_headers,
    )

    assert response.status_code == 422


def test_meeting_upsert_and_delete(client, principal_headers):
    created = client.put(
        "/api/meetings",
        json={"name": "Staff meeting", "meeting_date": "2024-05-06", "note": "Exam duties"},
        headers=principal_headers,
    )
    assert created.status_code == 200
    meeting = created.json()

    updated = client.put(
        "/api/meetings",
        json={"id": meeting["id"], "name": "Staff meeting", "meeting_date": "2024-05-07", "note": "Moved"},
        headers=principal_headers,
    ).json()
    assert updated["id"] == meeting["id"]
    assert updated["meeting_date"] == "2024-05-07"

    listed = client.get("/api/meetings", headers=principal_headers).json()
    assert [(item["id"], item["note"]) for item in listed] == [(meeting["id"], "Moved")]

    assert client.delete(f"/api/meetings/{meeting['id']}", headers=principal_headers).status_code == 204
    assert client.get("/api/meetings", headers=principal_headers).json() == []


def test_notifications_read_and_clear(client, principal_headers):
    client.post("/api/teachers/", json={"id": "T1", "name": "Asha Rao"}, headers=principal_headers)
    client.put(
        "/api/attendance",
        json={"dateStr": "2024-05-06", "teacherId": "T1", "status": "half_day_before"},
        headers=principal_headers,
    )

    unread = client.get("/api/notifications", params={"is_read": False}, headers=principal_headers).json()
    assert [item["message"] for item in unread] == ["Asha Rao is on morning leave on 2024-05-06"]

    assert client.post("/api/notifications/read-all", headers=principal_headers).status_code == 204
    assert client.get("/api/notifications", params={"is_read": False}, headers=principal_headers).json() == []

    assert client.delete("/api/notifications", headers=principal_headers).status_code == 204
    assert client.get("/api/notifications", headers=principal_headers).json() == []


def test_records_are_unavailable_on_the_local_cache(local_store):
    app.state.store = local_store
    app.state.workflows = WorkflowRegistry()
    try:
        with TestClient(app) as local_client:
            response = local_client.post("/api/auth/login", json={"role": "PRINCIPAL", "password": "ssc2025"})
            headers = {"Authorization": f"Bearer {response.json()['access_token']}"}
            remarks = local_client.get("/api/remarks", headers=headers)
            classes = local_client.get("/api/classes/", headers=headers)
    finally:
        app.state.store = None
        app.state.workflows = None
        app.state.suggestions = None

    assert remarks.status_code == 503
    assert remarks.json()["details"] == {"backend": "local"}
    assert classes.status_code == 200
