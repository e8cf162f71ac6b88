import pytest

MONDAY = "2024-05-06"


@pytest.fixture()
def staffed(client, principal_headers):
    for teacher_id, name in (("T1", "Asha Rao"), ("T2", "Bina Das"), ("T3", "Chetan Roy")):
        response = client.post("/api/teachers/", json={"id": teacher_id, "name": name}, headers=principal_headers)
        assert response.status_code == 201
    for class_id, period_index, teacher_id, subject in (
        ("6", 0, "T1", "Math"),
        ("6", 2, "T1", "Math"),
        ("7", 4, "T1", "Math"),
        ("7", 0, "T2", "Science"),
    ):
        response = client.post(
            "/api/timetable",
            json={
                "type": "SAVE_BASE",
                "payload": {
                    "dayName": "Monday",
                    "classId": class_id,
                    "periodIndex": period_index,
                    "entry": {"teacherId": teacher_id, "subject": subject},
                },
            },
            headers=principal_headers,
        )
        assert response.status_code == 200, response.text
    return principal_headers


def mark(client, headers, teacher_id, status):
    response = client.put(
        "/api/attendance", json={"dateStr": MONDAY, "teacherId": teacher_id, "status": status}, headers=headers
    )
    assert response.status_code == 200, response.text
    return response.json()


def test_absence_starts_workflow_and_notifies(client, staffed):
    workflow = mark(client, staffed, "T1", "absent")

    assert workflow["state"] == "ACTIONS_PROPOSED"
    assert [(item["classId"], item["periodIndex"]) for item in workflow["pending"]] == [("6", 0), ("6", 2), ("7", 4)]
    first = workflow["pending"][0]
    assert first["label"] == "Period-I"
    assert [teacher["id"] for teacher in first["candidates"]] == ["T3"]

    attendance = client.get("/api/attendance", params={"dateStr": MONDAY}, headers=staffed).json()
    assert attendance == {"T1": "absent"}

    notifications = client.get("/api/notifications", headers=staffed).json()
    assert notifications[0]["message"] == f"Asha Rao is absent on {MONDAY}"
    assert notifications[0]["kind"] == "absence"


def test_attendance_mutation_over_timetable_endpoint(client, staffed):
    response = client.post(
        "/api/timetable",
        json={"type": "SAVE_ATTENDANCE", "payload": {"dateStr": MONDAY, "teacherId": "T1", "status": "half_day_after"}},
        headers=staffed,
    )

    assert response.status_code == 200
    workflow = response.json()["workflow"]
    assert [(item["classId"], item["periodIndex"]) for item in workflow["pending"]] == [("7", 4)]

    view = client.get("/api/timetable", params={"dateStr": MONDAY}, headers=staffed).json()
    assert view["attendance"] == {"T1": "half_day_after"}


def test_marking_present_clears_mark_and_dismisses(client, staffed):
    mark(client, staffed, "T1", "absent")

    assert mark(client, staffed, "T1", "present") is None

    assert client.get("/api/attendance", params={"dateStr": MONDAY}, headers=staffed).json() == {}
    workflow = client.get(f"/api/substitutions/T1/{MONDAY}", headers=staffed).json()
    assert workflow["state"] == "RESOLVED"
    assert workflow["dismissed"] is True


def test_apply_actions_writes_overrides(client, staffed, management_headers):
    mark(client, staffed, "T1", "absent")

    response = client.post(
        f"/api/substitutions/T1/{MONDAY}/actions",
        json={
            "actions": [
                {"kind": "ASSIGN", "classId": "6", "periodIndex": 0, "substituteTeacherId": "T3"},
                {"kind": "VACANT", "classId": "6", "periodIndex": 2, "note": "Library"},
            ]
        },
        headers=management_headers,
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert [result["ok"] for result in body["results"]] == [True, True]
    assert body["workflow"]["state"] == "ACTION_APPLIED"
    assert [(item["classId"], item["periodIndex"]) for item in body["workflow"]["pending"]] == [("7", 4)]

    schedule = client.get("/api/timetable", params={"dateStr": MONDAY}, headers=staffed).json()["schedule"]
    assert schedule["6_0"]["teacherId"] == "T3"
    assert schedule["6_0"]["originalTeacherId"] == "T1"
    assert schedule["6_2"]["overrideType"] == "VACANT"
    assert schedule["6_2"]["note"] == "Library"
    assert schedule["7_4"]["teacherId"] == "T1"


def test_action_for_non_pending_period_is_rejected(client, staffed):
    mark(client, staffed, "T1", "absent")

    response = client.post(
        f"/api/substitutions/T1/{MONDAY}/actions",
        json={"actions": [{"kind": "VACANT", "classId": "7", "periodIndex": 0}]},
        headers=staffed,
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Period is not pending in this workflow"


def test_merge_and_dismiss(client, staffed):
    mark(client, staffed, "T1", "absent")

    merged = client.post(
        f"/api/substitutions/T1/{MONDAY}/actions",
        json={"actions": [{"kind": "MERGE", "classId": "6", "periodIndex": 0}]},
        headers=staffed,
    ).json()
    assert merged["results"][0]["override"] == {
        "type": "MERGED",
        "mergedClassIds": ["7"],
        "originalTeacherId": "T1",
    }

    dismissed = client.post(f"/api/substitutions/T1/{MONDAY}/dismiss", headers=staffed).json()
    assert dismissed["state"] == "RESOLVED"
    assert len(dismissed["pending"]) == 2

    listed = client.get("/api/substitutions", params={"dateStr": MONDAY}, headers=staffed).json()
    assert [item["teacherId"] for item in listed] == ["T1"]


def test_unknown_workflow_is_not_found(client, staffed):
    response = client.get(f"/api/substitutions/T2/{MONDAY}", headers=staffed)

    assert response.status_code == 404


def test_unknown_teacher_attendance_is_rejected(client, staffed):
    response = client.put(
        "/api/attendance", json={"dateStr": MONDAY, "teacherId": "ghost", "status": "absent"}, headers=staffed
    )

    assert response.status_code == 400
