MONDAY = "2024-05-06"


def create_teacher(client, headers, teacher_id, name):
    response = client.post("/api/teachers/", json={"id": teacher_id, "name": name}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def save_base(client, headers, class_id, period_index, entry, day="Monday", **extra):
    return client.post(
        "/api/timetable",
        json={
            "type": "SAVE_BASE",
            "payload": {"dayName": day, "classId": class_id, "periodIndex": period_index, "entry": entry, **extra},
        },
        headers=headers,
    )


def get_view(client, headers, date_str=MONDAY, day_name="Monday"):
    response = client.get("/api/timetable", params={"dateStr": date_str, "dayName": day_name}, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def test_base_then_substitution_over_http(client, principal_headers):
    create_teacher(client, principal_headers, "T1", "Teacher One")
    create_teacher(client, principal_headers, "T2", "Teacher Two")
    assert save_base(client, principal_headers, "6", 0, {"teacherId": "T1", "subject": "Math"}).status_code == 200

    view = get_view(client, principal_headers)
    assert view["dayName"] == "Monday"
    assert view["schedule"]["6_0"]["teacherId"] == "T1"
    assert view["schedule"]["6_0"]["subject"] == "Math"
    assert view["schedule"]["6_0"]["isOverride"] is False

    response = client.post(
        "/api/timetable",
        json={
            "type": "SAVE_OVERRIDE",
            "payload": {
                "dateStr": MONDAY,
                "classId": "6",
                "periodIndex": 0,
                "override": {"type": "SUBSTITUTION", "subTeacherId": "T2", "subSubject": "Math", "originalTeacherId": "T1"},
            },
        },
        headers=principal_headers,
    )
    assert response.status_code == 200, response.text

    entry = get_view(client, principal_headers)["schedule"]["6_0"]
    assert entry["teacherId"] == "T2"
    assert entry["subject"] == "Math"
    assert entry["isOverride"] is True
    assert entry["overrideType"] == "SUBSTITUTION"


def test_day_name_defaults_from_date(client, principal_headers):
    response = client.get("/api/timetable", params={"dateStr": MONDAY}, headers=principal_headers)

    assert response.status_code == 200
    assert response.json()["dayName"] == "Monday"
    assert response.headers["cache-control"] == "no-store"


def test_sunday_has_no_timetable(client, principal_headers):
    response = client.get("/api/timetable", params={"dateStr": "2024-05-05"}, headers=principal_headers)

    assert response.status_code == 400
    assert "not a school day" in response.json()["message"]


def test_lunch_slot_is_rejected(client, principal_headers):
    create_teacher(client, principal_headers, "T1", "Teacher One")

    response = save_base(client, principal_headers, "6", 3, {"teacherId": "T1", "subject": "Math"})

    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "The lunch slot cannot be assigned"
    assert body["details"] == {"periodIndex": 3}


def test_unknown_class_and_teacher_are_rejected(client, principal_headers):
    create_teacher(client, principal_headers, "T1", "Teacher One")

    unknown_class = save_base(client, principal_headers, "99", 0, {"teacherId": "T1", "subject": "Math"})
    unknown_teacher = save_base(client, principal_headers, "6", 0, {"teacherId": "ghost", "subject": "Math"})

    assert unknown_class.status_code == 400
    assert unknown_teacher.status_code == 400
    assert unknown_teacher.json()["details"] == {"teacherIds": ["ghost"]}


def test_management_cannot_edit_base_schedule(client, principal_headers, management_headers):
    create_teacher(client, principal_headers, "T1", "Teacher One")

    response = save_base(client, management_headers, "6", 0, {"teacherId": "T1", "subject": "Math"})

    assert response.status_code == 403
    assert "principal" in response.json()["message"]


def test_apply_to_rest_of_week_and_clone(client, principal_headers):
    create_teacher(client, principal_headers, "T1", "Teacher One")

    response = save_base(
        client, principal_headers, "7", 1, {"teacherId": "T1", "subject": "Art"}, day="Thursday", applyToRestOfWeek=True
    )
    assert response.json()["days"] == ["Thursday", "Friday", "Saturday"]
    assert "7_1" not in get_view(client, principal_headers, "2024-05-08", "Wednesday")["schedule"]
    assert get_view(client, principal_headers, "2024-05-11", "Saturday")["schedule"]["7_1"]["subject"] == "Art"

    clone = client.post("/api/timetable/clone", json={"sourceDay": "Thursday"}, headers=principal_headers)
    assert clone.status_code == 200
    assert "Thursday" not in clone.json()["days"]
    assert get_view(client, principal_headers)["schedule"]["7_1"]["teacherId"] == "T1"


def test_merged_override_must_name_other_known_classes(client, principal_headers):
    response = client.post(
        "/api/timetable",
        json={
            "type": "SAVE_OVERRIDE",
            "payload": {
                "dateStr": MONDAY,
                "classId": "6",
                "periodIndex": 0,
                "override": {"type": "MERGED", "mergedClassIds": ["6", "nope"]},
            },
        },
        headers=principal_headers,
    )

    assert response.status_code == 400
    assert response.json()["details"]["mergedClassIds"] == ["6", "nope"]


def test_unknown_mutation_type_is_a_validation_error(client, principal_headers):
    response = client.post("/api/timetable", json={"type": "SAVE_EVERYTHING", "payload": {}}, headers=principal_headers)

    assert response.status_code == 422
    assert response.json()["message"] == "Request validation failed"


def test_instruction_is_returned_with_view(client, management_headers):
    response = client.post(
        "/api/timetable",
        json={"type": "SAVE_INSTRUCTION", "payload": {"dateStr": MONDAY, "text": "  Assembly at 9  "}},
        headers=management_headers,
    )
    assert response.status_code == 200

    assert get_view(client, management_headers)["instruction"] == "Assembly at 9"


def test_status_available_and_conflicts(client, principal_headers):
    create_teacher(client, principal_headers, "T1", "Teacher One")
    create_teacher(client, principal_headers, "T2", "Teacher Two")
    save_base(client, principal_headers, "6", 0, {"teacherId": "T1", "subject": "Math"})
    save_base(client, principal_headers, "7", 0, {"teacherId": "T1", "subject": "Math"})

    status = client.get(
        "/api/timetable/status",
        params={"teacherId": "T1", "dateStr": MONDAY, "periodIndex": 0},
        headers=principal_headers,
    ).json()
    assert status == {"teacherId": "T1", "status": "BUSY", "className": "6"}

    available = client.get(
        "/api/timetable/available", params={"dateStr": MONDAY, "periodIndex": 0}, headers=principal_headers
    ).json()
    assert [teacher["id"] for teacher in available] == ["T2"]

    conflicts = client.get("/api/timetable/conflicts", params={"dateStr": MONDAY}, headers=principal_headers).json()
    assert conflicts == [{"teacherId": "T1", "periodIndex": 0, "classIds": ["6", "7"]}]


def test_suggestions_are_disabled_by_default(client, principal_headers):
    response = client.get("/api/timetable/suggestions", headers=principal_headers)

    assert response.status_code == 200
    assert response.json() == []


def test_timetable_requires_authentication(client):
    response = client.get("/api/timetable", params={"dateStr": MONDAY})

    assert response.status_code in {401, 403}
    assert "message" in response.json()
