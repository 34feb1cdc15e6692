from datetime import date, timedelta

from helpers import ADMIN, OTHER_TEACHER, STUDENT_A, STUDENT_B, TEACHER

NEXT_WEEK = (date.today() + timedelta(days=7)).isoformat()


def _payload(**overrides):
    payload = {
        "title": "Science Fair",
        "description": "Annual science fair",
        "category": "academic",
        "location": "Gym",
        "date": NEXT_WEEK,
        "start_time": "09:00:00",
        "end_time": "15:00:00",
    }
    payload.update(overrides)
    return payload


def _create(client, headers=TEACHER, **overrides):
    resp = client.post("/v1/events/", json=_payload(**overrides), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_create_event_sets_organizer(client):
    event = _create(client, capacity=30)
    assert event["organizer_id"] == "teacher-1"
    assert event["registrations"] == 0
    assert event["capacity"] == 30
    assert event["is_public"] is True
    assert event["requires_approval"] is False


def test_students_cannot_create_events(client):
    resp = client.post("/v1/events/", json=_payload(), headers=STUDENT_A)
    assert resp.status_code == 403
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["code"] == "FORBIDDEN"


def test_anonymous_cannot_create_events(client):
    resp = client.post("/v1/events/", json=_payload())
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "UNAUTHORIZED"


def test_invalid_payload_uses_error_envelope(client):
    resp = client.post("/v1/events/", json=_payload(capacity=0), headers=TEACHER)
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    resp = client.post("/v1/events/", json=_payload(start_time="16:00:00"), headers=TEACHER)
    assert resp.status_code == 422


def test_list_hides_private_events(client):
    _create(client, title="Open House")
    _create(client, title="Staff Meeting", is_public=False)

    public_titles = [e["title"] for e in client.get("/v1/events/", headers=STUDENT_A).json()["data"]]
    assert public_titles == ["Open House"]

    organizer_titles = [e["title"] for e in client.get("/v1/events/", headers=TEACHER).json()["data"]]
    assert sorted(organizer_titles) == ["Open House", "Staff Meeting"]

    admin_titles = [e["title"] for e in client.get("/v1/events/", headers=ADMIN).json()["data"]]
    assert len(admin_titles) == 2


def test_list_filters_and_paging(client):
    _create(client, title="Chess Club", category="clubs", location="Library")
    _create(client, title="Marathon", category="sports")
    _create(client, title="Relay", category="sports", date=(date.today() + timedelta(days=1)).isoformat())

    sports = client.get("/v1/events/", params={"category": "sports"}).json()
    assert [e["title"] for e in sports["data"]] == ["Relay", "Marathon"]

    search = client.get("/v1/events/", params={"search": "library"}).json()
    assert [e["title"] for e in search["data"]] == ["Chess Club"]

    paged = client.get("/v1/events/", params={"page": 2, "size": 2}).json()
    assert len(paged["data"]) == 1
    assert paged["meta"] == {"total": 3, "page": 2, "size": 2, "pages": 2}


def test_event_detail_reports_caller_state(client):
    event = _create(client, requires_approval=True)
    client.post(f"/v1/events/{event['id']}/register", headers=STUDENT_A)

    mine = client.get(f"/v1/events/{event['id']}", headers=STUDENT_A).json()["data"]
    assert mine["registrations"] == 1
    assert mine["is_registered"] is True
    assert mine["registration_status"] == "PENDING"
    assert mine["can_edit"] is False

    organizer_view = client.get(f"/v1/events/{event['id']}", headers=TEACHER).json()["data"]
    assert organizer_view["is_registered"] is False
    assert organizer_view["can_edit"] is True


def test_private_event_detail_forbidden(client):
    event = _create(client, is_public=False)
    assert client.get(f"/v1/events/{event['id']}", headers=STUDENT_A).status_code == 403
    assert client.get(f"/v1/events/{event['id']}").status_code == 403
    assert client.get(f"/v1/events/{event['id']}", headers=ADMIN).status_code == 200


def test_missing_event(client):
    resp = client.get("/v1/events/999")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "NOT_FOUND"


def test_update_event_partial(client):
    event = _create(client)
    resp = client.put(f"/v1/events/{event['id']}", json={"location": "Auditorium"}, headers=TEACHER)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["location"] == "Auditorium"
    assert data["title"] == "Science Fair"


def test_update_event_requires_edit_rights(client):
    event = _create(client)
    resp = client.put(f"/v1/events/{event['id']}", json={"title": "Hijacked"}, headers=OTHER_TEACHER)
    assert resp.status_code == 403
    assert client.put(f"/v1/events/{event['id']}", json={"title": "Renamed"}, headers=ADMIN).status_code == 200


def test_capacity_cannot_drop_below_registrations(client):
    event = _create(client, capacity=5)
    client.post(f"/v1/events/{event['id']}/register", headers=STUDENT_A)
    client.post(f"/v1/events/{event['id']}/register", headers=STUDENT_B)

    resp = client.put(f"/v1/events/{event['id']}", json={"capacity": 1}, headers=TEACHER)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    resp = client.put(f"/v1/events/{event['id']}", json={"capacity": 2}, headers=TEACHER)
    assert resp.status_code == 200
    assert resp.json()["data"]["registrations"] == 2


def test_delete_event_removes_registrations(client):
    event = _create(client)
    client.post(f"/v1/events/{event['id']}/register", headers=STUDENT_A)

    assert client.delete(f"/v1/events/{event['id']}", headers=STUDENT_A).status_code == 403
    resp = client.delete(f"/v1/events/{event['id']}", headers=TEACHER)
    assert resp.status_code == 200
    assert client.get(f"/v1/events/{event['id']}").status_code == 404
    assert client.get("/v1/me/registrations", headers=STUDENT_A).json()["data"] == []


def test_update_rejects_null_for_required_fields(client):
    event = _create(client)
    url = f"/v1/events/{event['id']}"

    for field in ("title", "is_public", "date"):
        resp = client.put(url, json={field: None}, headers=TEACHER)
        assert resp.status_code == 400, field
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    assert client.put(url, json={"title": None}, headers=OTHER_TEACHER).status_code == 403
    assert client.get(url).json()["data"]["title"] == "Science Fair"

    # nullable columns can still be cleared
    resp = client.put(url, json={"end_time": None, "capacity": None}, headers=TEACHER)
    assert resp.status_code == 200
    assert resp.json()["data"]["end_time"] is None


def test_update_checks_times_against_stored_values(client):
    event = _create(client, start_time="10:00:00", end_time="12:00:00")
    url = f"/v1/events/{event['id']}"

    resp = client.put(url, json={"end_time": "08:00:00"}, headers=TEACHER)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"
    assert client.put(url, json={"start_time": "13:00:00"}, headers=TEACHER).status_code == 400

    data = client.get(url).json()["data"]
    assert (data["start_time"], data["end_time"]) == ("10:00:00", "12:00:00")

    resp = client.put(url, json={"start_time": "07:00:00", "end_time": "08:00:00"}, headers=TEACHER)
    assert resp.status_code == 200
