from datetime import timedelta

import pytest

from sqlalchemy.exc import OperationalError

from studypal.core.models import utc_now
from studypal.features.assignments import api as assignments_api
from studypal.features.assignments import progress, service
from tests.conftest import sign_up


def _due(**delta):
    return (utc_now() + timedelta(**delta)).isoformat()


def _create(client, headers, **overrides):
    payload = {
        "course": "CS 301",
        "title": "Final Project",
        "due_at": _due(days=1),
        "impact": 3,
        "est_minutes": 60,
    }
    payload.update(overrides)
    response = client.post("/api/assignments", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_then_list_returns_one_not_started(client, auth_headers):
    _create(client, auth_headers)

    response = client.get("/api/assignments", headers=auth_headers)

    assert response.status_code == 200
    assignments = response.json()["assignments"]
    assert len(assignments) == 1
    item = assignments[0]
    assert (item["course"], item["title"], item["impact"], item["est_minutes"]) == ("CS 301", "Final Project", 3, 60)
    assert item["status"] == "not_started"
    assert item["progress"] == {"completed": 0, "total": 0, "percentage": 0}


def test_requires_sign_in(client):
    assert client.get("/api/assignments").status_code == 401
    assert client.get("/api/assignments", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_status_update_is_idempotent(client, auth_headers):
    created = _create(client, auth_headers, status="in_progress")

    response = client.put(
        f"/api/assignments/{created['id']}/status", json={"status": "in_progress"}, headers=auth_headers
    )

    assert response.status_code == 200
    after = response.json()
    created.pop("progress")
    after.pop("progress")
    assert after == created


def test_status_can_move_anywhere(client, auth_headers):
    created = _create(client, auth_headers)
    url = f"/api/assignments/{created['id']}/status"
    for status in ("completed", "not_started", "dropped", "in_progress"):
        response = client.put(url, json={"status": status}, headers=auth_headers)
        assert response.json()["status"] == status


def test_invalid_status_rejected(client, auth_headers):
    created = _create(client, auth_headers)
    response = client.put(
        f"/api/assignments/{created['id']}/status", json={"status": "archived"}, headers=auth_headers
    )
    assert response.status_code == 422


def test_update_stamps_updated_at(client, auth_headers):
    created = _create(client, auth_headers)

    response = client.patch(
        f"/api/assignments/{created['id']}",
        json={"title": "Final Project v2", "description": "Group of 3"},
        headers=auth_headers,
    )

    body = response.json()
    assert response.status_code == 200
    assert body["title"] == "Final Project v2"
    assert body["description"] == "Group of 3"
    assert body["course"] == "CS 301"
    assert body["updated_at"] >= created["updated_at"]


def test_update_rejects_null_required_field(client, auth_headers):
    created = _create(client, auth_headers)
    response = client.patch(f"/api/assignments/{created['id']}", json={"title": None}, headers=auth_headers)
    assert response.status_code == 400


def test_impact_out_of_range(client, auth_headers):
    payload = {"course": "CS 301", "title": "x", "due_at": _due(days=1), "impact": 6, "est_minutes": 10}
    assert client.post("/api/assignments", json=payload, headers=auth_headers).status_code == 422


def test_other_users_assignment_is_not_found(client, auth_headers):
    created = _create(client, auth_headers)
    other = {"Authorization": f"Bearer {sign_up(client, 'other@example.edu')['token']}"}

    assert client.get(f"/api/assignments/{created['id']}", headers=other).status_code == 404
    assert client.delete(f"/api/assignments/{created['id']}", headers=other).status_code == 404
    assert client.get("/api/assignments", headers=other).json()["assignments"] == []


def test_sorting(client, auth_headers):
    _create(client, auth_headers, course="hist 200", title="Essay", impact=2, due_at=_due(days=3))
    _create(client, auth_headers, course="Art 101", title="Sketch", impact=5, due_at=_due(days=5))
    _create(client, auth_headers, course="CS 301", title="Lab", impact=4, due_at=_due(days=1))

    def titles(sort):
        body = client.get(f"/api/assignments?sort={sort}", headers=auth_headers).json()
        return [a["title"] for a in body["assignments"]]

    assert titles("due_date") == ["Lab", "Essay", "Sketch"]
    assert titles("priority") == ["Sketch", "Lab", "Essay"]
    assert titles("course") == ["Sketch", "Lab", "Essay"]


def test_status_filter(client, auth_headers):
    first = _create(client, auth_headers, title="A")
    _create(client, auth_headers, title="B")
    client.put(f"/api/assignments/{first['id']}/status", json={"status": "completed"}, headers=auth_headers)

    body = client.get("/api/assignments?status=completed", headers=auth_headers).json()

    assert [a["title"] for a in body["assignments"]] == ["A"]


def test_upcoming_and_focus(client, auth_headers):
    _create(client, auth_headers, title="Tonight", impact=2, due_at=_due(hours=5))
    _create(client, auth_headers, title="Overdue", impact=5, due_at=_due(days=-2))
    _create(client, auth_headers, title="Next week", impact=4, due_at=_due(days=6))
    _create(client, auth_headers, title="Next month", impact=5, due_at=_due(days=30))

    upcoming = client.get("/api/assignments/upcoming", headers=auth_headers).json()["assignments"]
    focus = client.get("/api/assignments/focus", headers=auth_headers).json()["assignments"]

    assert [a["title"] for a in upcoming] == ["Tonight", "Next week"]
    assert [a["title"] for a in focus] == ["Overdue", "Tonight"]


def test_focus_is_capped_at_three(client, auth_headers):
    for i in range(5):
        _create(client, auth_headers, title=f"Quiz {i}", impact=i + 1, due_at=_due(hours=2))
    focus = client.get("/api/assignments/focus", headers=auth_headers).json()["assignments"]
    assert [a["title"] for a in focus] == ["Quiz 4", "Quiz 3", "Quiz 2"]


def test_subtasks_and_progress(client, auth_headers):
    assignment = _create(client, auth_headers)
    base = f"/api/assignments/{assignment['id']}"

    ids = []
    for title in ("Outline", "Draft", "Polish"):
        response = client.post(f"{base}/subtasks", json={"title": title, "est_minutes": 30}, headers=auth_headers)
        assert response.status_code == 201
        ids.append(response.json()["id"])

    listed = client.get(f"{base}/subtasks", headers=auth_headers).json()
    assert [s["order_position"] for s in listed["subtasks"]] == [1, 2, 3]
    assert listed["progress"] == {"completed": 0, "total": 3, "percentage": 0}

    client.patch(f"{base}/subtasks/{ids[0]}", json={"completed": True}, headers=auth_headers)

    assert client.get(f"{base}/progress", headers=auth_headers).json() == {
        "completed": 1,
        "total": 3,
        "percentage": 33,
    }
    listed = client.get("/api/assignments", headers=auth_headers).json()["assignments"]
    assert listed[0]["progress"]["percentage"] == 33


def test_new_subtask_goes_after_highest_position(client, auth_headers):
    assignment = _create(client, auth_headers)
    base = f"/api/assignments/{assignment['id']}"
    first = client.post(f"{base}/subtasks", json={"title": "One"}, headers=auth_headers).json()
    client.patch(f"{base}/subtasks/{first['id']}", json={"order_position": 10}, headers=auth_headers)

    second = client.post(f"{base}/subtasks", json={"title": "Two"}, headers=auth_headers).json()

    assert second["order_position"] == 11


def test_reorder_subtasks(client, auth_headers):
    assignment = _create(client, auth_headers)
    base = f"/api/assignments/{assignment['id']}"
    ids = [
        client.post(f"{base}/subtasks", json={"title": t}, headers=auth_headers).json()["id"]
        for t in ("a", "b", "c")
    ]

    response = client.put(f"{base}/subtasks/order", json={"ordered_ids": ids[::-1]}, headers=auth_headers)

    assert response.status_code == 200
    assert [s["title"] for s in response.json()["subtasks"]] == ["c", "b", "a"]
    listed = client.get(f"{base}/subtasks", headers=auth_headers).json()["subtasks"]
    assert [(s["title"], s["order_position"]) for s in listed] == [("c", 1), ("b", 2), ("a", 3)]

    bad = client.put(f"{base}/subtasks/order", json={"ordered_ids": ids[:2]}, headers=auth_headers)
    assert bad.status_code == 400


def test_delete_subtask_and_assignment(client, auth_headers):
    assignment = _create(client, auth_headers)
    base = f"/api/assignments/{assignment['id']}"
    sub = client.post(f"{base}/subtasks", json={"title": "Only"}, headers=auth_headers).json()

    assert client.delete(f"{base}/subtasks/{sub['id']}", headers=auth_headers).status_code == 204
    assert client.delete(f"{base}/subtasks/{sub['id']}", headers=auth_headers).status_code == 404

    client.post(f"{base}/subtasks", json={"title": "Another"}, headers=auth_headers)
    assert client.delete(base, headers=auth_headers).status_code == 204
    assert client.get(base, headers=auth_headers).status_code == 404
    assert client.get(f"{base}/subtasks", headers=auth_headers).status_code == 404


def test_service_rejects_bad_fields(user_id):
    with pytest.raises(ValueError):
        service.create_assignment(user_id, "CS 301", "  ", utc_now())
    with pytest.raises(ValueError):
        service.create_assignment(user_id, "CS 301", "Quiz", utc_now(), impact=0)
    created = service.create_assignment(user_id, "CS 301", "Quiz", utc_now())
    with pytest.raises(ValueError):
        service.update_assignment(user_id, created.id, {"user_id": "someone-else"})


def test_service_status_noop_keeps_updated_at(user_id):
    created = service.create_assignment(user_id, "CS 301", "Quiz", utc_now() + timedelta(days=1))
    same = service.update_status(user_id, created.id, "not_started")
    assert same.updated_at == created.updated_at
    assert service.update_status(user_id, "missing", "completed") is None


def _storage_down(*args, **kwargs):
    raise OperationalError("SELECT 1", {}, Exception("database is locked"))


def test_one_failed_progress_load_only_zeroes_that_assignment(client, auth_headers, monkeypatch):
    broken = _create(client, auth_headers, title="A", due_at=_due(days=1))
    healthy = _create(client, auth_headers, title="B", due_at=_due(days=2))
    client.post(f"/api/assignments/{healthy['id']}/subtasks", json={"title": "Read"}, headers=auth_headers)

    real_get_progress = progress.get_progress

    def flaky(user_id, assignment_id):
        if assignment_id == broken["id"]:
            _storage_down()
        return real_get_progress(user_id, assignment_id)

    monkeypatch.setattr(progress, "get_progress", flaky)

    listed = client.get("/api/assignments", headers=auth_headers).json()["assignments"]

    by_title = {a["title"]: a["progress"] for a in listed}
    assert by_title["A"] == {"completed": 0, "total": 0, "percentage": 0}
    assert by_title["B"] == {"completed": 0, "total": 1, "percentage": 0}


def test_list_falls_back_to_empty_on_storage_error(client, auth_headers, monkeypatch):
    _create(client, auth_headers)
    monkeypatch.setattr(assignments_api, "list_assignments", _storage_down)
    monkeypatch.setattr(assignments_api, "get_todays_focus", _storage_down)

    for url in ("/api/assignments", "/api/assignments/focus"):
        response = client.get(url, headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"assignments": []}


def test_single_reads_fall_back_on_storage_error(client, auth_headers, monkeypatch):
    created = _create(client, auth_headers)
    monkeypatch.setattr(assignments_api, "get_assignment", _storage_down)

    assert client.get(f"/api/assignments/{created['id']}", headers=auth_headers).status_code == 404
    response = client.get(f"/api/assignments/{created['id']}/progress", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"completed": 0, "total": 0, "percentage": 0}


def test_save_failure_answers_friendly_500(client, auth_headers, monkeypatch):
    created = _create(client, auth_headers)
    monkeypatch.setattr(assignments_api, "create_assignment", _storage_down)
    monkeypatch.setattr(assignments_api, "update_status", _storage_down)

    payload = {"course": "CS 301", "title": "Lab", "due_at": _due(days=1)}
    response = client.post("/api/assignments", json=payload, headers=auth_headers)
    assert response.status_code == 500
    assert response.json() == {"detail": assignments_api.SAVE_ERROR}

    response = client.put(
        f"/api/assignments/{created['id']}/status", json={"status": "completed"}, headers=auth_headers
    )
    assert response.status_code == 500
    assert response.json()["detail"].startswith("Sorry, there was an error")
