from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from studypal.core.db import session_scope
from studypal.features.checkins import api as checkins_api
from studypal.features.checkins import service as checkins
from studypal.features.checkins.models import Checkin
from studypal.features.wins import api as wins_api
from studypal.features.wins import service as wins


def test_create_and_list_checkins(client, auth_headers):
    response = client.post(
        "/api/checkins", json={"mood": 2, "energy": 3, "focus": 4, "notes": "  long day  "}, headers=auth_headers
    )
    assert response.status_code == 201
    created = response.json()
    assert (created["mood"], created["energy"], created["focus"]) == (2, 3, 4)
    assert created["notes"] == "long day"

    listed = client.get("/api/checkins", headers=auth_headers).json()["checkins"]
    assert [c["id"] for c in listed] == [created["id"]]


@pytest.mark.parametrize("payload", [
    {"mood": 0, "energy": 3, "focus": 3},
    {"mood": 3, "energy": 6, "focus": 3},
    {"mood": 3, "energy": 3},
    {"mood": 3, "energy": 3, "focus": 2.5},
])
def test_checkin_ratings_validated(client, auth_headers, payload):
    assert client.post("/api/checkins", json=payload, headers=auth_headers).status_code == 422


def test_service_rejects_out_of_range(user_id):
    with pytest.raises(ValueError):
        checkins.create_checkin(user_id, 3, 3, 9)
    with pytest.raises(ValueError):
        checkins.create_checkin(user_id, True, 3, 3)


def test_recent_checkins_window(user_id):
    recent = checkins.create_checkin(user_id, 3, 3, 3)
    with session_scope() as session:
        session.add(Checkin(user_id=user_id, mood=4, energy=4, focus=4,
                            created_at=recent.created_at - timedelta(days=10)))

    assert [c.id for c in checkins.get_recent_checkins(user_id)] == [recent.id]
    assert len(checkins.get_recent_checkins(user_id, days=30)) == 2


def test_checkins_are_per_user(client, auth_headers):
    from tests.conftest import sign_up

    client.post("/api/checkins", json={"mood": 3, "energy": 3, "focus": 3}, headers=auth_headers)
    other = {"Authorization": f"Bearer {sign_up(client, 'other@example.edu')['token']}"}
    assert client.get("/api/checkins", headers=other).json()["checkins"] == []


def test_create_and_list_wins(client, auth_headers):
    first = client.post(
        "/api/wins", json={"category": "academic", "description": "Finished the reading"}, headers=auth_headers
    )
    second = client.post(
        "/api/wins", json={"category": "social", "description": "Called a friend"}, headers=auth_headers
    )
    assert first.status_code == second.status_code == 201

    listed = client.get("/api/wins", headers=auth_headers).json()["wins"]
    assert {w["description"] for w in listed} == {"Finished the reading", "Called a friend"}
    assert len(client.get("/api/wins?limit=1", headers=auth_headers).json()["wins"]) == 1


def test_win_category_validated(client, auth_headers):
    response = client.post("/api/wins", json={"category": "sports", "description": "Ran"}, headers=auth_headers)
    assert response.status_code == 422


def test_win_service_validation(user_id):
    with pytest.raises(ValueError):
        wins.create_win(user_id, "sports", "Ran")
    with pytest.raises(ValueError):
        wins.create_win(user_id, "personal", "   ")


def _storage_down(*args, **kwargs):
    raise OperationalError("INSERT", {}, Exception("disk I/O error"))


def test_checkin_storage_errors(client, auth_headers, monkeypatch):
    monkeypatch.setattr(checkins_api, "create_checkin", _storage_down)
    monkeypatch.setattr(checkins_api, "get_recent_checkins", _storage_down)

    saved = client.post("/api/checkins", json={"mood": 3, "energy": 3, "focus": 3}, headers=auth_headers)
    assert saved.status_code == 500
    assert saved.json() == {"detail": "There was an error saving your check-in. Please try again."}

    listed = client.get("/api/checkins", headers=auth_headers)
    assert listed.status_code == 200
    assert listed.json() == {"checkins": []}


def test_win_storage_errors(client, auth_headers, monkeypatch):
    monkeypatch.setattr(wins_api, "create_win", _storage_down)
    monkeypatch.setattr(wins_api, "get_recent_wins", _storage_down)

    saved = client.post("/api/wins", json={"category": "personal", "description": "Slept 8h"}, headers=auth_headers)
    assert saved.status_code == 500
    assert saved.json() == {"detail": "There was an error saving your little win."}

    assert client.get("/api/wins", headers=auth_headers).json() == {"wins": []}
