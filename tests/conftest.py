import pytest
import yaml
from fastapi.testclient import TestClient

from studypal.api.server import create_app
from studypal.core.app import StudyPalApp

PASSWORD = "correct-horse-battery"


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump({
        "api": {"host": "127.0.0.1", "port": 8765, "cors_origins": []},
        "database": {"path": str(tmp_path / "studypal.db")},
        "auth": {"session_days": 30},
        "stats": {"window_days": 30},
        "logging": {"level": "INFO", "file": str(tmp_path / "studypal.log")},
        "watch_config": False,
    }))
    return path


@pytest.fixture
def studypal_app(config_path):
    app = StudyPalApp(config_path=str(config_path), watch_config=False)
    yield app
    app.shutdown()


@pytest.fixture
def client(studypal_app):
    return TestClient(create_app(studypal_app))


def sign_up(client, email="student@example.edu", **profile):
    response = client.post("/api/auth/signup", json={"email": email, "password": PASSWORD, **profile})
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def auth_headers(client):
    token = sign_up(client)["token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_id(studypal_app):
    """A user created straight through the service layer, for service-level tests."""
    from studypal.core.auth import sign_up as service_sign_up

    user, _token = service_sign_up("service@example.edu", PASSWORD)
    return user.id
