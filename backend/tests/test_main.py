from fastapi.testclient import TestClient

from sheetsync import __version__
from sheetsync.auth import get_current_active_user
from sheetsync.main import app


def test_health(client: TestClient):
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["version"] == __version__


def test_root(client: TestClient):
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Sheets Sync API"


def test_login(client: TestClient):
    form_data = {
        "username": "admin",
        "password": "changeme"
    }
    response = client.post("/api/v1/token", data=form_data)
    assert response.status_code == 200
    data = response.json()
    assert "access_token" in data
    assert data["token_type"] == "bearer"


def test_login_wrong_password(client: TestClient):
    response = client.post("/api/v1/token", data={"username": "admin", "password": "nope"})
    assert response.status_code == 401


def test_token_grants_access(client: TestClient):
    app.dependency_overrides.pop(get_current_active_user, None)
    token = client.post("/api/v1/token", data={"username": "admin", "password": "changeme"}).json()["access_token"]

    response = client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["username"] == "admin"

    assert client.get("/api/v1/users/me").status_code == 401
    assert client.get("/api/v1/mappings/").status_code == 401
