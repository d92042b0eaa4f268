"""HTTP transport tests using FastAPI's TestClient."""

import pytest
from fastapi.testclient import TestClient

from web.backend.app.main import app
from web.backend.app.middleware.auth import get_services

from conftest import add_round, add_user


@pytest.fixture
def client(services):
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()


def _bearer(services, uid, role=None):
    return {"Authorization": f"Bearer {services.tokens.issue(uid, f'{uid}@wbs.de', role=role)}"}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_list_functions(client):
    response = client.get("/api/functions")
    assert response.status_code == 200
    assert "createModule" in response.json()["functions"]


def test_create_note(client):
    response = client.post("/api/functions/createNote", json={"data": {"title": "Hello", "content": "A longer body"}})
    assert response.status_code == 200
    result = response.json()["result"]
    assert result["success"] is True
    assert result["note"]["title"] == "Hello"


def test_validation_error_envelope(client):
    response = client.post("/api/functions/createNote", json={"data": {"title": "Hi", "content": "short"}})
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["status"] == "invalid-argument"
    assert "Title" in error["message"]


def test_missing_token_is_unauthenticated(client, services):
    add_round(services.store)
    response = client.post("/api/functions/createModule", json={"data": {}})
    assert response.status_code == 401
    assert response.json()["error"] == {
        "status": "unauthenticated",
        "message": "Unauthorized: No authentication provided",
    }


def test_malformed_authorization_header_is_anonymous(client):
    response = client.post(
        "/api/functions/listAuditLogs",
        json={"data": {}},
        headers={"Authorization": "Basic abc"},
    )
    assert response.status_code == 401


def test_authenticated_create_module(client, services):
    add_user(services.store, "po")
    add_round(services.store)
    response = client.post(
        "/api/functions/createModule",
        json={"data": {"titleEn": "Data Analytics", "descriptionEn": "An introduction to the subject."}},
        headers=_bearer(services, "po"),
    )
    assert response.status_code == 200
    assert response.json()["result"]["module"]["createdBy"] == "po"


def test_forbidden_without_round(client, services):
    add_user(services.store, "root", role="sysadmin")
    response = client.post(
        "/api/functions/createCourse",
        json={"data": {"name": "Web", "description": "Web development course"}},
        headers=_bearer(services, "root"),
    )
    assert response.status_code == 403
    assert response.json()["error"]["status"] == "permission-denied"


def test_unknown_function(client):
    response = client.post("/api/functions/doesNotExist", json={"data": {}})
    assert response.status_code == 404
    assert response.json()["error"]["status"] == "not-found"


def test_rate_limit_is_429(client, services):
    add_user(services.store, "po")
    add_round(services.store)
    headers = _bearer(services, "po")
    for i in range(10):
        client.post(
            "/api/functions/createModule",
            json={"data": {"titleEn": f"Module {i}", "descriptionEn": "An introduction to the subject."}},
            headers=headers,
        )
    response = client.post(
        "/api/functions/createModule",
        json={"data": {"titleEn": "Module extra", "descriptionEn": "An introduction to the subject."}},
        headers=headers,
    )
    assert response.status_code == 429
    assert response.json()["error"]["status"] == "resource-exhausted"
