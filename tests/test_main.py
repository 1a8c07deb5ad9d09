import pytest
from fastapi.testclient import TestClient

from app.services.db import get_repository
from conftest import InMemoryRepository


@pytest.fixture
def test_app():
    from app.main import app
    app.dependency_overrides[get_repository] = lambda: InMemoryRepository()
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(test_app):
    return TestClient(test_app)


class TestApplication:
    """Test the assembled application: routes, middleware and error envelope"""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    @pytest.mark.parametrize("path", ["/health", "/api/health"])
    def test_health(self, client, path):
        response = client.get(path)
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_request_headers(self, client):
        response = client.get("/health")
        assert "X-Request-ID" in response.headers
        assert "X-Processing-Time" in response.headers

    def test_error_envelope(self, client):
        response = client.get("/api/jobs/missing-job")

        assert response.status_code == 404
        data = response.json()
        assert data["success"] is False
        assert data["status_code"] == 404
        assert data["message"] == "Job not found"
        assert data["request_id"] == response.headers["X-Request-ID"]

    def test_validation_errors_use_envelope(self, client):
        response = client.post("/api/jobs/any-job/match", json={"top_n": 0})

        assert response.status_code == 422
        data = response.json()
        assert data["success"] is False
        assert data["validation_errors"][0]["loc"][-1] == "top_n"
