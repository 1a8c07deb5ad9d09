import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.middleware.error_handlers import register_exception_handlers
from app.routers import jobs, resumes
from app.services.db import get_repository
from app.services.embeddings import get_embedder
from conftest import StubEmbedder

JOB = {
    "title": "Backend Engineer",
    "company": "Acme",
    "description": "Build Python services",
    "requirements": "3+ years of Python and SQL",
    "location": "Remote",
    "experience": "3+ years",
    "skills": ["Python", "SQL"],
}


@pytest.fixture
def test_app(repo):
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(jobs.router, prefix="/jobs")
    app.include_router(resumes.router, prefix="/resumes")
    app.dependency_overrides[get_repository] = lambda: repo
    app.dependency_overrides[get_embedder] = lambda: StubEmbedder({})
    return app


@pytest.fixture
def client(test_app):
    return TestClient(test_app)


def _create_job(client, **overrides):
    response = client.post("/jobs/", json={**JOB, **overrides})
    assert response.status_code == 201
    return response.json()["job"]["job_id"]


class TestJobsRouter:
    """Test cases for the jobs router"""

    def test_create_job(self, client, repo):
        response = client.post("/jobs/", json=JOB)

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Job created successfully"
        assert data["job"]["title"] == "Backend Engineer"
        stored = repo.jobs[data["job"]["job_id"]]
        assert len(stored.chunks) == 1
        assert stored.chunks[0].text.startswith("Build Python services")

    def test_create_job_missing_fields(self, client, repo):
        response = client.post("/jobs/", json={"title": "Backend Engineer", "description": "   "})

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["message"] == "Title, company, description, and requirements are required"
        assert set(data["error"]["details"]["missing_fields"]) == {"company", "description", "requirements"}
        assert repo.jobs == {}

    def test_get_job(self, client):
        job_id = _create_job(client)

        response = client.get(f"/jobs/{job_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["description"] == "Build Python services"
        assert data["total_chunks"] == 1
        assert "chunks" not in data

    def test_get_missing_job(self, client):
        response = client.get("/jobs/does-not-exist")
        assert response.status_code == 404
        assert response.json()["error"]["error_code"] == "NOT_FOUND"

    def test_list_jobs(self, client):
        _create_job(client)
        _create_job(client, company="Globex")

        response = client.get("/jobs/?limit=1")

        assert response.status_code == 200
        data = response.json()
        assert len(data["jobs"]) == 1
        assert data["pagination"] == {"total": 2, "limit": 1, "offset": 0, "has_more": True}

    def test_update_job_rebuilds_chunks(self, client, repo):
        job_id = _create_job(client)

        response = client.put(f"/jobs/{job_id}", json={"title": "Staff Engineer", "requirements": "Go and Kafka"})

        assert response.status_code == 200
        assert response.json()["job"]["title"] == "Staff Engineer"
        stored = repo.jobs[job_id]
        assert stored.requirements == "Go and Kafka"
        assert "Go and Kafka" in stored.chunks[-1].text

    def test_update_rejects_blank_required_field(self, client):
        job_id = _create_job(client)
        response = client.put(f"/jobs/{job_id}", json={"title": " "})
        assert response.status_code == 400

    def test_delete_is_soft(self, client, repo):
        job_id = _create_job(client)

        response = client.delete(f"/jobs/{job_id}")

        assert response.status_code == 200
        assert repo.jobs[job_id].is_active is False
        assert client.get(f"/jobs/{job_id}").status_code == 404
        assert client.get("/jobs/").json()["jobs"] == []


class TestJobMatching:
    """Matching resumes against a job through the API"""

    def _add_resume(self, client, name, skills):
        response = client.post("/resumes/text", json={
            "original_name": f"{name}.txt",
            "text": f"{name} resume text",
            "metadata": {"name": name, "skills": skills, "experience": 4},
        })
        assert response.status_code == 201
        return response.json()["resume_id"]

    def test_match_and_fetch(self, client):
        job_id = _create_job(client)
        ids = sorted([self._add_resume(client, "Ada", ["Python"]), self._add_resume(client, "Bob", ["Java"])])

        response = client.post(f"/jobs/{job_id}/match", json={"top_n": 1})

        assert response.status_code == 200
        data = response.json()
        assert data["total_candidates"] == 2
        assert data["matched_candidates"] == 2
        assert data["top_n"] == 1
        assert len(data["matches"]) == 1
        # equal scores fall back to resume id order
        assert data["matches"][0]["resume_id"] == ids[0]
        assert data["matches"][0]["score"] == 100

        stored = client.get(f"/jobs/{job_id}/matches")
        assert stored.status_code == 200
        matches = stored.json()["matches"]
        assert [m["resume_id"] for m in matches] == [ids[0]]
        assert "match_id" in matches[0]
        assert "matched_at" in matches[0]

    def test_match_without_body_uses_default_top_n(self, client):
        job_id = _create_job(client)
        self._add_resume(client, "Ada", ["Python"])

        response = client.post(f"/jobs/{job_id}/match")

        assert response.status_code == 200
        assert response.json()["top_n"] == 10

    def test_match_details(self, client):
        job_id = _create_job(client)
        self._add_resume(client, "Ada", ["Python", "Java"])

        match = client.post(f"/jobs/{job_id}/match").json()["matches"][0]

        assert match["candidate_name"] == "Ada"
        assert match["match_details"]["skills_match"] == 50
        assert match["match_details"]["experience_match"] == 100
        assert match["missing_requirements"] == ["sql"]

    def test_match_unknown_job(self, client):
        assert client.post("/jobs/nope/match", json={"top_n": 5}).status_code == 404

    def test_match_rejects_invalid_top_n(self, client):
        job_id = _create_job(client)
        assert client.post(f"/jobs/{job_id}/match", json={"top_n": 0}).status_code == 422

    def test_matches_before_any_run(self, client):
        job_id = _create_job(client)
        response = client.get(f"/jobs/{job_id}/matches")
        assert response.status_code == 404
