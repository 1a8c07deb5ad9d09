import os

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("EMBEDDING_BACKEND", "hash")

import pytest
from typing import Dict, List, Optional

from app.models.models import DocumentMetadata, EmbeddedChunk
from app.models.schemas import JobModel, MatchModel, ResumeModel
from app.services.embeddings import Embedder


class InMemoryRepository:
    """Dict-backed stand-in for MongoRepository with the same async interface"""

    def __init__(self):
        self.resumes: Dict[str, ResumeModel] = {}
        self.jobs: Dict[str, JobModel] = {}
        self.matches: List[MatchModel] = []

    async def insert_resume(self, resume):
        self.resumes[resume.resume_id] = resume

    async def get_resume(self, resume_id):
        return self.resumes.get(resume_id)

    async def update_resume(self, resume_id, fields):
        if resume_id in self.resumes:
            self.resumes[resume_id] = self.resumes[resume_id].model_copy(update=fields)

    async def delete_resume(self, resume_id):
        return self.resumes.pop(resume_id, None) is not None

    async def list_resumes(self, q="", limit=None, offset=0, with_embeddings=True):
        items = [r for r in self.resumes.values() if not q or q.lower() in r.parsed_text.lower()]
        items = items[offset:]
        return items[:limit] if limit is not None else items

    async def count_resumes(self, q=""):
        return len(await self.list_resumes(q=q))

    async def insert_job(self, job):
        self.jobs[job.job_id] = job

    async def get_job(self, job_id):
        return self.jobs.get(job_id)

    async def update_job(self, job_id, fields):
        if job_id in self.jobs:
            self.jobs[job_id] = JobModel(**{**self.jobs[job_id].model_dump(), **fields})

    async def list_jobs(self, q="", company="", location="", limit=10, offset=0):
        items = [j for j in self.jobs.values() if j.is_active]
        if company:
            items = [j for j in items if company.lower() in j.company.lower()]
        return items[offset:offset + limit]

    async def count_jobs(self, q="", company="", location=""):
        return len([j for j in self.jobs.values() if j.is_active])

    async def replace_matches(self, job_id, run_id, matches):
        self.matches = [m for m in self.matches if m.job_id != job_id] + list(matches)
        await self.update_job(job_id, {"match_run_id": run_id})

    async def get_matches(self, job_id):
        job = self.jobs.get(job_id)
        if not job or not job.match_run_id:
            return []
        found = [m for m in self.matches if m.job_id == job_id and m.run_id == job.match_run_id]
        return sorted(found, key=lambda m: (-m.score, m.resume_id))


class StubEmbedder(Embedder):
    """Looks vectors up by exact text; anything else maps to `default`"""

    name = "stub"

    def __init__(self, vectors: Dict[str, List[float]], default: Optional[List[float]] = None, dimension: int = 3):
        super().__init__(dimension)
        self.vectors = vectors
        self.default = default or [0.0, 0.0, 1.0]

    async def embed(self, text):
        return list(self.vectors.get(text, self.default))


def chunk(text: str, vector: List[float], start: int = 0) -> EmbeddedChunk:
    return EmbeddedChunk(text=text, start_offset=start, end_offset=start + max(1, len(text)), embedding=vector)


def make_resume(resume_id="r1", chunks=None, skills=None, experience=0, education=None,
                name="Jane Doe", text="", original_name="jane.pdf") -> ResumeModel:
    chunks = chunks or []
    return ResumeModel(
        resume_id=resume_id,
        filename=f"{resume_id}.pdf",
        original_name=original_name,
        parsed_text=text or " ".join(c.text for c in chunks),
        chunks=chunks,
        metadata=DocumentMetadata(
            name=name,
            skills=skills or [],
            experience=experience,
            education=education or [],
        ),
    )


def make_job(job_id="j1", chunks=None, skills=None, experience="", description="Backend engineer role",
             requirements="Python") -> JobModel:
    return JobModel(
        job_id=job_id,
        title="Backend Engineer",
        company="Acme",
        description=description,
        requirements=requirements,
        experience=experience,
        skills=skills or [],
        chunks=chunks or [],
    )


@pytest.fixture
def repo():
    return InMemoryRepository()
