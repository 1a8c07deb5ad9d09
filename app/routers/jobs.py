import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query

from app.models.payloads import JobCreate, JobUpdate, MatchRequest
from app.models.response import (
    JobDetail,
    JobListResponse,
    JobMatchesResponse,
    JobMatchResponse,
    JobSummary,
    JobWriteResponse,
    MessageResponse,
    Pagination,
)
from app.models.schemas import JobModel
from app.services.db import MongoRepository, get_repository
from app.services.embeddings import Embedder, get_embedder
from app.services.ingestion import build_chunks, job_full_text
from app.services.matching import get_persisted_matches, match_job_against_all_resumes
from app.utils.exceptions import NotFoundError, ValidationError
from app.utils.logging_config import get_logger, log_api_call

router = APIRouter()
logger = get_logger(__name__)

REQUIRED_JOB_FIELDS = ["title", "company", "description", "requirements"]


def _summary(job: JobModel) -> JobSummary:
    return JobSummary(**job.model_dump(include=set(JobSummary.model_fields)))


async def _get_active_job(job_id: str, repo: MongoRepository) -> JobModel:
    job = await repo.get_job(job_id)
    if not job or not job.is_active:
        raise NotFoundError("Job not found", resource="job", resource_id=job_id)
    return job


@router.post("/", response_model=JobWriteResponse, status_code=201)
async def create_job(payload: JobCreate,
                     repo: MongoRepository = Depends(get_repository),
                     embedder: Embedder = Depends(get_embedder)):
    """Create a job posting and embed its description and requirements"""
    missing = [f for f in REQUIRED_JOB_FIELDS if not (getattr(payload, f) or "").strip()]
    if missing:
        raise ValidationError(
            "Title, company, description, and requirements are required",
            details={"missing_fields": missing},
        )

    job_id = str(uuid.uuid4())
    chunks = await build_chunks(job_full_text(payload.description, payload.requirements), embedder, job_id)

    job = JobModel(job_id=job_id, chunks=chunks, **payload.model_dump())
    await repo.insert_job(job)
    logger.info(f"Created job {job_id} with {len(chunks)} chunks")

    return JobWriteResponse(message="Job created successfully", job=_summary(job))


@router.get("/", response_model=JobListResponse)
async def list_jobs(limit: int = Query(10, ge=1, le=100), offset: int = Query(0, ge=0),
                    q: str = "", company: str = "", location: str = "",
                    repo: MongoRepository = Depends(get_repository)):
    """List active jobs, newest first"""
    jobs = await repo.list_jobs(q=q, company=company, location=location, limit=limit, offset=offset)
    total = await repo.count_jobs(q=q, company=company, location=location)
    return JobListResponse(
        jobs=[_summary(j) for j in jobs],
        pagination=Pagination(total=total, limit=limit, offset=offset, has_more=offset + limit < total),
    )


@router.get("/{job_id}", response_model=JobDetail)
async def get_job(job_id: str, repo: MongoRepository = Depends(get_repository)):
    job = await _get_active_job(job_id, repo)
    return JobDetail(**job.model_dump(exclude={"chunks"}), total_chunks=len(job.chunks))


@router.put("/{job_id}", response_model=JobWriteResponse)
async def update_job(job_id: str, payload: JobUpdate,
                     repo: MongoRepository = Depends(get_repository),
                     embedder: Embedder = Depends(get_embedder)):
    """Update a job; chunks are rebuilt when the description or requirements change"""
    job = await _get_active_job(job_id, repo)
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)

    for field in REQUIRED_JOB_FIELDS:
        if field in updates and not updates[field].strip():
            raise ValidationError(f"{field} cannot be empty", field=field)

    if "description" in updates or "requirements" in updates:
        text = job_full_text(updates.get("description", job.description),
                             updates.get("requirements", job.requirements))
        chunks = await build_chunks(text, embedder, job_id)
        updates["chunks"] = [c.model_dump() for c in chunks]

    updates["updated_at"] = datetime.utcnow()
    await repo.update_job(job_id, updates)

    updated = job.model_copy(update={k: v for k, v in updates.items() if k != "chunks"})
    return JobWriteResponse(message="Job updated successfully", job=_summary(updated))


@router.delete("/{job_id}", response_model=MessageResponse)
async def delete_job(job_id: str, repo: MongoRepository = Depends(get_repository)):
    """Soft delete: the job is deactivated, its data is kept"""
    await _get_active_job(job_id, repo)
    await repo.update_job(job_id, {"is_active": False, "updated_at": datetime.utcnow()})
    return MessageResponse(message="Job deleted successfully")


@router.post("/{job_id}/match", response_model=JobMatchResponse)
@log_api_call("match job")
async def match_job(job_id: str, payload: MatchRequest = MatchRequest(),
                    repo: MongoRepository = Depends(get_repository)):
    """Score all resumes against a job and replace its stored match set"""
    await _get_active_job(job_id, repo)
    result = await match_job_against_all_resumes(job_id, payload.top_n, repo)
    return JobMatchResponse(**result)


@router.get("/{job_id}/matches", response_model=JobMatchesResponse)
async def get_job_matches(job_id: str, repo: MongoRepository = Depends(get_repository)):
    """Stored matches for a job, best first"""
    matches = await get_persisted_matches(job_id, repo)
    return JobMatchesResponse(job_id=job_id, matches=matches)
