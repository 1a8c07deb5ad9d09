from fastapi import APIRouter, Depends, Query

from app.models.models import EligibilityCriteria, EligibilityReport
from app.models.payloads import AskRequest
from app.models.response import AskResponse, CandidateProfile, FileInfo, ProfileStats, SearchResponse
from app.routers.resumes import redacted_text
from app.services import search as search_service
from app.services.db import MongoRepository, get_repository
from app.services.eligibility import evaluate
from app.services.embeddings import Embedder, get_embedder
from app.utils.exceptions import NotFoundError
from app.utils.logging_config import get_logger, log_api_call

router = APIRouter()
logger = get_logger(__name__)


async def _get_resume(resume_id: str, repo: MongoRepository):
    resume = await repo.get_resume(resume_id)
    if not resume:
        raise NotFoundError("Resume not found", resource="resume", resource_id=resume_id)
    return resume


@router.post("/ask", response_model=AskResponse)
@log_api_call("ask")
async def ask_question(payload: AskRequest,
                       repo: MongoRepository = Depends(get_repository),
                       embedder: Embedder = Depends(get_embedder)):
    """Rank resumes by the mean similarity of their top-k chunks to the query"""
    return await search_service.ask(payload.query, payload.k, repo, embedder)


@router.get("/resumes", response_model=SearchResponse)
async def search_resumes(q: str = "", limit: int = Query(10, ge=1, le=100), offset: int = Query(0, ge=0),
                         min_score: int = Query(0, ge=0, le=100),
                         repo: MongoRepository = Depends(get_repository),
                         embedder: Embedder = Depends(get_embedder)):
    """Semantic resume search scored by each resume's single best chunk"""
    return await search_service.search(q, limit, offset, min_score, repo, embedder)


@router.get("/candidates/{resume_id}", response_model=CandidateProfile)
async def get_candidate_profile(resume_id: str, include_text: bool = False, redact_pii: bool = False,
                                repo: MongoRepository = Depends(get_repository)):
    resume = await _get_resume(resume_id, repo)

    profile = CandidateProfile(
        resume_id=resume.resume_id,
        resume_name=resume.original_name,
        metadata=resume.metadata,
        file_info=FileInfo(
            filename=resume.filename,
            file_size=resume.file_size,
            mime_type=resume.mime_type,
            uploaded_at=resume.created_at,
            last_modified=resume.updated_at,
        ),
        stats=ProfileStats(
            total_chunks=len(resume.chunks),
            text_length=len(resume.parsed_text),
            embedding_dimensions=len(resume.chunks[0].embedding) if resume.chunks else 0,
        ),
    )
    if include_text:
        if redact_pii:
            profile.text = await redacted_text(resume, repo)
            profile.redaction_level = "standard"
        else:
            profile.text = resume.parsed_text
    return profile


@router.post("/eligibility/{resume_id}", response_model=EligibilityReport)
@log_api_call("check eligibility")
async def check_eligibility(resume_id: str, criteria: EligibilityCriteria,
                            repo: MongoRepository = Depends(get_repository)):
    """Evaluate a resume against structured requirements"""
    resume = await _get_resume(resume_id, repo)
    return evaluate(resume, criteria)
