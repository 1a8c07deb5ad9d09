import uuid
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, File, Query, UploadFile

from app.helpers.parsing import extract_text, extract_zip, get_file_type
from app.helpers.pii import extract_metadata, redact_pii
from app.models.payloads import ResumeTextInput
from app.models.response import (
    MessageResponse,
    Pagination,
    ResumeDetail,
    ResumeListResponse,
    ResumeSummary,
    ResumeUploadResponse,
)
from app.models.schemas import ResumeModel
from app.services.db import MongoRepository, get_repository
from app.services.embeddings import Embedder, get_embedder
from app.services.ingestion import build_chunks
from app.utils.config import MAX_UPLOAD_BYTES
from app.utils.exceptions import NotFoundError, ValidationError
from app.utils.logging_config import get_logger

router = APIRouter()
logger = get_logger(__name__)


def _summary(resume: ResumeModel) -> ResumeSummary:
    return ResumeSummary(resume_id=resume.resume_id, filename=resume.filename,
                         original_name=resume.original_name, metadata=resume.metadata)


async def prepare_resume(original_name: str, text: str, embedder: Embedder,
                         file_size: int = None, metadata=None) -> ResumeModel:
    """Chunk and embed one resume without storing it."""
    if not text.strip():
        raise ValidationError(f"No text could be extracted from {original_name}", field="text")

    resume_id = str(uuid.uuid4())
    chunks = await build_chunks(text, embedder, resume_id)
    file_type = get_file_type(original_name)

    return ResumeModel(
        resume_id=resume_id,
        filename=f"{resume_id}{file_type['extension'] or '.txt'}",
        original_name=original_name,
        file_size=file_size if file_size is not None else len(text.encode("utf-8")),
        mime_type=file_type["mime_type"] if file_type["is_supported"] else "text/plain",
        parsed_text=text,
        chunks=chunks,
        metadata=metadata or extract_metadata(text),
    )


async def store_resumes(resumes: List[ResumeModel], repo: MongoRepository) -> None:
    for resume in resumes:
        await repo.insert_resume(resume)
        logger.info(f"Stored resume {resume.resume_id} ({resume.original_name}) with {len(resume.chunks)} chunks")


async def ingest_resume(original_name: str, text: str, repo: MongoRepository, embedder: Embedder,
                        file_size: int = None, metadata=None) -> ResumeModel:
    """Chunk, embed and store one resume; nothing is stored if embedding fails."""
    resume = await prepare_resume(original_name, text, embedder, file_size=file_size, metadata=metadata)
    await store_resumes([resume], repo)
    return resume


async def _ingest_files(files: List[tuple], repo: MongoRepository, embedder: Embedder) -> List[ResumeModel]:
    """
    Validate, parse and embed every file before any of them is stored, so a
    rejected file leaves the collection untouched.
    """
    accepted = []
    for name, data in files:
        if not get_file_type(name)["is_supported"]:
            logger.debug(f"Skipping unsupported file {name}")
            continue
        if len(data) > MAX_UPLOAD_BYTES:
            raise ValidationError(f"{name} exceeds the upload size limit",
                                  details={"size": len(data), "limit": MAX_UPLOAD_BYTES})
        accepted.append((name, data))

    texts = [(name, extract_text(name, data), len(data)) for name, data in accepted]
    prepared = [await prepare_resume(name, text, embedder, file_size=size) for name, text, size in texts]
    await store_resumes(prepared, repo)
    return prepared


@router.post("/upload", response_model=ResumeUploadResponse, status_code=201)
async def upload_resumes(files: List[UploadFile] = File(...),
                         repo: MongoRepository = Depends(get_repository),
                         embedder: Embedder = Depends(get_embedder)):
    """Upload PDF/TXT/DOC/DOCX resumes; unsupported files are skipped"""
    contents = [(f.filename or "resume.txt", await f.read()) for f in files]
    stored = await _ingest_files(contents, repo, embedder)
    return ResumeUploadResponse(message="Resumes uploaded successfully", count=len(stored),
                                resumes=[_summary(r) for r in stored])


@router.post("/upload-zip", response_model=ResumeUploadResponse, status_code=201)
async def upload_zip(file: UploadFile = File(...),
                     repo: MongoRepository = Depends(get_repository),
                     embedder: Embedder = Depends(get_embedder)):
    """Upload a ZIP archive of resumes"""
    stored = await _ingest_files(extract_zip(await file.read(), MAX_UPLOAD_BYTES), repo, embedder)
    return ResumeUploadResponse(message="ZIP file processed successfully", count=len(stored),
                                resumes=[_summary(r) for r in stored])


@router.post("/text", response_model=ResumeSummary, status_code=201)
async def add_resume_text(payload: ResumeTextInput,
                          repo: MongoRepository = Depends(get_repository),
                          embedder: Embedder = Depends(get_embedder)):
    """Store a resume whose text (and optionally metadata) was extracted upstream"""
    resume = await ingest_resume(payload.original_name, payload.text, repo, embedder, metadata=payload.metadata)
    return _summary(resume)


@router.get("/", response_model=ResumeListResponse)
async def list_resumes(limit: int = Query(10, ge=1, le=100), offset: int = Query(0, ge=0), q: str = "",
                       repo: MongoRepository = Depends(get_repository)):
    resumes = await repo.list_resumes(q=q, limit=limit, offset=offset, with_embeddings=False)
    total = await repo.count_resumes(q=q)
    return ResumeListResponse(
        resumes=[_summary(r) for r in resumes],
        pagination=Pagination(total=total, limit=limit, offset=offset, has_more=offset + limit < total),
    )


async def redacted_text(resume: ResumeModel, repo: MongoRepository) -> str:
    """Standard-level redaction, computed once and cached on the resume"""
    if resume.is_redacted and resume.redacted_text is not None:
        return resume.redacted_text
    text = redact_pii(resume.parsed_text, "standard")["text"]
    await repo.update_resume(resume.resume_id, {
        "is_redacted": True, "redacted_text": text, "updated_at": datetime.utcnow(),
    })
    return text


@router.get("/{resume_id}", response_model=ResumeDetail)
async def get_resume(resume_id: str, redact_pii: bool = False,
                     repo: MongoRepository = Depends(get_repository)):
    resume = await repo.get_resume(resume_id)
    if not resume:
        raise NotFoundError("Resume not found", resource="resume", resource_id=resume_id)

    text = await redacted_text(resume, repo) if redact_pii else resume.parsed_text
    return ResumeDetail(
        **_summary(resume).model_dump(),
        file_size=resume.file_size,
        mime_type=resume.mime_type,
        created_at=resume.created_at,
        updated_at=resume.updated_at,
        text=text,
        redaction_level="standard" if redact_pii else None,
    )


@router.delete("/{resume_id}", response_model=MessageResponse)
async def delete_resume(resume_id: str, repo: MongoRepository = Depends(get_repository)):
    # stored match records keep referencing the id
    if not await repo.delete_resume(resume_id):
        raise NotFoundError("Resume not found", resource="resume", resource_id=resume_id)
    return MessageResponse(message="Resume deleted successfully")
