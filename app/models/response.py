# models/response.py
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from app.models.models import DocumentMetadata, MatchResult


class MessageResponse(BaseModel):
    message: str


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


# -------- Jobs --------
class JobSummary(BaseModel):
    job_id: str
    title: str
    company: str
    location: Optional[str] = None
    employment_type: str = "full-time"
    experience: str = ""
    skills: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class JobDetail(JobSummary):
    description: str
    requirements: str
    benefits: List[str] = []
    is_active: bool = True
    total_chunks: int = 0


class JobWriteResponse(BaseModel):
    message: str
    job: JobSummary


class JobListResponse(BaseModel):
    jobs: List[JobSummary]
    pagination: Pagination


class JobMatchResponse(BaseModel):
    job_id: str
    job_title: str
    company: str
    matches: List[MatchResult]
    total_candidates: int
    matched_candidates: int
    top_n: int


class PersistedMatch(MatchResult):
    match_id: str
    matched_at: datetime


class JobMatchesResponse(BaseModel):
    job_id: str
    matches: List[PersistedMatch]


# -------- Resumes --------
class ResumeSummary(BaseModel):
    resume_id: str
    filename: str
    original_name: str
    metadata: DocumentMetadata


class ResumeUploadResponse(BaseModel):
    message: str
    count: int
    resumes: List[ResumeSummary]


class ResumeListResponse(BaseModel):
    resumes: List[ResumeSummary]
    pagination: Pagination


class ResumeDetail(ResumeSummary):
    file_size: int
    mime_type: str
    created_at: datetime
    updated_at: datetime
    text: str
    redaction_level: Optional[str] = None


class FileInfo(BaseModel):
    filename: str
    file_size: int
    mime_type: str
    uploaded_at: datetime
    last_modified: datetime


class ProfileStats(BaseModel):
    total_chunks: int
    text_length: int
    embedding_dimensions: int


class CandidateProfile(BaseModel):
    resume_id: str
    resume_name: str
    metadata: DocumentMetadata
    file_info: FileInfo
    stats: ProfileStats
    text: Optional[str] = None
    redaction_level: Optional[str] = None


# -------- Search --------
class AskEvidence(BaseModel):
    text: str
    similarity: int = Field(ge=0, le=100)
    start_offset: int
    end_offset: int


class AskResult(BaseModel):
    resume_id: str
    resume_name: str
    candidate_name: Optional[str] = None
    score: int = Field(ge=0, le=100)
    evidence: List[AskEvidence]


class AskResponse(BaseModel):
    query: str
    results: List[AskResult]
    total_found: int


class SearchResult(BaseModel):
    resume_id: str
    resume_name: str
    candidate_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    skills: List[str] = []
    experience: int = 0
    score: int = Field(ge=0, le=100)
    snippet: str
    match_type: str = "semantic"


class SearchResponse(BaseModel):
    query: str
    results: List[SearchResult]
    pagination: Pagination
    min_score: int
