from pydantic import BaseModel, Field
from typing import List, Optional, Literal
from datetime import datetime

from app.models.models import DocumentMetadata, EmbeddedChunk, EvidenceItem, MatchDetails

# -------- Resumes --------
class ResumeModel(BaseModel):
    resume_id: str
    filename: str
    original_name: str
    file_size: int = 0
    mime_type: str = "text/plain"
    parsed_text: str
    chunks: List[EmbeddedChunk] = []
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    is_redacted: bool = False
    redacted_text: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

# -------- Jobs --------
class Salary(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None
    currency: Optional[str] = None

class JobModel(BaseModel):
    job_id: str
    title: str
    company: str
    description: str
    requirements: str
    location: Optional[str] = None
    salary: Optional[Salary] = None
    employment_type: Literal["full-time", "part-time", "contract", "internship"] = "full-time"
    experience: str = ""
    skills: List[str] = []
    benefits: List[str] = []
    chunks: List[EmbeddedChunk] = []
    is_active: bool = True
    match_run_id: Optional[str] = None  # current persisted match set
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

# -------- Matches --------
class MatchModel(BaseModel):
    match_id: str
    job_id: str
    resume_id: str
    run_id: str
    score: int = Field(ge=0, le=100)
    evidence: List[EvidenceItem] = []
    missing_requirements: List[str] = []
    strengths: List[str] = []
    weaknesses: List[str] = []
    match_details: MatchDetails = Field(default_factory=MatchDetails)
    created_at: datetime = Field(default_factory=datetime.utcnow)
