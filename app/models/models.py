from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

Relevance = Literal["high", "medium", "low"]
EvidenceType = Literal["skill", "experience", "education", "requirement"]
CriterionStatus = Literal["pending", "pass", "partial", "fail"]
EducationLevel = Literal["none", "high-school", "associate", "bachelor", "master", "phd"]


class TextChunk(BaseModel):
    """An offset-tagged slice of a source document."""
    model_config = ConfigDict(frozen=True)

    text: str
    start_offset: int = Field(ge=0)
    end_offset: int

    @model_validator(mode="after")
    def check_offsets(self):
        if self.end_offset <= self.start_offset:
            raise ValueError("end_offset must be greater than start_offset")
        return self


class EmbeddedChunk(TextChunk):
    embedding: List[float] = Field(default_factory=list)


class DocumentMetadata(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    experience: int = Field(default=0, ge=0)
    education: List[str] = Field(default_factory=list)
    summary: str = ""


class EvidenceItem(BaseModel):
    text: str
    relevance: Relevance
    type: EvidenceType
    similarity: int = Field(ge=0, le=100)


class MatchDetails(BaseModel):
    skills_match: int = 0
    experience_match: int = 0
    education_match: int = 0
    overall_match: int = 0


class MatchResult(BaseModel):
    resume_id: str
    candidate_name: Optional[str] = None
    resume_name: Optional[str] = None
    score: int = Field(ge=0, le=100)
    evidence: List[EvidenceItem] = Field(default_factory=list)
    missing_requirements: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    match_details: MatchDetails = Field(default_factory=MatchDetails)


class EligibilityCriteria(BaseModel):
    required_skills: List[str] = Field(default_factory=list)
    min_experience: int = Field(default=0, ge=0)
    required_education: EducationLevel = "none"
    required_certifications: List[str] = Field(default_factory=list)
    additional_requirements: str = ""


class CriterionResult(BaseModel):
    status: CriterionStatus = "pending"
    score: int = 0
    details: Dict[str, Any] = Field(default_factory=dict)


class EligibilityReport(BaseModel):
    resume_id: str
    candidate_name: Optional[str] = None
    resume_name: Optional[str] = None
    overall_score: int = 0
    is_eligible: bool = False
    criteria: Dict[str, CriterionResult]
    missing_requirements: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    evaluated_at: datetime = Field(default_factory=datetime.utcnow)
