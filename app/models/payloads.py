from pydantic import BaseModel, Field
from typing import List, Optional, Literal

from app.models.models import DocumentMetadata
from app.models.schemas import Salary

# Input schemas for the public API

EmploymentType = Literal["full-time", "part-time", "contract", "internship"]


class JobCreate(BaseModel):
    """Job posting as submitted by a recruiter; required fields are checked by the router"""
    title: Optional[str] = None
    company: Optional[str] = None
    description: Optional[str] = None
    requirements: Optional[str] = None
    location: Optional[str] = None
    salary: Optional[Salary] = None
    employment_type: EmploymentType = "full-time"
    experience: str = ""
    skills: List[str] = []
    benefits: List[str] = []


class JobUpdate(BaseModel):
    """Partial update; only fields that are set are applied"""
    title: Optional[str] = None
    company: Optional[str] = None
    description: Optional[str] = None
    requirements: Optional[str] = None
    location: Optional[str] = None
    salary: Optional[Salary] = None
    employment_type: Optional[EmploymentType] = None
    experience: Optional[str] = None
    skills: Optional[List[str]] = None
    benefits: Optional[List[str]] = None


class MatchRequest(BaseModel):
    top_n: int = Field(default=10, ge=1, le=1000)


class ResumeTextInput(BaseModel):
    """Resume whose text was already extracted upstream"""
    original_name: str
    text: str
    metadata: Optional[DocumentMetadata] = None  # extracted from text when omitted


class AskRequest(BaseModel):
    query: str = ""
    k: int = Field(default=5, ge=1, le=100)
