"""
Environment-driven configuration for the Resume Matcher API
"""
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()

MONGO_DETAILS = os.getenv("MONGO_DETAILS", "mongodb://localhost:27017")
DB_NAME = os.getenv("DB_NAME", "resume_matcher")

EMBEDDING_BACKEND = os.getenv("EMBEDDING_BACKEND", "hash").lower()
EMBEDDING_DIMENSION = int(os.getenv("EMBEDDING_DIMENSION", "384"))
OLLAMA = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
EMBED_MODEL = os.getenv("EMBED_MODEL", "nomic-embed-text")
EMBED_TIMEOUT = int(os.getenv("EMBED_TIMEOUT", "30"))

CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "1000"))
CHUNK_OVERLAP = int(os.getenv("CHUNK_OVERLAP", "200"))

MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))


class MatchingSettings(BaseModel):
    """Thresholds used by the match scorer and the eligibility evaluator"""
    relevance_threshold: float = Field(default=0.3, ge=0.0, le=1.0, description="Minimum best-chunk similarity that counts as a match")
    high_relevance: float = Field(default=0.7, ge=0.0, le=1.0, description="Similarity above which evidence is 'high'")
    medium_relevance: float = Field(default=0.5, ge=0.0, le=1.0, description="Similarity above which evidence is 'medium'")
    evidence_limit: int = Field(default=5, ge=0, description="Evidence items kept per match")
    pass_score: int = Field(default=70, ge=0, le=100, description="Criterion score needed to pass")
    partial_score: int = Field(default=40, ge=0, le=100, description="Criterion score needed for partial credit")
    snippet_length: int = Field(default=200, ge=1, description="Characters kept in search snippets")

    @field_validator('medium_relevance')
    @classmethod
    def validate_relevance_bands(cls, v, info):
        high = info.data.get('high_relevance')
        if high is not None and v > high:
            raise ValueError('medium_relevance must not exceed high_relevance')
        return v

    @field_validator('partial_score')
    @classmethod
    def validate_score_bands(cls, v, info):
        pass_score = info.data.get('pass_score')
        if pass_score is not None and v > pass_score:
            raise ValueError('partial_score must not exceed pass_score')
        return v


MATCHING = MatchingSettings()
