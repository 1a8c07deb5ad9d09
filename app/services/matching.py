import asyncio
import uuid
from typing import Dict, List, Any

from app.models.models import EvidenceItem, MatchDetails, MatchResult
from app.models.schemas import JobModel, MatchModel, ResumeModel
from app.services.db import MongoRepository
from app.services.similarity import best_match
from app.utils.config import MATCHING, MatchingSettings
from app.utils.exceptions import NotFoundError, ValidationError
from app.utils.logging_config import PerformanceMonitor, get_logger
from app.utils.utils import contains_either_way, extract_years, round_score

logger = get_logger(__name__)

EVIDENCE_KEYWORDS = [
    ("skill", ["skill", "technology", "programming"]),
    ("experience", ["experience", "worked", "years"]),
    ("education", ["education", "degree", "university"]),
]
EDUCATION_KEYWORDS = ["bachelor", "master", "phd", "degree", "university", "college"]


def classify_evidence(text: str) -> str:
    lower = text.lower()
    for kind, words in EVIDENCE_KEYWORDS:
        if any(w in lower for w in words):
            return kind
    return "requirement"


def relevance_label(similarity: float, settings: MatchingSettings = MATCHING) -> str:
    if similarity > settings.high_relevance:
        return "high"
    if similarity > settings.medium_relevance:
        return "medium"
    return "low"


def _matched_job_skills(job_skills: List[str], resume_skills: List[str]) -> List[str]:
    return [s for s in job_skills if contains_either_way(s, resume_skills)]


def missing_requirements(job: JobModel, resume: ResumeModel) -> List[str]:
    missing = [s.lower() for s in job.skills if not contains_either_way(s, resume.metadata.skills)]

    job_years = extract_years(job.experience)
    resume_years = resume.metadata.experience
    if job_years and resume_years < job_years:
        missing.append(f"{job_years} years of experience (candidate has {resume_years})")
    return missing


def analyze_strengths(resume: ResumeModel) -> List[str]:
    """Resume-only signals; identical for a resume across all jobs."""
    strengths = []
    if len(set(s.lower() for s in resume.metadata.skills)) > 5:
        strengths.append("Diverse skill set")
    if resume.metadata.experience > 5:
        strengths.append("Senior-level experience")
    if resume.metadata.education:
        strengths.append("Strong educational background")
    return strengths


def analyze_weaknesses(job: JobModel, resume: ResumeModel) -> List[str]:
    weaknesses = []
    overlap = len(_matched_job_skills(job.skills, resume.metadata.skills))
    if overlap < len(job.skills) * 0.5:
        weaknesses.append("Limited skill overlap with job requirements")

    job_years = extract_years(job.experience)
    if job_years and resume.metadata.experience < job_years * 0.7:
        weaknesses.append("Below required experience level")
    return weaknesses


def skills_match(job_skills: List[str], resume_skills: List[str]) -> int:
    if not job_skills:
        return 0
    return round_score(len(_matched_job_skills(job_skills, resume_skills)) / len(job_skills) * 100)


def experience_match(job_experience: str, resume_years: int) -> int:
    job_years = extract_years(job_experience)
    if not job_years or not resume_years:
        return 0
    return round_score(min(resume_years / job_years * 100, 100))


def education_match(job_description: str, education: List[str]) -> int:
    if not job_description or not education:
        return 0
    job_lower = job_description.lower()
    score = 0
    for entry in education:
        entry_lower = entry.lower()
        for keyword in EDUCATION_KEYWORDS:
            if keyword in entry_lower and keyword in job_lower:
                score += 25
    return min(score, 100)


def score_resume(job: JobModel, resume: ResumeModel, settings: MatchingSettings = MATCHING) -> MatchResult:
    """
    Score one resume against one job.

    Each job chunk is paired with its most similar resume chunk; pairs at or
    below the relevance threshold contribute nothing. The score is the mean
    similarity of the surviving pairs. Evidence follows job-chunk order and
    keeps the first `evidence_limit` pairs.
    """
    total, count = 0.0, 0
    evidence: List[EvidenceItem] = []

    for job_chunk in job.chunks:
        resume_chunk, similarity = best_match(job_chunk.embedding, resume.chunks)
        if resume_chunk is None or similarity <= settings.relevance_threshold:
            continue
        total += similarity
        count += 1
        evidence.append(EvidenceItem(
            text=resume_chunk.text,
            relevance=relevance_label(similarity, settings),
            type=classify_evidence(resume_chunk.text),
            similarity=round_score(similarity * 100),
        ))

    score = round_score(total / count * 100) if count else 0

    return MatchResult(
        resume_id=resume.resume_id,
        candidate_name=resume.metadata.name,
        resume_name=resume.original_name,
        score=score,
        evidence=evidence[:settings.evidence_limit],
        missing_requirements=missing_requirements(job, resume),
        strengths=analyze_strengths(resume),
        weaknesses=analyze_weaknesses(job, resume),
        match_details=MatchDetails(
            skills_match=skills_match(job.skills, resume.metadata.skills),
            experience_match=experience_match(job.experience, resume.metadata.experience),
            education_match=education_match(job.description, resume.metadata.education),
            overall_match=score,
        ),
    )


def rank_matches(job: JobModel, resumes: List[ResumeModel]) -> List[MatchResult]:
    """All resumes with a positive score, best first; equal scores by resume_id."""
    matches = [m for m in (score_resume(job, r) for r in resumes) if m.score > 0]
    matches.sort(key=lambda m: (-m.score, m.resume_id))
    return matches


async def match_job_against_all_resumes(job_id: str, top_n: int, repo: MongoRepository) -> Dict[str, Any]:
    """Score every resume for a job, keep the top N and persist them as the job's match set."""
    if top_n <= 0:
        raise ValidationError("top_n must be positive", field="top_n", value=top_n)

    job = await repo.get_job(job_id)
    if not job:
        raise NotFoundError("Job not found", resource="job", resource_id=job_id)

    resumes = await repo.list_resumes()

    with PerformanceMonitor(f"match job {job_id} against {len(resumes)} resumes", logger=logger):
        loop = asyncio.get_running_loop()
        matches = await loop.run_in_executor(None, rank_matches, job, resumes)

    top = matches[:top_n]
    run_id = str(uuid.uuid4())
    await repo.replace_matches(job_id, run_id, [
        MatchModel(match_id=str(uuid.uuid4()), job_id=job_id, run_id=run_id,
                   **m.model_dump(exclude={"candidate_name", "resume_name"}))
        for m in top
    ])
    logger.info(f"Job {job_id}: {len(matches)} of {len(resumes)} resumes matched, persisted top {len(top)}")

    return {
        "job_id": job_id,
        "job_title": job.title,
        "company": job.company,
        "matches": top,
        "total_candidates": len(resumes),
        "matched_candidates": len(matches),
        "top_n": top_n,
    }


async def get_persisted_matches(job_id: str, repo: MongoRepository) -> List[Dict[str, Any]]:
    """The job's current match set joined with resume names, best first."""
    matches = await repo.get_matches(job_id)
    if not matches:
        raise NotFoundError("No matches found for this job", resource="matches", resource_id=job_id)

    out = []
    for match in matches:
        # match records outlive deleted resumes; names are then left empty
        resume = await repo.get_resume(match.resume_id)
        out.append({
            "match_id": match.match_id,
            "resume_id": match.resume_id,
            "candidate_name": resume.metadata.name if resume else None,
            "resume_name": resume.original_name if resume else None,
            "score": match.score,
            "evidence": match.evidence,
            "missing_requirements": match.missing_requirements,
            "strengths": match.strengths,
            "weaknesses": match.weaknesses,
            "match_details": match.match_details,
            "matched_at": match.created_at,
        })
    return out
