"""
Rule-based eligibility checks of a resume against structured criteria.

Works on extracted metadata and raw resume text only; embeddings are not
involved. Criteria that were not supplied stay 'pending' and do not count
towards the overall score.
"""
import re
from typing import Dict, List

from app.models.models import CriterionResult, EligibilityCriteria, EligibilityReport
from app.models.schemas import ResumeModel
from app.utils.config import MATCHING, MatchingSettings
from app.utils.utils import contains_either_way, round_score

CRITERIA = ["skills", "experience", "education", "certifications", "additional"]

EDUCATION_LEVEL_KEYWORDS = {
    "high-school": ["high school", "secondary"],
    "associate": ["associate", "diploma"],
    "bachelor": ["bachelor", "degree", "bsc", "ba"],
    "master": ["master", "msc", "ma", "mba"],
    "phd": ["phd", "doctorate", "doctor"],
}

RECOMMENDATIONS = {
    "skills": "Consider gaining experience with required skills through courses or projects",
    "experience": "Look for opportunities to gain relevant experience",
    "education": "Consider pursuing the required education level",
    "certifications": "Obtain the required certifications",
    "additional": "Address the additional requirements listed for the role",
}

TOKEN_SPLIT = re.compile(r"[,\s]+")


def banded_status(score: int, settings: MatchingSettings = MATCHING) -> str:
    if score >= settings.pass_score:
        return "pass"
    if score >= settings.partial_score:
        return "partial"
    return "fail"


def _check_skills(resume: ResumeModel, required: List[str], missing: List[str],
                  settings: MatchingSettings) -> CriterionResult:
    matched, absent = [], []
    for skill in required:
        (matched if contains_either_way(skill, resume.metadata.skills) else absent).append(skill)

    score = round_score(len(matched) / len(required) * 100)
    if absent:
        missing.append(f"Missing skills: {', '.join(absent)}")
    return CriterionResult(
        status=banded_status(score, settings), score=score,
        details={"matched": matched, "missing": absent, "total": len(required)},
    )


def _check_experience(resume: ResumeModel, required: int, missing: List[str]) -> CriterionResult:
    years = resume.metadata.experience
    score = 100 if years >= required else round_score(years / required * 100)
    if years < required:
        missing.append(f"Insufficient experience: {years} years (required: {required})")
    return CriterionResult(
        status="pass" if score >= 100 else "fail", score=score,
        details={"required": required, "candidate": years, "difference": years - required},
    )


def _check_education(resume: ResumeModel, level: str, missing: List[str]) -> CriterionResult:
    keywords = EDUCATION_LEVEL_KEYWORDS[level]
    matched = any(
        k in entry.lower()
        for entry in resume.metadata.education
        for k in keywords
    )
    if not matched:
        missing.append(f"Education requirement not met: {level}")
    return CriterionResult(
        status="pass" if matched else "fail", score=100 if matched else 0,
        details={"required": level, "candidate": list(resume.metadata.education), "match": matched},
    )


def _check_certifications(resume: ResumeModel, required: List[str], missing: List[str],
                          settings: MatchingSettings) -> CriterionResult:
    text = resume.parsed_text.lower()
    matched, absent = [], []
    for cert in required:
        (matched if cert.lower().strip() in text else absent).append(cert)

    score = round_score(len(matched) / len(required) * 100)
    if absent:
        missing.append(f"Missing certifications: {', '.join(absent)}")
    return CriterionResult(
        status=banded_status(score, settings), score=score,
        details={"matched": matched, "missing": absent, "total": len(required)},
    )


def _check_additional(resume: ResumeModel, requirement: str, keywords: List[str],
                      missing: List[str], settings: MatchingSettings) -> CriterionResult:
    text = resume.parsed_text.lower()
    found = sum(1 for k in keywords if k in text)
    score = round_score(found / len(keywords) * 100)
    if score < settings.pass_score:
        missing.append("Additional requirements not fully met")
    return CriterionResult(
        status=banded_status(score, settings), score=score,
        details={"matched_keywords": found, "total_keywords": len(keywords), "requirement": requirement},
    )


def additional_keywords(requirement: str) -> List[str]:
    """Lowercased comma/whitespace separated words longer than 3 characters."""
    return [w for w in TOKEN_SPLIT.split(requirement.lower()) if len(w) > 3]


PASS_THRESHOLDS = {
    "skills": lambda s: s.pass_score,
    "experience": lambda s: 100,
    "education": lambda s: 100,
    "certifications": lambda s: s.pass_score,
    "additional": lambda s: s.pass_score,
}


def evaluate(resume: ResumeModel, criteria: EligibilityCriteria,
             settings: MatchingSettings = MATCHING) -> EligibilityReport:
    results: Dict[str, CriterionResult] = {name: CriterionResult() for name in CRITERIA}
    missing: List[str] = []

    required_skills = [s for s in criteria.required_skills if s.strip()]
    if required_skills:
        results["skills"] = _check_skills(resume, required_skills, missing, settings)

    if criteria.min_experience > 0:
        results["experience"] = _check_experience(resume, criteria.min_experience, missing)

    if criteria.required_education != "none":
        results["education"] = _check_education(resume, criteria.required_education, missing)

    required_certs = [c for c in criteria.required_certifications if c.strip()]
    if required_certs:
        results["certifications"] = _check_certifications(resume, required_certs, missing, settings)

    keywords = additional_keywords(criteria.additional_requirements)
    if keywords:
        results["additional"] = _check_additional(
            resume, criteria.additional_requirements, keywords, missing, settings
        )

    scores = [r.score for r in results.values() if r.status != "pending"]
    overall = round_score(sum(scores) / len(scores)) if scores else 0
    is_eligible = overall >= settings.pass_score and not missing

    recommendations = []
    if not is_eligible:
        for name in CRITERIA:
            result = results[name]
            if result.status != "pending" and result.score < PASS_THRESHOLDS[name](settings):
                recommendations.append(RECOMMENDATIONS[name])

    return EligibilityReport(
        resume_id=resume.resume_id,
        candidate_name=resume.metadata.name,
        resume_name=resume.original_name,
        overall_score=overall,
        is_eligible=is_eligible,
        criteria=results,
        missing_requirements=missing,
        recommendations=recommendations,
    )
