"""
Pattern-based metadata extraction and PII redaction for resume text.
"""
import re
from typing import Any, Dict, List, Optional

from app.helpers.parsing import clean_text
from app.models.models import DocumentMetadata
from app.utils.exceptions import ValidationError

PII_PATTERNS = {
    "email": re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
    "phone": re.compile(r"(\+?1[-.\s]?)?\(?[0-9]{3}\)?[-.\s]?[0-9]{3}[-.\s]?[0-9]{4}"),
    "ssn": re.compile(r"\b\d{3}-?\d{2}-?\d{4}\b"),
    "credit_card": re.compile(r"\b\d{4}[-.\s]?\d{4}[-.\s]?\d{4}[-.\s]?\d{4}\b"),
    "address": re.compile(
        r"\d+\s+[A-Za-z0-9\s,.-]+(?:Street|St|Avenue|Ave|Road|Rd|Boulevard|Blvd|Lane|Ln|Drive|Dr)\b",
        re.IGNORECASE,
    ),
}

REPLACEMENTS = {
    "email": "[EMAIL]",
    "phone": "[PHONE]",
    "ssn": "[SSN]",
    "credit_card": "[CARD]",
    "address": "[ADDRESS]",
}

# card numbers before phones, otherwise a card's digits are eaten as phone numbers
REDACTION_LEVELS = {
    "minimal": ["credit_card", "ssn"],
    "standard": ["email", "credit_card", "phone", "ssn"],
    "aggressive": ["email", "credit_card", "phone", "ssn", "address"],
}

SKILL_KEYWORDS = [
    "javascript", "python", "java", "react", "node.js", "mongodb", "sql",
    "aws", "docker", "kubernetes", "git", "html", "css", "typescript",
    "angular", "vue", "express", "django", "flask", "spring", "mysql",
    "postgresql", "redis", "elasticsearch", "machine learning", "ai",
    "data science", "analytics", "project management", "agile", "scrum",
]

EDUCATION_KEYWORDS = [
    "bachelor", "master", "phd", "degree", "university", "college",
    "certification", "certificate", "diploma",
]

EXPERIENCE_RE = re.compile(r"(\d+)\+?\s*(?:years?|yrs?)\s*(?:of\s*)?(?:experience|exp)", re.IGNORECASE)
SENTENCE_SPLIT = re.compile(r"[.!?]+")
NAME_LINE = re.compile(r"^[A-Z][a-zA-Z'\-]+(?:\s+[A-Z][a-zA-Z'\-]+){1,3}$")


def _has_word(text: str, word: str) -> bool:
    return re.search(rf"(?<![a-z0-9]){re.escape(word)}(?![a-z0-9])", text) is not None


def guess_name(text: str) -> Optional[str]:
    """First short line made only of capitalised words, e.g. 'Jane Q Doe'."""
    for line in text.splitlines()[:10]:
        line = line.strip()
        if NAME_LINE.match(line):
            return line
    return None


def generate_summary(text: str) -> str:
    sentences = [clean_text(s) for s in SENTENCE_SPLIT.split(text) if len(s.strip()) > 10]
    if not sentences:
        return ""
    return ". ".join(sentences[:3]) + "."


def extract_metadata(text: str) -> DocumentMetadata:
    lower = text.lower()

    emails = PII_PATTERNS["email"].findall(text)
    phones = [m.group(0) for m in PII_PATTERNS["phone"].finditer(text)]

    skills = [s for s in SKILL_KEYWORDS if _has_word(lower, s)]

    education: List[str] = []
    sentences = SENTENCE_SPLIT.split(text)
    for keyword in EDUCATION_KEYWORDS:
        if keyword not in lower:
            continue
        for sentence in sentences:
            cleaned = clean_text(sentence)
            if keyword in cleaned.lower() and cleaned not in education:
                education.append(cleaned)

    years = [int(m) for m in EXPERIENCE_RE.findall(text)]

    return DocumentMetadata(
        name=guess_name(text),
        email=emails[0] if emails else None,
        phone=phones[0] if phones else None,
        skills=skills,
        education=education,
        experience=max(years) if years else 0,
        summary=generate_summary(text),
    )


def redact_pii(text: str, level: str = "standard", name: Optional[str] = None) -> Dict[str, Any]:
    """
    Replace PII in `text` with placeholder tokens.

    minimal: SSNs and card numbers. standard: adds emails and phone numbers.
    aggressive: adds street addresses and the candidate name, if given.
    """
    if level not in REDACTION_LEVELS:
        raise ValidationError(f"Unknown redaction level '{level}'", field="level", value=level)

    redactions: List[Dict[str, Any]] = []
    redacted = text

    for kind in REDACTION_LEVELS[level]:
        replacement = REPLACEMENTS[kind]

        def _sub(match, kind=kind, replacement=replacement):
            redactions.append({"type": kind, "original": match.group(0),
                               "replacement": replacement, "position": match.start()})
            return replacement

        redacted = PII_PATTERNS[kind].sub(_sub, redacted)

    if level == "aggressive" and name and len(name) > 2:
        if name in redacted:
            redactions.append({"type": "name", "original": name, "replacement": "[NAME]",
                               "position": redacted.find(name)})
            redacted = redacted.replace(name, "[NAME]")

    return {"text": redacted, "redactions": redactions, "redaction_level": level}
