import math
import re
from typing import List, Optional

import requests

from app.utils.config import OLLAMA, EMBED_MODEL, EMBED_TIMEOUT

YEARS_RE = re.compile(r"(\d+)\+?\s*years?", re.IGNORECASE)


def ollama_embed(text: str, model: str = None, base_url: str = None, timeout: int = None) -> List[float]:
    url = f"{base_url or OLLAMA}/api/embeddings"
    resp = requests.post(
        url,
        json={"model": model or EMBED_MODEL, "prompt": text},
        timeout=timeout or EMBED_TIMEOUT,
    )
    resp.raise_for_status()
    return resp.json().get("embedding") or []


def round_score(value: float) -> int:
    """Round half away from zero, the way scores are reported."""
    if value != value:  # NaN
        return 0
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def to_percent(value: float) -> int:
    """Similarity in [-1, 1] -> integer score clamped to [0, 100]."""
    return max(0, min(100, round_score(value * 100)))


def extract_years(text: Optional[str]) -> Optional[int]:
    """'3+ years of Python' -> 3; None when no 'N years' phrase is present."""
    if not text:
        return None
    match = YEARS_RE.search(text)
    return int(match.group(1)) if match else None


def contains_either_way(needle: str, haystack: List[str]) -> bool:
    """Case-insensitive substring match in either direction against any entry."""
    n = needle.lower().strip()
    for item in haystack:
        h = item.lower().strip()
        if n in h or h in n:
            return True
    return False
