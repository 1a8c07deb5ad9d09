from typing import List, Optional, Sequence, Tuple

import numpy as np

from app.models.models import EmbeddedChunk


def cosine(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity in [-1, 1].

    Vectors of different length, or with a zero norm, compare as 0.0
    rather than raising.
    """
    if len(a) != len(b) or len(a) == 0:
        return 0.0
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    den = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if den == 0.0:
        return 0.0
    return max(-1.0, min(1.0, float(np.dot(va, vb)) / den))


def top_k(query: Sequence[float], candidates: Sequence[EmbeddedChunk], k: int) -> List[Tuple[EmbeddedChunk, float]]:
    """The k most similar candidates, best first; ties keep candidate order."""
    if k <= 0:
        return []
    scored = [(chunk, cosine(query, chunk.embedding)) for chunk in candidates]
    # sorted() is stable, so equal similarities stay in input order
    scored = sorted(scored, key=lambda pair: pair[1], reverse=True)
    return scored[:k]


def best_match(query: Sequence[float], candidates: Sequence[EmbeddedChunk]) -> Tuple[Optional[EmbeddedChunk], float]:
    """The single candidate with the highest positive similarity, or (None, 0.0)."""
    best_chunk, best_sim = None, 0.0
    for chunk in candidates:
        sim = cosine(query, chunk.embedding)
        if sim > best_sim:
            best_chunk, best_sim = chunk, sim
    return best_chunk, best_sim
