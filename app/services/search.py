"""
Ad-hoc retrieval over resume chunks.

`ask` scores a resume by the mean similarity of its top-k chunks; `search`
scores it by its single best chunk. The two are kept apart on purpose since
their scores mean different things.
"""
from typing import Any, Dict

from app.services.db import MongoRepository
from app.services.embeddings import Embedder
from app.services.similarity import best_match, top_k
from app.utils.config import MATCHING
from app.utils.exceptions import ValidationError
from app.utils.logging_config import get_logger
from app.utils.utils import to_percent

logger = get_logger(__name__)


def _require_query(query: str, field: str) -> str:
    if not query or not query.strip():
        raise ValidationError("Query is required", field=field)
    return query


async def ask(query: str, k: int, repo: MongoRepository, embedder: Embedder) -> Dict[str, Any]:
    _require_query(query, "query")
    if k <= 0:
        raise ValidationError("k must be positive", field="k", value=k)

    query_vector = await embedder.embed(query)
    resumes = await repo.list_resumes()

    results = []
    for resume in resumes:
        ranked = top_k(query_vector, resume.chunks, k)
        if not ranked:
            continue
        mean = sum(sim for _, sim in ranked) / len(ranked)
        results.append({
            "resume_id": resume.resume_id,
            "resume_name": resume.original_name,
            "candidate_name": resume.metadata.name,
            "score": to_percent(mean),
            "evidence": [
                {
                    "text": chunk.text,
                    "similarity": to_percent(sim),
                    "start_offset": chunk.start_offset,
                    "end_offset": chunk.end_offset,
                }
                for chunk, sim in ranked
            ],
        })

    results.sort(key=lambda r: (-r["score"], r["resume_id"]))
    logger.info(f"ask: {len(results)} of {len(resumes)} resumes had chunks for query of {len(query)} chars")

    return {"query": query, "results": results[:k], "total_found": len(results)}


async def search(query: str, limit: int, offset: int, min_score: int,
                 repo: MongoRepository, embedder: Embedder) -> Dict[str, Any]:
    _require_query(query, "q")
    if limit <= 0 or offset < 0:
        raise ValidationError("limit must be positive and offset non-negative",
                              details={"limit": limit, "offset": offset})

    query_vector = await embedder.embed(query)
    resumes = await repo.list_resumes(limit=limit, offset=offset)
    total_resumes = await repo.count_resumes()

    results = []
    for resume in resumes:
        chunk, similarity = best_match(query_vector, resume.chunks)
        score = to_percent(similarity)
        if score < min_score:
            continue
        results.append({
            "resume_id": resume.resume_id,
            "resume_name": resume.original_name,
            "candidate_name": resume.metadata.name,
            "email": resume.metadata.email,
            "phone": resume.metadata.phone,
            "skills": resume.metadata.skills,
            "experience": resume.metadata.experience,
            "score": score,
            "snippet": chunk.text[:MATCHING.snippet_length] + "..." if chunk else "",
            "match_type": "semantic",
        })

    results.sort(key=lambda r: (-r["score"], r["resume_id"]))

    return {
        "query": query,
        "results": results,
        "pagination": {
            "total": len(results),
            "limit": limit,
            "offset": offset,
            "has_more": offset + limit < total_resumes,
        },
        "min_score": min_score,
    }
