from typing import List

from app.models.models import EmbeddedChunk
from app.services.chunking import chunk_text
from app.services.embeddings import Embedder
from app.utils.exceptions import ExceptionContext
from app.utils.logging_config import get_logger

logger = get_logger(__name__)


def job_full_text(description: str, requirements: str) -> str:
    return f"{description}\n\nRequirements:\n{requirements}"


async def build_chunks(text: str, embedder: Embedder, document_id: str = None) -> List[EmbeddedChunk]:
    """
    Chunk `text` and embed every chunk.

    Any embedder failure propagates: a document is stored fully embedded or
    not at all.
    """
    with ExceptionContext("build_chunks", logger=logger, document_id=document_id):
        chunks = chunk_text(text)
        vectors = await embedder.embed_all([c.text for c in chunks])
        embedded = [
            EmbeddedChunk(**chunk.model_dump(), embedding=vector)
            for chunk, vector in zip(chunks, vectors)
        ]
    logger.debug(f"Built {len(embedded)} chunks for document {document_id}")
    return embedded
