"""
Embedding backends.

Every backend maps a text to a unit-length vector of a fixed dimension and is
deterministic for a given text. `HashEmbedder` is the built-in fallback;
`OllamaEmbedder` calls a local Ollama server.
"""
import asyncio
import math
from typing import List, Sequence

import numpy as np
import requests

from app.utils.config import EMBEDDING_BACKEND, EMBEDDING_DIMENSION, EMBED_MODEL, OLLAMA
from app.utils.exceptions import (
    ComputationError,
    ConfigurationError,
    DimensionMismatchError,
    ExternalServiceError,
    retry_with_logging,
)
from app.utils.logging_config import get_logger
from app.utils.utils import ollama_embed

logger = get_logger(__name__)


def _normalize(vec: np.ndarray) -> List[float]:
    norm = float(np.linalg.norm(vec))
    if norm == 0.0:
        return vec.astype(np.float64).tolist()
    return (vec / norm).astype(np.float64).tolist()


def _string_hash(text: str) -> int:
    """32-bit signed rolling hash (h * 31 + c)."""
    h = 0
    for ch in text:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    return h - 0x100000000 if h & 0x80000000 else h


class Embedder:
    """Base class for embedding backends."""

    name = "base"

    def __init__(self, dimension: int = EMBEDDING_DIMENSION):
        if dimension <= 0:
            raise ConfigurationError("Embedding dimension must be positive",
                                     config_key="EMBEDDING_DIMENSION", config_value=dimension)
        self.dimension = dimension

    async def embed(self, text: str) -> List[float]:
        raise NotImplementedError

    async def embed_all(self, texts: Sequence[str]) -> List[List[float]]:
        """Embed every text concurrently; output order matches input order."""
        vectors = await asyncio.gather(*(self.embed(t) for t in texts))
        return [self._check(v) for v in vectors]

    def _check(self, vector: List[float]) -> List[float]:
        if len(vector) != self.dimension:
            raise DimensionMismatchError(
                f"{self.name} embedder returned a vector of length {len(vector)}",
                expected=self.dimension, actual=len(vector), backend=self.name,
            )
        if not all(math.isfinite(x) for x in vector):
            raise ComputationError(f"{self.name} embedder returned non-finite values", backend=self.name)
        return vector


class HashEmbedder(Embedder):
    """
    Content-hash embedding used when no model is configured.

    Component i is 0.5*sin(hash + i) plus 0.1*sin(ord(word[0]) + i + position)
    for every word, then the vector is scaled to unit length. Not semantic,
    but stable across runs and processes.
    """

    name = "hash"

    def embed_sync(self, text: str) -> List[float]:
        lowered = text.lower()
        idx = np.arange(self.dimension, dtype=np.float64)
        vec = 0.5 * np.sin(_string_hash(lowered) + idx)

        words = lowered.split()
        if words:
            firsts = np.array([ord(w[0]) for w in words], dtype=np.float64)
            positions = np.arange(len(words), dtype=np.float64)
            phases = (firsts + positions)[:, None] + idx[None, :]
            vec = vec + 0.1 * np.sin(phases).sum(axis=0)

        return _normalize(vec)

    async def embed(self, text: str) -> List[float]:
        return self.embed_sync(text)


class OllamaEmbedder(Embedder):
    """Embeddings from an Ollama server (e.g. nomic-embed-text, 768 dims)."""

    name = "ollama"

    def __init__(self, dimension: int = EMBEDDING_DIMENSION, model: str = EMBED_MODEL, base_url: str = OLLAMA):
        super().__init__(dimension)
        self.model = model
        self.base_url = base_url

    @retry_with_logging(max_attempts=3, backoff_factor=0.5,
                        exceptions=(requests.ConnectionError, requests.Timeout), logger=logger)
    async def _request(self, text: str) -> List[float]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: ollama_embed(text, model=self.model, base_url=self.base_url))

    async def embed(self, text: str) -> List[float]:
        try:
            raw = await self._request(text)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise ExternalServiceError(f"Ollama answered with an error: {e}", service_name=self.name,
                                       upstream_status=status, cause=e) from e
        except requests.RequestException as e:
            raise ComputationError(f"Ollama embedding request failed: {e}", backend=self.name, cause=e) from e
        except (KeyError, ValueError) as e:
            raise ComputationError(f"Malformed Ollama embedding response: {e}", backend=self.name, cause=e) from e
        return _normalize(np.asarray(raw, dtype=np.float64))


EMBEDDERS = {
    HashEmbedder.name: HashEmbedder,
    OllamaEmbedder.name: OllamaEmbedder,
}


def get_embedder() -> Embedder:
    """FastAPI dependency: the configured embedding backend."""
    backend = EMBEDDERS.get(EMBEDDING_BACKEND)
    if backend is None:
        raise ConfigurationError(f"Unknown embedding backend '{EMBEDDING_BACKEND}'",
                                 config_key="EMBEDDING_BACKEND", config_value=EMBEDDING_BACKEND)
    return backend()
