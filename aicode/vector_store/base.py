"""Shared scoring and search logic for vector stores."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import numpy as np

from aicode.config import config

if TYPE_CHECKING:
    from collections.abc import Sequence

    from aicode.embeddings import EmbeddingService
    from aicode.models import DocumentChunk

DEFAULT_MAX_RESULTS = 5
DEFAULT_MIN_SCORE = 0.75

logger = config.get_logger(__name__)


def cosine_similarity(
    a: Sequence[float] | np.ndarray,
    b: Sequence[float] | np.ndarray,
) -> float:
    """Cosine similarity of two vectors.

    A zero vector or a dimension mismatch scores 0.0 rather than raising, so a
    store indexed with a different embedding model silently stops matching.

    Returns:
        Similarity in [-1.0, 1.0].
    """
    vec_a = np.asarray(a, dtype=np.float64).ravel()
    vec_b = np.asarray(b, dtype=np.float64).ravel()
    if vec_a.shape != vec_b.shape:
        return 0.0

    norm_a = float(np.linalg.norm(vec_a))
    norm_b = float(np.linalg.norm(vec_b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    return float(np.dot(vec_a, vec_b) / (norm_a * norm_b))


class BaseVectorStore(ABC):
    """Embeds chunks on insert and answers queries with a linear cosine scan."""

    backend = "base"

    def __init__(self, embedding_service: EmbeddingService) -> None:
        self.embedding_service = embedding_service

    @abstractmethod
    def _insert(self, chunks: list[DocumentChunk]) -> None:
        """Persist chunks that already carry embeddings."""

    @abstractmethod
    def _records(self) -> list[DocumentChunk]:
        """Return every stored chunk with its embedding."""

    @abstractmethod
    def count(self) -> int:
        """Return the number of stored chunks."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every stored chunk."""

    async def add_documents(self, chunks: list[DocumentChunk]) -> None:
        """Embed chunk contents and store them.

        Embedding failures propagate so that ingestion can report them.
        """
        if not chunks:
            return

        embeddings = await self.embedding_service.get_embeddings_batch(
            [chunk.content for chunk in chunks]
        )
        for chunk, embedding in zip(chunks, embeddings, strict=True):
            chunk.embedding = embedding

        self._insert(chunks)
        logger.info("Added %d chunks to %s vector store", len(chunks), self.backend)

    async def similarity_search_with_score(
        self,
        query: str,
        k: int = DEFAULT_MAX_RESULTS,
    ) -> list[tuple[DocumentChunk, float]]:
        """Return the top-k chunks with their scores, unfiltered.

        Returns:
            Pairs sorted by descending similarity; empty on any failure.
        """
        if k <= 0:
            return []

        try:
            records = self._records()
            if not records:
                return []
            query_embedding = await self.embedding_service.get_embedding(query)
        except Exception:
            logger.exception("Similarity search failed for query: %.50s", query)
            return []

        scored = [
            (chunk, cosine_similarity(query_embedding, chunk.embedding))
            for chunk in records
            if chunk.embedding is not None
        ]
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored[:k]

    async def similarity_search(
        self,
        query: str,
        k: int = DEFAULT_MAX_RESULTS,
        min_score: float = DEFAULT_MIN_SCORE,
    ) -> list[DocumentChunk]:
        """Return at most k chunks scoring at least ``min_score``.

        Returns:
            Chunks sorted by descending similarity.
        """
        results = [
            chunk
            for chunk, score in await self.similarity_search_with_score(query, k)
            if score >= min_score
        ]
        logger.debug(
            "Found %d documents for query: %.50s", len(results), query
        )
        return results
