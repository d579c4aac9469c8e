"""List-backed vector store."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import BaseVectorStore

if TYPE_CHECKING:
    from aicode.embeddings import EmbeddingService
    from aicode.models import DocumentChunk


class InMemoryVectorStore(BaseVectorStore):
    """Keeps embedded chunks in process memory only."""

    backend = "memory"

    def __init__(self, embedding_service: EmbeddingService) -> None:
        super().__init__(embedding_service)
        self.chunks: list[DocumentChunk] = []

    def _insert(self, chunks: list[DocumentChunk]) -> None:
        self.chunks.extend(chunks)

    def _records(self) -> list[DocumentChunk]:
        return list(self.chunks)

    def count(self) -> int:
        return len(self.chunks)

    def clear(self) -> None:
        self.chunks = []
