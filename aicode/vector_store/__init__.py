"""Vector store adapters and factory."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from aicode.config import config

from .base import BaseVectorStore, cosine_similarity
from .memory_store import InMemoryVectorStore
from .sqlite_store import SQLiteVectorStore

if TYPE_CHECKING:
    from pathlib import Path

    from aicode.embeddings import EmbeddingService

VectorBackend = Literal["sqlite", "memory"]


def get_vector_store(
    store: VectorBackend,
    embedding_service: EmbeddingService,
    *,
    db_path: Path | None = None,
) -> BaseVectorStore:
    """Return a configured vector store instance.

    Raises:
        ValueError: If an unsupported backend is requested.
    """
    backend = store.lower()

    if backend == "sqlite":
        return SQLiteVectorStore(
            embedding_service,
            db_path=db_path if db_path is not None else config.VECTOR_STORE_DB_PATH,
        )

    if backend == "memory":
        return InMemoryVectorStore(embedding_service)

    msg = f"Unsupported vector store backend: {store}"
    raise ValueError(msg)


__all__ = [
    "BaseVectorStore",
    "InMemoryVectorStore",
    "SQLiteVectorStore",
    "VectorBackend",
    "cosine_similarity",
    "get_vector_store",
]
