"""SQLite-backed vector storage with JSON-encoded embeddings."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np

from aicode.config import config
from aicode.models import DocumentChunk
from aicode.vector_store.base import BaseVectorStore

if TYPE_CHECKING:
    from aicode.embeddings import EmbeddingService

logger = config.get_logger(__name__)

MEMORY_DATABASE = ":memory:"


class SQLiteVectorStore(BaseVectorStore):
    """Vector storage keeping content, metadata and embeddings in one table.

    If the database file cannot be opened or initialized, the store falls back
    to an in-memory SQLite database; callers see the same behaviour either way,
    minus persistence.
    """

    backend = "sqlite"

    def __init__(
        self,
        embedding_service: EmbeddingService,
        db_path: Path | str = Path("data/vectors.db"),
    ) -> None:
        """Initialize the store and ensure the schema exists.

        Args:
            embedding_service: Service used to embed documents and queries.
            db_path: Path to the SQLite database file.
        """
        super().__init__(embedding_service)
        self.db_path = Path(db_path)
        self.persistent = True
        self._conn: sqlite3.Connection | None = None

        try:
            self.db_path.parent.mkdir(exist_ok=True, parents=True)
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._create_tables()
        except (OSError, sqlite3.Error):
            logger.exception("Failed to initialize vector database %s", self.db_path)
            if self._conn is not None:
                self._conn.close()
            self._conn = sqlite3.connect(MEMORY_DATABASE, check_same_thread=False)
            self._create_tables()
            self.persistent = False
            logger.warning("Using in-memory database as fallback")

        logger.info("Vector database initialized with %d documents", self.count())

    def _create_tables(self) -> None:
        """Create the documents table and its index if they don't exist."""
        with self._conn:
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    content TEXT NOT NULL,
                    metadata TEXT,
                    embedding TEXT NOT NULL,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
            """)
            self._conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_documents_created_at "
                "ON documents(created_at)"
            )

    def _insert(self, chunks: list[DocumentChunk]) -> None:
        rows = []
        for chunk in chunks:
            if chunk.embedding is None:
                logger.warning(
                    "Skipping chunk %s without embedding",
                    chunk.metadata.get("chunk_id"),
                )
                continue
            rows.append((
                chunk.content,
                json.dumps(chunk.metadata, ensure_ascii=False, default=str),
                json.dumps(np.asarray(chunk.embedding, dtype=float).tolist()),
            ))

        with self._conn:
            self._conn.executemany(
                "INSERT INTO documents (content, metadata, embedding) VALUES (?, ?, ?)",
                rows,
            )

    def _records(self) -> list[DocumentChunk]:
        cursor = self._conn.execute(
            "SELECT id, content, metadata, embedding, created_at "
            "FROM documents ORDER BY id"
        )
        return [self._build_chunk_from_row(row) for row in cursor.fetchall()]

    @staticmethod
    def _build_chunk_from_row(row: tuple) -> DocumentChunk:
        """Create a DocumentChunk from a table row.

        Returns:
            DocumentChunk hydrated with metadata and embedding.
        """
        row_id, content, metadata_json, embedding_json, created_at = row
        metadata = json.loads(metadata_json or "{}")
        metadata.setdefault("row_id", row_id)
        metadata.setdefault("created_at", created_at)
        return DocumentChunk(
            content=content,
            metadata=metadata,
            embedding=np.array(json.loads(embedding_json), dtype=float),
        )

    def count(self) -> int:
        (total,) = self._conn.execute("SELECT COUNT(*) FROM documents").fetchone()
        return int(total)

    def clear(self) -> None:
        with self._conn:
            self._conn.execute("DELETE FROM documents")
        logger.info("Vector store cleared")

    def close(self) -> None:
        self._conn.close()
