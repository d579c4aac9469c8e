"""Retrieval pipeline: Load -> Split -> Embed -> Store, and Query."""

from pathlib import Path

from .config import config
from .document_processing import DocumentLoader, RecursiveTextSplitter
from .models import DocumentChunk
from .vector_store import BaseVectorStore

logger = config.get_logger(__name__)

CONTEXT_HEADER = "\n\nReference material:\n"
CONTEXT_SEPARATOR = "\n---\n"


class RAGPipeline:
    """Feeds reference documents into a vector store and retrieves from it."""

    def __init__(
        self,
        vector_store: BaseVectorStore,
        splitter: RecursiveTextSplitter | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            vector_store: Store holding the embedded chunks.
            splitter: Text splitter. If None, uses config.CHUNK_SIZE and
                config.CHUNK_OVERLAP.
        """
        self.vector_store = vector_store
        self.splitter = splitter or RecursiveTextSplitter(
            chunk_size=config.CHUNK_SIZE,
            chunk_overlap=config.CHUNK_OVERLAP,
        )

    async def load_from_directory(self, directory: Path) -> int:
        """Load, split and store every reference document in ``directory``.

        Returns:
            Number of chunks stored; 0 when the directory is missing or empty.
        """
        documents = DocumentLoader.load_directory(directory)
        if not documents:
            logger.warning("No documents found for RAG in %s", directory)
            return 0

        chunks = self.splitter.split_documents(documents)
        await self.vector_store.add_documents(chunks)

        logger.info(
            "Loaded %d chunks from %d documents", len(chunks), len(documents)
        )
        return len(chunks)

    async def ensure_loaded(self, directory: Path) -> int:
        """Ingest ``directory`` only when the store holds nothing yet.

        Ingestion failures are logged; the assistant then answers without
        reference material.

        Returns:
            Number of chunks added by this call.
        """
        existing = self.vector_store.count()
        if existing:
            logger.info(
                "Vector store already holds %d chunks, skipping ingest", existing
            )
            return 0
        try:
            return await self.load_from_directory(directory)
        except Exception:
            logger.exception("Failed to initialize RAG from %s", directory)
            return 0

    async def retrieve(
        self,
        query: str,
        max_results: int | None = None,
        min_score: float | None = None,
    ) -> list[DocumentChunk]:
        """Retrieve chunks relevant to ``query``.

        Returns:
            Chunks scoring at least ``min_score``, best first.
        """
        if max_results is None:
            max_results = config.RAG_MAX_RESULTS
        if min_score is None:
            min_score = config.RAG_MIN_SCORE

        chunks = await self.vector_store.similarity_search(
            query, k=max_results, min_score=min_score
        )
        logger.debug("Retrieved %d documents for query: %.50s", len(chunks), query)
        return chunks

    async def retrieve_with_scores(
        self,
        query: str,
        max_results: int | None = None,
    ) -> list[tuple[DocumentChunk, float]]:
        if max_results is None:
            max_results = config.RAG_MAX_RESULTS
        return await self.vector_store.similarity_search_with_score(
            query, k=max_results
        )

    @staticmethod
    def format_context(chunks: list[DocumentChunk]) -> str:
        """Build the reference block appended to the system prompt.

        Returns:
            Empty string when there are no chunks.
        """
        if not chunks:
            return ""
        return CONTEXT_HEADER + CONTEXT_SEPARATOR.join(
            chunk.content for chunk in chunks
        )

    @staticmethod
    def sources(chunks: list[DocumentChunk]) -> list[str]:
        return [
            chunk.metadata.get("source") or chunk.metadata.get("file_name") or "unknown"
            for chunk in chunks
        ]
