"""Reference document loading and recursive text splitting."""

from collections.abc import Sequence
from pathlib import Path
from typing import Any

from langchain_text_splitters import RecursiveCharacterTextSplitter

from .config import config
from .models import DocumentChunk

logger = config.get_logger(__name__)

SUPPORTED_EXTENSIONS = frozenset({".md", ".txt"})
DEFAULT_SEPARATORS = ("\n\n", "\n", ". ", " ", "")

LoadedDocument = tuple[str, dict[str, Any]]


class DocumentLoader:
    """Handles loading of markdown and plain text reference documents."""

    @staticmethod
    def load_txt(file_path: Path) -> str:
        """Load text content from a UTF-8 file.

        Returns:
            The file content as a string.
        """
        try:
            with file_path.open(encoding="utf-8") as file:
                text = file.read()
            logger.debug("Loaded document: %s", file_path.name)
        except Exception:
            logger.exception("Error loading %s", file_path)
            raise
        else:
            return text

    @classmethod
    def load_directory(cls, directory: Path) -> list[LoadedDocument]:
        """Load every supported file directly under ``directory``.

        Sub-directories are not descended into. Files that cannot be read are
        logged and skipped.

        Returns:
            (text, metadata) pairs with ``source`` and ``file_name`` metadata.
        """
        directory = Path(directory)
        if not directory.is_dir():
            logger.warning("Documents path not found: %s", directory)
            return []

        documents: list[LoadedDocument] = []
        for file_path in sorted(directory.iterdir()):
            if not file_path.is_file():
                continue
            if file_path.suffix.lower() not in SUPPORTED_EXTENSIONS:
                continue
            try:
                text = cls.load_txt(file_path)
            except (OSError, UnicodeDecodeError):
                continue
            documents.append(
                (text, {"source": str(file_path), "file_name": file_path.name})
            )

        return documents


class RecursiveTextSplitter:
    """Splits text on the largest structural boundary that fits.

    Blank lines are tried first, then line breaks, sentence ends and spaces;
    only text with none of these is cut at the size limit. Separators stay
    attached to the end of the piece they close, so every chunk is a verbatim
    slice of the source text.
    """

    def __init__(
        self,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        separators: Sequence[str] = DEFAULT_SEPARATORS,
    ) -> None:
        """Initialize the splitter.

        Args:
            chunk_size: Maximum characters per chunk.
            chunk_overlap: Characters shared between consecutive chunks.
            separators: Boundaries to try, largest first.

        Raises:
            ValueError: If the sizes are inconsistent.
        """
        if chunk_size <= 0:
            msg = f"chunk_size must be positive, got {chunk_size}"
            raise ValueError(msg)
        if not 0 <= chunk_overlap < chunk_size:
            msg = (
                f"chunk_overlap ({chunk_overlap}) must be non-negative and "
                f"smaller than chunk_size ({chunk_size})"
            )
            raise ValueError(msg)
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.separators = list(separators)
        self.text_splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            separators=self.separators,
            keep_separator="end",
        )

    def split_text(self, text: str) -> list[str]:
        """Split text into overlapping chunks.

        Returns:
            Non-empty chunks no longer than ``chunk_size`` characters.
        """
        return self.text_splitter.split_text(text)

    def split_documents(self, documents: list[LoadedDocument]) -> list[DocumentChunk]:
        """Split loaded documents into chunks prefixed with their file name.

        Returns:
            DocumentChunk list; each content starts with ``"<file_name>\\n"``.
        """
        chunks: list[DocumentChunk] = []
        for text, metadata in documents:
            file_name = metadata.get("file_name", "unknown")
            for chunk_id, piece in enumerate(self.split_text(text)):
                chunks.append(
                    DocumentChunk(
                        content=f"{file_name}\n{piece}",
                        metadata={**metadata, "chunk_id": chunk_id},
                    )
                )

        logger.info(
            "Split %d documents into %d chunks", len(documents), len(chunks)
        )
        return chunks
