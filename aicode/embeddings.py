"""Embedding client used to index reference chunks and user questions."""

from collections.abc import Sequence

import numpy as np
from openai import AsyncOpenAI

from .config import config

logger = config.get_logger(__name__)


class EmbeddingService:
    """Turns text into vectors through an OpenAI-compatible embeddings API.

    The same client serves OpenAI and Ollama; only ``base_url`` differs.
    Failures are logged and re-raised so the vector store can decide how to
    degrade.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: API key. If None, reads OPENAI_API_KEY.
            model: Embedding model name. If None, uses config.EMBEDDING_MODEL.
            base_url: Endpoint override. If None, uses config.OPENAI_BASE_URL.
        """
        self.client = AsyncOpenAI(
            api_key=api_key or config.get_openai_api_key(),
            base_url=base_url or config.OPENAI_BASE_URL,
            default_headers=config.get_api_headers() or None,
        )
        self.model = model or config.EMBEDDING_MODEL

    async def _create(self, payload: str | list[str]) -> list[np.ndarray]:
        response = await self.client.embeddings.create(
            model=self.model, input=payload
        )
        return [np.array(item.embedding) for item in response.data]

    async def get_embedding(self, text: str) -> np.ndarray:
        """Embed a single question or chunk.

        Returns:
            The embedding vector.
        """
        try:
            (vector,) = await self._create(text)
        except Exception:
            logger.exception("Failed to embed text (%d chars)", len(text))
            raise
        return vector

    async def get_embeddings_batch(
        self,
        texts: Sequence[str],
        batch_size: int = 100,
    ) -> list[np.ndarray]:
        """Embed many chunks, ``batch_size`` texts per request.

        Returns:
            One vector per input text, in input order.

        Raises:
            ValueError: If ``batch_size`` is smaller than one.
        """
        if batch_size < 1:
            msg = f"batch_size must be at least 1, got {batch_size}"
            raise ValueError(msg)

        vectors: list[np.ndarray] = []
        for start in range(0, len(texts), batch_size):
            batch = list(texts[start : start + batch_size])
            try:
                vectors.extend(await self._create(batch))
            except Exception:
                logger.exception(
                    "Failed to embed chunks %d-%d of %d",
                    start + 1,
                    start + len(batch),
                    len(texts),
                )
                raise
            logger.info("Embedded %d/%d chunks", len(vectors), len(texts))
        return vectors
