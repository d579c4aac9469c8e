"""Test configuration and fixtures for AiCode tests.

This module provides reusable test fixtures organized by functionality:
- Constants and test data
- Mock embedding service and scripted chat model
- Vector store and pipeline fixtures
- Tool registry fixtures
- Service factories
"""

import hashlib
from collections.abc import Sequence
from typing import Any
from unittest.mock import Mock

import numpy as np
import pytest

from aicode.chat_model import ModelReply
from aicode.document_processing import RecursiveTextSplitter
from aicode.guardrail import SafeInputGuardrail
from aicode.listeners import ChatModelListener, ChatModelListenerService
from aicode.memory import ChatMemory
from aicode.models import DocumentChunk, ToolDefinition
from aicode.pipeline import RAGPipeline
from aicode.service import AiCodeService
from aicode.tools import KeywordToolSelector, ToolRegistry
from aicode.vector_store import InMemoryVectorStore, SQLiteVectorStore


class TestConstants:
    """Centralized test constants shared across test files."""

    DEFAULT_EMBEDDING_DIMENSION = 64

    SMALL_CHUNK_SIZE = 100
    SMALL_CHUNK_OVERLAP = 20

    SYSTEM_PROMPT = "You are a test assistant."
    FAKE_MODEL_NAME = "fake-model"


class MockEmbeddingService:
    """Mock embedding service for testing without API calls.

    Generates deterministic embeddings based on text content hash, so the same
    text always scores 1.0 against itself and unrelated texts score near 0.
    """

    def __init__(
        self, dimension: int = TestConstants.DEFAULT_EMBEDDING_DIMENSION
    ) -> None:
        self.dimension = dimension
        self.calls = 0

    def embed(self, text: str) -> np.ndarray:
        """Generate deterministic mock embedding based on text hash."""
        seed = int.from_bytes(
            hashlib.sha256(text.lower().encode("utf-8")).digest()[:8],
            byteorder="big",
            signed=False,
        )
        rng = np.random.default_rng(seed)
        embedding = rng.normal(0, 1, self.dimension)
        return (embedding / np.linalg.norm(embedding)).astype(np.float32)

    async def get_embedding(self, text: str) -> np.ndarray:
        self.calls += 1
        return self.embed(text)

    async def get_embeddings_batch(
        self, texts: list[str], batch_size: int = 100
    ) -> list[np.ndarray]:
        self.calls += 1
        return [self.embed(text) for text in texts]


class FakeChatModel:
    """Scripted chat model.

    ``replies`` are returned by ``invoke`` in order (strings are wrapped in a
    ModelReply); ``fragments`` are yielded by ``stream``, followed by
    ``stream_error`` when one is given.
    """

    def __init__(
        self,
        replies: Sequence[ModelReply | str] = (),
        fragments: Sequence[str] = (),
        *,
        error: Exception | None = None,
        stream_error: Exception | None = None,
        supports_tools: bool = True,
    ) -> None:
        self.name = TestConstants.FAKE_MODEL_NAME
        self.supports_tools = supports_tools
        self.replies = list(replies)
        self.fragments = list(fragments)
        self.error = error
        self.stream_error = stream_error
        self.calls: list[dict[str, Any]] = []
        self.stream_calls: list[list[dict[str, Any]]] = []

    async def invoke(self, messages, tools=None) -> ModelReply:
        self.calls.append({"messages": list(messages), "tools": tools})
        if self.error is not None:
            raise self.error
        reply = self.replies.pop(0) if self.replies else "ok"
        return reply if isinstance(reply, ModelReply) else ModelReply(content=reply)

    async def stream(self, messages):
        self.stream_calls.append(list(messages))
        for fragment in self.fragments:
            yield fragment
        if self.stream_error is not None:
            raise self.stream_error


class RecordingListener(ChatModelListener):
    """Listener keeping every event as ``(kind, context)``."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def on_request(self, context) -> None:
        self.events.append(("request", context))

    def on_response(self, context) -> None:
        self.events.append(("response", context))

    def on_error(self, context) -> None:
        self.events.append(("error", context))

    def kinds(self) -> list[str]:
        return [kind for kind, _ in self.events]


def create_mock_chat_response(
    content: str | None, tool_calls: list | None = None, usage: Mock | None = None
) -> Mock:
    """Create a mock OpenAI chat completion response.

    Returns:
        Mock object shaped like a chat completions API response.
    """
    mock_response = Mock()
    mock_response.choices = [
        Mock(message=Mock(content=content, tool_calls=tool_calls or []))
    ]
    mock_response.usage = usage
    return mock_response


def create_mock_openai_response(embeddings: list[list[float]]) -> Mock:
    """Create a mock OpenAI embeddings API response.

    Returns:
        Mock object representing OpenAI embeddings API response.
    """
    mock_response = Mock()
    mock_response.data = [Mock(embedding=emb) for emb in embeddings]
    return mock_response


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def mock_embedding_service():
    """Pre-configured MockEmbeddingService for consistent test embeddings."""
    return MockEmbeddingService()


@pytest.fixture
def memory_vector_store(mock_embedding_service) -> InMemoryVectorStore:
    return InMemoryVectorStore(mock_embedding_service)


@pytest.fixture
def sqlite_vector_store(tmp_path, mock_embedding_service):
    """Temporary SQLite vector store for testing."""
    store = SQLiteVectorStore(mock_embedding_service, db_path=tmp_path / "vectors.db")
    yield store
    store.close()


@pytest.fixture
def small_splitter() -> RecursiveTextSplitter:
    return RecursiveTextSplitter(
        chunk_size=TestConstants.SMALL_CHUNK_SIZE,
        chunk_overlap=TestConstants.SMALL_CHUNK_OVERLAP,
    )


@pytest.fixture
def rag_pipeline(memory_vector_store, small_splitter) -> RAGPipeline:
    return RAGPipeline(memory_vector_store, splitter=small_splitter)


@pytest.fixture
def sample_text_chunks():
    """Sample document chunks with text and metadata only (no embeddings)."""
    texts = [
        "Python is a good first programming language.",
        "Binary search runs in logarithmic time.",
        "Hash tables give constant time lookups on average.",
        "TCP uses a three-way handshake to open a connection.",
        "Keep your resume to a single page.",
    ]
    return [
        DocumentChunk(
            content=text,
            metadata={"source": f"docs/doc_{i}.md", "file_name": f"doc_{i}.md"},
        )
        for i, text in enumerate(texts)
    ]


@pytest.fixture
def docs_dir(tmp_path):
    """Directory with two small reference documents."""
    directory = tmp_path / "docs"
    directory.mkdir()
    (directory / "algorithms.md").write_text(
        "Binary search halves the search space on every step.", encoding="utf-8"
    )
    (directory / "resume.txt").write_text(
        "Lead every resume bullet with a measurable result.", encoding="utf-8"
    )
    return directory


@pytest.fixture
def chat_model_factory():
    """Factory for scripted FakeChatModel instances."""

    def _create_model(
        replies: Sequence[ModelReply | str] = (),
        fragments: Sequence[str] = (),
        **kwargs: Any,
    ) -> FakeChatModel:
        return FakeChatModel(replies, fragments, **kwargs)

    return _create_model


@pytest.fixture
def mock_chat_response():
    """Factory for OpenAI chat completion response mocks."""
    return create_mock_chat_response


@pytest.fixture
def mock_embeddings_response():
    """Factory for OpenAI embeddings response mocks."""
    return create_mock_openai_response


@pytest.fixture
def recording_listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def listener_service(recording_listener) -> ChatModelListenerService:
    service = ChatModelListenerService(ttl_seconds=600, include_default=False)
    service.add_listener(recording_listener)
    return service


@pytest.fixture
def echo_tool_registry() -> ToolRegistry:
    """Registry holding an echo tool and a tool that always fails."""
    registry = ToolRegistry()

    async def echo(text: str) -> str:
        return f"echo: {text}"

    async def broken(text: str) -> str:
        msg = "tool exploded"
        raise RuntimeError(msg)

    schema = {
        "type": "object",
        "properties": {"text": {"type": "string"}},
        "required": ["text"],
    }
    registry.register(ToolDefinition("echo", "Echo the text back", schema), echo)
    registry.register(ToolDefinition("broken", "Always fails", schema), broken)
    return registry


@pytest.fixture
def service_factory(rag_pipeline, listener_service, echo_tool_registry):
    """Factory for AiCodeService instances wired with test doubles."""

    def _create_service(
        chat_model: FakeChatModel | None = None,
        *,
        native_tool_calling: bool = False,
        tools: ToolRegistry | None = None,
        selector: KeywordToolSelector | None = None,
        memory: ChatMemory | None = None,
    ) -> AiCodeService:
        return AiCodeService(
            chat_model or FakeChatModel(),
            rag_pipeline,
            guardrail=SafeInputGuardrail(),
            memory=memory or ChatMemory(max_messages=10),
            tools=tools if tools is not None else echo_tool_registry,
            selector=selector or KeywordToolSelector(()),
            listeners=listener_service,
            system_prompt=TestConstants.SYSTEM_PROMPT,
            native_tool_calling=native_tool_calling,
            max_results=5,
            min_score=0.75,
        )

    return _create_service
