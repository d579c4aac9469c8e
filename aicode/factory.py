"""Wire the assistant service from configuration."""

from typing import cast

from .chat_model import create_chat_model
from .config import config
from .embeddings import EmbeddingService
from .guardrail import SafeInputGuardrail
from .listeners import ChatModelListenerService
from .memory import ChatMemory
from .pipeline import RAGPipeline
from .service import AiCodeService, load_system_prompt
from .tools import KeywordToolSelector, build_default_registry
from .vector_store import VectorBackend, get_vector_store

logger = config.get_logger(__name__)


def create_embedding_service(provider: str | None = None) -> EmbeddingService:
    """Build the embedding client for the configured provider."""  # noqa: DOC201
    provider = (provider or config.LLM_PROVIDER).lower()
    if provider == "ollama":
        return EmbeddingService(api_key="ollama", base_url=config.OLLAMA_BASE_URL)
    return EmbeddingService()


def create_service() -> AiCodeService:
    """Build an AiCodeService with every collaborator taken from config.

    Returns:
        The service; call ``initialize`` before serving requests.
    """
    embedding_service = create_embedding_service()
    vector_store = get_vector_store(
        cast("VectorBackend", config.VECTOR_BACKEND),
        embedding_service,
        db_path=config.VECTOR_STORE_DB_PATH,
    )
    logger.info("Using %s vector storage", vector_store.backend)

    service = AiCodeService(
        chat_model=create_chat_model(),
        pipeline=RAGPipeline(vector_store),
        guardrail=SafeInputGuardrail(),
        memory=ChatMemory(config.MEMORY_MAX_MESSAGES),
        tools=build_default_registry(),
        selector=KeywordToolSelector(),
        listeners=ChatModelListenerService(config.LISTENER_REQUEST_TTL_SECONDS),
        system_prompt=load_system_prompt(config.SYSTEM_PROMPT_PATH),
        native_tool_calling=config.NATIVE_TOOL_CALLING,
    )
    logger.info(
        "Service ready (native tool calling: %s)", service.native_tool_calling
    )
    return service
