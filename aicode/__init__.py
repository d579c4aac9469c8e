"""AiCode: programming learning and interview assistant backend."""

__version__ = "0.1.0"

from .chat_model import ChatModel, ModelReply, OpenAIChatModel, create_chat_model
from .embeddings import EmbeddingService
from .guardrail import GuardrailResult, SafeInputGuardrail
from .listeners import ChatModelListener, ChatModelListenerService
from .memory import ChatMemory
from .models import ConversationTurn, DocumentChunk, RagResult, ToolChatResult
from .pipeline import RAGPipeline
from .service import AiCodeService
from .structured_output import Report

__all__ = [
    "AiCodeService",
    "ChatMemory",
    "ChatModel",
    "ChatModelListener",
    "ChatModelListenerService",
    "ConversationTurn",
    "DocumentChunk",
    "EmbeddingService",
    "GuardrailResult",
    "ModelReply",
    "OpenAIChatModel",
    "RAGPipeline",
    "RagResult",
    "Report",
    "SafeInputGuardrail",
    "ToolChatResult",
    "__version__",
    "create_chat_model",
]
