"""Data models shared across the assistant."""

from dataclasses import dataclass, field
from typing import Any, Literal

import numpy as np

Role = Literal["system", "user", "assistant"]
MemoryId = int | str


@dataclass(frozen=True)
class ConversationTurn:
    """A single message in a conversation."""

    role: Role
    content: str

    @classmethod
    def system(cls, content: str) -> "ConversationTurn":
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> "ConversationTurn":
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str) -> "ConversationTurn":
        return cls(role="assistant", content=content)

    def to_message(self) -> dict[str, Any]:
        """Render the turn as a chat-completions message mapping."""  # noqa: DOC201
        return {"role": self.role, "content": self.content}


@dataclass
class DocumentChunk:
    """Represents a chunk of text from a reference document."""

    content: str
    metadata: dict[str, Any]
    embedding: np.ndarray | None = None


@dataclass(frozen=True)
class ToolDefinition:
    """Model-facing description of a callable tool."""

    name: str
    description: str
    parameters: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    def to_openai(self) -> dict[str, Any]:
        """Render the definition as a chat-completions function tool."""  # noqa: DOC201
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass
class ToolCallRecord:
    """A tool invocation proposed by the model or by keyword selection."""

    id: str
    name: str
    arguments: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "args": self.arguments}


@dataclass
class RagResult:
    """Answer produced with retrieved references."""

    content: str
    sources: list[str] = field(default_factory=list)


@dataclass
class ToolChatResult:
    """Answer produced with tool support."""

    content: str
    tool_calls: list[ToolCallRecord] = field(default_factory=list)
