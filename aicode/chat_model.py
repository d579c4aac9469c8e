"""Chat model clients behind one invoke/stream interface."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from openai import AsyncOpenAI

from .config import config
from .models import ToolCallRecord, ToolDefinition

logger = config.get_logger(__name__)

Message = dict[str, Any]


@dataclass
class ModelReply:
    """A complete (non-streamed) model answer."""

    content: str
    tool_calls: list[ToolCallRecord] = field(default_factory=list)
    token_usage: dict[str, int] | None = None


class ChatModel(Protocol):
    """What the orchestrator needs from a chat model."""

    name: str
    supports_tools: bool

    async def invoke(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition] | None = None,
    ) -> ModelReply: ...

    def stream(self, messages: Sequence[Message]) -> AsyncIterator[str]: ...


class OpenAIChatModel:
    """Chat model reached through an OpenAI-compatible chat completions API."""

    supports_tools = True

    def __init__(  # noqa: PLR0913
        self,
        model: str | None = None,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        supports_tools: bool | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            model: Model name. If None, uses config.CHAT_MODEL.
            api_key: API key. If None, reads OPENAI_API_KEY.
            base_url: Endpoint override. If None, uses config.OPENAI_BASE_URL.
            max_tokens: Completion limit. If None, uses config.CHAT_MAX_TOKENS.
            temperature: Sampling temperature. If None, uses
                config.CHAT_TEMPERATURE.
            supports_tools: Whether to offer native function calling.
        """
        default_headers = config.get_api_headers()
        self.client = AsyncOpenAI(
            api_key=api_key or config.get_openai_api_key(),
            base_url=base_url or config.OPENAI_BASE_URL,
            default_headers=default_headers or None,
        )
        self.name = model or config.CHAT_MODEL
        self.max_tokens = max_tokens or config.CHAT_MAX_TOKENS
        self.temperature = (
            temperature if temperature is not None else config.CHAT_TEMPERATURE
        )
        if supports_tools is not None:
            self.supports_tools = supports_tools

    async def invoke(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition] | None = None,
    ) -> ModelReply:
        """Send one request and wait for the complete answer.

        Returns:
            ModelReply with text, proposed tool calls and token usage.
        """
        kwargs: dict[str, Any] = {
            "model": self.name,
            "messages": list(messages),
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        if tools:
            kwargs["tools"] = [tool.to_openai() for tool in tools]

        response = await self.client.chat.completions.create(**kwargs)
        message = response.choices[0].message

        usage = None
        if response.usage is not None:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return ModelReply(
            content=(message.content or "").strip(),
            tool_calls=[
                ToolCallRecord(
                    id=call.id,
                    name=call.function.name,
                    arguments=_parse_arguments(call.function.arguments),
                )
                for call in message.tool_calls or []
            ],
            token_usage=usage,
        )

    async def stream(self, messages: Sequence[Message]) -> AsyncIterator[str]:
        """Yield text fragments as the model produces them."""
        response = await self.client.chat.completions.create(
            model=self.name,
            messages=list(messages),
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            stream=True,
        )
        try:
            async for chunk in response:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        finally:
            await response.close()


def _parse_arguments(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        arguments = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Discarding malformed tool arguments: %.200s", raw)
        return {}
    return arguments if isinstance(arguments, dict) else {}


def assistant_tool_call_message(reply: ModelReply) -> Message:
    """Echo the model's tool-call turn back into the conversation."""  # noqa: DOC201
    return {
        "role": "assistant",
        "content": reply.content or None,
        "tool_calls": [
            {
                "id": call.id,
                "type": "function",
                "function": {
                    "name": call.name,
                    "arguments": json.dumps(call.arguments, ensure_ascii=False),
                },
            }
            for call in reply.tool_calls
        ],
    }


def tool_result_message(call: ToolCallRecord, result: str) -> Message:
    return {"role": "tool", "tool_call_id": call.id, "content": result}


def create_chat_model(provider: str | None = None) -> OpenAIChatModel:
    """Build the chat model for the configured provider.

    Raises:
        ValueError: If the provider is not supported.

    Returns:
        A ready chat model client.
    """
    provider = (provider or config.LLM_PROVIDER).lower()

    if provider == "openai":
        model = OpenAIChatModel(supports_tools=config.NATIVE_TOOL_CALLING)
    elif provider == "ollama":
        # Ollama ignores the key but the client requires one.
        model = OpenAIChatModel(
            api_key="ollama",
            base_url=config.OLLAMA_BASE_URL,
            supports_tools=config.NATIVE_TOOL_CALLING,
        )
    else:
        msg = f"Unsupported LLM_PROVIDER: {provider}"
        raise ValueError(msg)

    logger.info("Chat model initialized: %s via %s", model.name, provider)
    return model
