"""Request orchestration: guardrail, memory, retrieval, tools and the model."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing
from pathlib import Path

from .chat_model import (
    ChatModel,
    Message,
    ModelReply,
    assistant_tool_call_message,
    tool_result_message,
)
from .config import config
from .guardrail import SafeInputGuardrail
from .listeners import ChatModelListener, ChatModelListenerService
from .memory import ChatMemory
from .models import (
    ConversationTurn,
    DocumentChunk,
    MemoryId,
    RagResult,
    ToolCallRecord,
    ToolChatResult,
    ToolDefinition,
)
from .pipeline import RAGPipeline
from .structured_output import Report, StructuredOutputService
from .tools import KeywordToolSelector, ToolRegistry, build_default_registry

logger = config.get_logger(__name__)

DEFAULT_SYSTEM_PROMPT = """You are a programming assistant that helps users with \
learning to code and preparing for job interviews. Focus on four areas:
1. Planning a clear programming learning path
2. Giving project-based learning suggestions
3. Guiding the whole job search process (resume polishing, application tips)
4. Sharing frequently asked interview questions and interview techniques
Answer in concise, easy-to-understand language."""

REJECTION_PREFIX = "Input validation failed: "
TOOL_CONTEXT_HEADER = "\n\nTool results:\n"
WEB_SEARCH_CONTEXT_HEADER = "\n\nWeb search results:\n"
WEB_SEARCH_TOOL = "web_search"


def load_system_prompt(path: Path | None = None) -> str:
    """Read the system prompt file.

    Returns:
        The file contents, or the built-in prompt when the file is missing,
        unreadable or empty.
    """
    if path is None:
        path = config.SYSTEM_PROMPT_PATH
    try:
        prompt = path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.info("Using built-in system prompt (%s: %s)", path, e)
        return DEFAULT_SYSTEM_PROMPT
    return prompt or DEFAULT_SYSTEM_PROMPT


class AiCodeService:
    """Composes the assistant's collaborators for each chat variant.

    Every model call is reported to the listener service with exactly one
    request event and exactly one response or error event. Input rejected by
    the guardrail never reaches the model.
    """

    def __init__(  # noqa: PLR0913
        self,
        chat_model: ChatModel,
        pipeline: RAGPipeline,
        *,
        guardrail: SafeInputGuardrail | None = None,
        memory: ChatMemory | None = None,
        tools: ToolRegistry | None = None,
        selector: KeywordToolSelector | None = None,
        listeners: ChatModelListenerService | None = None,
        structured_output: StructuredOutputService | None = None,
        system_prompt: str | None = None,
        native_tool_calling: bool | None = None,
        max_results: int | None = None,
        min_score: float | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            chat_model: Model used for every variant.
            pipeline: Retrieval pipeline over the reference documents.
            guardrail: Input check. If None, uses the default banned words.
            memory: Conversation memory. If None, a fresh in-process store.
            tools: Tool registry. If None, the built-in tools.
            selector: Keyword rules used when native tool calling is off.
            listeners: Telemetry fan-out. If None, logs every event.
            structured_output: Report generator. If None, built on
                ``chat_model`` and ``listeners``.
            system_prompt: If None, read from config.SYSTEM_PROMPT_PATH.
            native_tool_calling: If None, uses config.NATIVE_TOOL_CALLING.
                Either way it is off when the model does not support tools.
            max_results: Chunks retrieved per question. If None, uses
                config.RAG_MAX_RESULTS.
            min_score: Retrieval score threshold. If None, uses
                config.RAG_MIN_SCORE.
        """
        self.chat_model = chat_model
        self.pipeline = pipeline
        self.guardrail = guardrail or SafeInputGuardrail()
        self.memory = memory or ChatMemory()
        self.tools = tools if tools is not None else build_default_registry()
        self.selector = selector or KeywordToolSelector()
        self.listeners = listeners or ChatModelListenerService()
        self.structured_output = structured_output or StructuredOutputService(
            chat_model, self.listeners
        )
        self.system_prompt = (
            system_prompt if system_prompt is not None else load_system_prompt()
        )
        if native_tool_calling is None:
            native_tool_calling = config.NATIVE_TOOL_CALLING
        self.native_tool_calling = native_tool_calling and chat_model.supports_tools
        self.max_results = (
            max_results if max_results is not None else config.RAG_MAX_RESULTS
        )
        self.min_score = min_score if min_score is not None else config.RAG_MIN_SCORE

    async def initialize(self, docs_dir: Path | None = None) -> int:
        """Ingest the reference documents unless the store already holds some.

        Returns:
            Number of chunks added.
        """
        count = await self.pipeline.ensure_loaded(docs_dir or config.DOCS_DIR)
        logger.info("AiCode service initialized")
        return count

    async def chat(self, message: str) -> str:
        """One-shot answer without memory or retrieval.

        Returns:
            The answer, or the rejection message for unsafe input.

        Raises:
            Exception: Whatever the model client raised, after telemetry.
        """
        rejection = self._check_input(message)
        if rejection is not None:
            return rejection

        reply = await self._invoke(self._messages(self.system_prompt, message))
        return reply.content

    async def chat_stream(
        self, memory_id: MemoryId, message: str
    ) -> AsyncIterator[str]:
        """Stream an answer inside a remembered conversation.

        The user and assistant turns are written to memory only after the model
        stream ends normally. A failed or abandoned stream leaves memory
        untouched.
        """
        rejection = self._check_input(message)
        if rejection is not None:
            yield rejection
            return

        history = self.memory.get_history(memory_id)
        context = self.pipeline.format_context(await self._retrieve(message))
        tool_context, tool_calls = await self._tool_context(message)
        if tool_calls:
            logger.info("Tool calls: %s", ", ".join(call.name for call in tool_calls))

        messages = [
            ConversationTurn.system(
                self.system_prompt + context + tool_context
            ).to_message(),
            *(turn.to_message() for turn in history),
            ConversationTurn.user(message).to_message(),
        ]

        model_name = self.chat_model.name
        request_id = self.listeners.on_request(messages, model_name)
        parts: list[str] = []
        try:
            async with aclosing(self.chat_model.stream(messages)) as stream:
                async for fragment in stream:
                    parts.append(fragment)
                    yield fragment
        except BaseException as e:
            # Also covers client disconnects (GeneratorExit) and cancellation.
            self.listeners.on_error(request_id, e, model_name, messages)
            raise

        answer = "".join(parts)
        self.listeners.on_response(request_id, answer, model_name)

        self.memory.add_message(memory_id, ConversationTurn.user(message))
        self.memory.add_message(memory_id, ConversationTurn.assistant(answer))
        logger.info("Chat completed for memory %s", memory_id)

    async def chat_with_rag(self, message: str) -> RagResult:
        """Answer using retrieved reference material and report its sources.

        Returns:
            RagResult with the answer and one source per retrieved chunk.
        """
        rejection = self._check_input(message)
        if rejection is not None:
            return RagResult(content=rejection)

        chunks = await self._retrieve(message)
        system_prompt = self.system_prompt + self.pipeline.format_context(chunks)
        reply = await self._invoke(self._messages(system_prompt, message))
        return RagResult(content=reply.content, sources=self.pipeline.sources(chunks))

    async def chat_with_tools(self, message: str) -> ToolChatResult:
        """Answer with tool support.

        With native tool calling the model proposes calls, they are executed
        and their results are sent back for a final answer. Otherwise keyword
        rules pick the tools and their output is added to the system prompt
        before a single model call.

        Returns:
            ToolChatResult with the answer and the tool calls that ran.
        """
        rejection = self._check_input(message)
        if rejection is not None:
            return ToolChatResult(content=rejection)

        if not self.native_tool_calling:
            tool_context, calls = await self._keyword_tool_context(message)
            reply = await self._invoke(
                self._messages(self.system_prompt + tool_context, message)
            )
            return ToolChatResult(content=reply.content, tool_calls=calls)

        messages = self._messages(self.system_prompt, message)
        reply = await self._invoke(messages, self.tools.list_definitions())
        if not reply.tool_calls:
            return ToolChatResult(content=reply.content)

        follow_up = [*messages, assistant_tool_call_message(reply)]
        for call in reply.tool_calls:
            result = await self._run_tool(call)
            follow_up.append(tool_result_message(call, result))

        final = await self._invoke(follow_up)
        return ToolChatResult(content=final.content, tool_calls=reply.tool_calls)

    async def chat_for_report(self, message: str) -> Report:
        """Generate a structured learning report.

        Returns:
            The report; unsafe input yields a report carrying the reason.
        """
        result = self.guardrail.validate(message)
        if not result.safe:
            return Report(
                name="Input validation failed",
                suggestion_list=[result.reason or "Unsafe input"],
            )
        return await self.structured_output.chat_for_report(
            message, self.system_prompt
        )

    async def chat_with_web_search(self, message: str) -> str:
        """Answer with a web search on the raw message added to the prompt.

        Returns:
            The answer, or the rejection message for unsafe input.
        """
        rejection = self._check_input(message)
        if rejection is not None:
            return rejection

        search_context = ""
        if WEB_SEARCH_TOOL in self.tools:
            call = ToolCallRecord(
                id="web_search", name=WEB_SEARCH_TOOL, arguments={"query": message}
            )
            search_context = WEB_SEARCH_CONTEXT_HEADER + await self._run_tool(call)
        else:
            logger.warning("Web search tool is not registered")

        reply = await self._invoke(
            self._messages(self.system_prompt + search_context, message)
        )
        return reply.content

    def add_listener(self, listener: ChatModelListener) -> None:
        self.listeners.add_listener(listener)

    def clear_memory(self, memory_id: MemoryId) -> None:
        self.memory.clear(memory_id)

    def _check_input(self, message: str) -> str | None:
        result = self.guardrail.validate(message)
        if result.safe:
            return None
        return REJECTION_PREFIX + (result.reason or "unsafe input")

    @staticmethod
    def _messages(system_prompt: str, message: str) -> list[Message]:
        return [
            ConversationTurn.system(system_prompt).to_message(),
            ConversationTurn.user(message).to_message(),
        ]

    async def _invoke(
        self,
        messages: Sequence[Message],
        tools: Sequence[ToolDefinition] | None = None,
    ) -> ModelReply:
        model_name = self.chat_model.name
        request_id = self.listeners.on_request(messages, model_name)
        try:
            reply = await self.chat_model.invoke(messages, tools=tools or None)
        except Exception as e:
            self.listeners.on_error(request_id, e, model_name, messages)
            raise
        self.listeners.on_response(
            request_id, reply.content, model_name, reply.token_usage
        )
        return reply

    async def _retrieve(self, message: str) -> list[DocumentChunk]:
        try:
            return await self.pipeline.retrieve(
                message, max_results=self.max_results, min_score=self.min_score
            )
        except Exception:
            logger.exception("Retrieval failed, answering without references")
            return []

    async def _run_tool(self, call: ToolCallRecord) -> str:
        """Execute one tool call; failures become text for the model."""  # noqa: DOC201
        try:
            return await self.tools.execute(call.name, call.arguments)
        except Exception as e:
            logger.warning("Tool %s failed: %s", call.name, e)
            return f"Tool {call.name} failed: {e}"

    async def _tool_context(self, message: str) -> tuple[str, list[ToolCallRecord]]:
        """Decide and run tools for a streamed turn.

        With native tool calling a non-streamed model call proposes the tools;
        a failure of that call leaves the turn without tool context.

        Returns:
            The context block for the system prompt and the calls that ran.
        """
        if not self.native_tool_calling:
            return await self._keyword_tool_context(message)

        definitions = self.tools.list_definitions()
        if not definitions:
            return "", []
        try:
            reply = await self._invoke(
                self._messages(self.system_prompt, message), definitions
            )
        except Exception:
            logger.exception("Tool decision failed, continuing without tools")
            return "", []
        return await self._format_tool_results(reply.tool_calls), reply.tool_calls

    async def _keyword_tool_context(
        self, message: str
    ) -> tuple[str, list[ToolCallRecord]]:
        calls = [
            call for call in self.selector.select(message) if call.name in self.tools
        ]
        return await self._format_tool_results(calls), calls

    async def _format_tool_results(self, calls: Sequence[ToolCallRecord]) -> str:
        if not calls:
            return ""
        results = [
            f"[{call.name}]\n{await self._run_tool(call)}" for call in calls
        ]
        return TOOL_CONTEXT_HEADER + "\n---\n".join(results)
