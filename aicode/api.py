"""HTTP surface: chat routes, SSE streaming and health check."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import aclosing, asynccontextmanager
from typing import Annotated, Any

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from . import __version__
from .config import config
from .factory import create_service
from .service import AiCodeService
from .structured_output import Report

logger = config.get_logger(__name__)

SERVICE_NAME = "aicode"
STREAM_ERROR_MESSAGE = "Chat stream error"
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

MessageParam = Annotated[str, Query(min_length=1)]


def format_sse(data: str, event: str | None = None) -> str:
    """Frame ``data`` as one server-sent event.

    Each line of ``data`` gets its own ``data:`` field so that line breaks in a
    fragment survive the framing.

    Returns:
        The event text, terminated by a blank line.
    """
    lines = [f"event: {event}"] if event else []
    lines.extend(
        f"data: {line}" for line in data.replace("\r\n", "\n").split("\n")
    )
    return "\n".join(lines) + "\n\n"


def get_service(request: Request) -> AiCodeService:
    return request.app.state.service


ServiceDep = Annotated[AiCodeService, Depends(get_service)]


def _upstream_error(route: str, error: Exception) -> HTTPException:
    logger.exception("%s failed", route)
    return HTTPException(status_code=503, detail=f"Model call failed: {error}")


router = APIRouter()


@router.get("/ai/chat")
async def chat_stream(
    service: ServiceDep,
    message: MessageParam,
    memory_id: Annotated[str, Query(alias="memoryId")] = "default",
) -> StreamingResponse:
    async def event_stream() -> AsyncIterator[str]:
        try:
            async with aclosing(service.chat_stream(memory_id, message)) as stream:
                async for fragment in stream:
                    yield format_sse(fragment)
        except Exception:
            logger.exception("Chat stream failed for memory %s", memory_id)
            yield format_sse(STREAM_ERROR_MESSAGE, event="error")

    return StreamingResponse(
        event_stream(), media_type="text/event-stream", headers=SSE_HEADERS
    )


@router.get("/ai/chat/sync")
async def chat_sync(service: ServiceDep, message: MessageParam) -> str:
    try:
        return await service.chat(message)
    except Exception as e:
        raise _upstream_error("Sync chat", e) from e


@router.get("/ai/chat/report", response_model=Report)
async def chat_report(service: ServiceDep, message: MessageParam) -> Report:
    return await service.chat_for_report(message)


@router.get("/ai/chat/rag")
async def chat_rag(service: ServiceDep, message: MessageParam) -> dict[str, Any]:
    try:
        result = await service.chat_with_rag(message)
    except Exception as e:
        raise _upstream_error("RAG chat", e) from e
    return {"content": result.content, "sources": result.sources}


@router.get("/ai/chat/tools")
async def chat_tools(service: ServiceDep, message: MessageParam) -> dict[str, Any]:
    try:
        result = await service.chat_with_tools(message)
    except Exception as e:
        raise _upstream_error("Tool chat", e) from e
    return {
        "content": result.content,
        "toolCalls": [call.to_dict() for call in result.tool_calls],
    }


@router.get("/ai/chat/search")
async def chat_search(service: ServiceDep, message: MessageParam) -> str:
    try:
        return await service.chat_with_web_search(message)
    except Exception as e:
        raise _upstream_error("Web search chat", e) from e


@router.delete("/ai/memory/{memory_id}", status_code=204)
async def clear_memory(service: ServiceDep, memory_id: str) -> Response:
    service.clear_memory(memory_id)
    return Response(status_code=204)


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy", "service": SERVICE_NAME, "version": __version__}


def create_app(service: AiCodeService | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        service: Pre-built service. If None, one is created from config when
            the application starts.

    Returns:
        The configured application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if app.state.service is None:
            app.state.service = create_service()
        await app.state.service.initialize()
        yield

    app = FastAPI(
        title="AiCode",
        description="Programming learning and interview preparation assistant",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router, prefix=config.API_PREFIX)
    return app
