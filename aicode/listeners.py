"""Request/response/error hooks around chat model invocations."""

import datetime
import time
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from .config import config

logger = config.get_logger(__name__)

PREVIEW_LENGTH = 100


def _now() -> datetime.datetime:
    return datetime.datetime.now(tz=datetime.UTC)


@dataclass
class RequestContext:
    request_id: str
    messages: Sequence[dict[str, Any]]
    model_name: str
    timestamp: datetime.datetime = field(default_factory=_now)


@dataclass
class ResponseContext:
    request_id: str
    content: str
    model_name: str
    latency_ms: int
    token_usage: dict[str, int] | None = None
    timestamp: datetime.datetime = field(default_factory=_now)


@dataclass
class ErrorContext:
    request_id: str
    error: BaseException
    model_name: str
    messages: Sequence[dict[str, Any]] = ()
    timestamp: datetime.datetime = field(default_factory=_now)


class ChatModelListener:
    """Subscriber base class; override the hooks you need."""

    def on_request(self, context: RequestContext) -> None:
        pass

    def on_response(self, context: ResponseContext) -> None:
        pass

    def on_error(self, context: ErrorContext) -> None:
        pass


class LoggingListener(ChatModelListener):
    """Default subscriber writing one log line per event."""

    def on_request(self, context: RequestContext) -> None:
        preview = " | ".join(
            f"{message.get('role')}: {str(message.get('content'))[:PREVIEW_LENGTH]}"
            for message in list(context.messages)[-2:]
        )
        logger.info(
            "[Request] %s %s - %s", context.request_id, context.model_name, preview
        )

    def on_response(self, context: ResponseContext) -> None:
        total_tokens = (context.token_usage or {}).get("total_tokens", "N/A")
        logger.info(
            "[Response] %s %s - %dms - tokens: %s - %s",
            context.request_id,
            context.model_name,
            context.latency_ms,
            total_tokens,
            context.content[:PREVIEW_LENGTH],
        )

    def on_error(self, context: ErrorContext) -> None:
        logger.error(
            "[Error] %s %s - %s", context.request_id, context.model_name, context.error
        )


class ChatModelListenerService:
    """Fans model events out to subscribers and tracks request latency.

    Subscribers run in registration order; an exception in one is logged and
    does not stop the others. Start times that never receive a terminal event
    are dropped after ``ttl_seconds``.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        *,
        include_default: bool = True,
    ) -> None:
        if ttl_seconds is None:
            ttl_seconds = config.LISTENER_REQUEST_TTL_SECONDS
        self.ttl_seconds = ttl_seconds
        self._listeners: list[ChatModelListener] = []
        self._started: dict[str, float] = {}
        if include_default:
            self.add_listener(LoggingListener())

    def add_listener(self, listener: ChatModelListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ChatModelListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def pending_count(self) -> int:
        return len(self._started)

    def on_request(
        self,
        messages: Sequence[dict[str, Any]],
        model_name: str,
    ) -> str:
        """Record the start of a model call and notify subscribers.

        Returns:
            Correlation id to pass to ``on_response`` or ``on_error``.
        """
        self.sweep_stale()
        request_id = f"req_{uuid.uuid4().hex[:12]}"
        self._started[request_id] = time.monotonic()
        self._notify(
            "on_request",
            RequestContext(
                request_id=request_id, messages=messages, model_name=model_name
            ),
        )
        return request_id

    def on_response(
        self,
        request_id: str,
        content: str,
        model_name: str,
        token_usage: dict[str, int] | None = None,
    ) -> None:
        started = self._started.pop(request_id, None)
        latency_ms = (
            int((time.monotonic() - started) * 1000) if started is not None else 0
        )
        self._notify(
            "on_response",
            ResponseContext(
                request_id=request_id,
                content=content,
                model_name=model_name,
                latency_ms=latency_ms,
                token_usage=token_usage,
            ),
        )

    def on_error(
        self,
        request_id: str,
        error: BaseException,
        model_name: str,
        messages: Sequence[dict[str, Any]] = (),
    ) -> None:
        self._started.pop(request_id, None)
        self._notify(
            "on_error",
            ErrorContext(
                request_id=request_id,
                error=error,
                model_name=model_name,
                messages=messages,
            ),
        )

    def sweep_stale(self) -> int:
        """Drop start times older than the TTL.

        Returns:
            Number of entries removed.
        """
        cutoff = time.monotonic() - self.ttl_seconds
        stale = [rid for rid, started in self._started.items() if started < cutoff]
        for request_id in stale:
            del self._started[request_id]
        if stale:
            logger.warning("Dropped %d requests without a terminal event", len(stale))
        return len(stale)

    def _notify(self, hook: str, context: Any) -> None:  # noqa: ANN401
        for listener in list(self._listeners):
            try:
                getattr(listener, hook)(context)
            except Exception:
                logger.exception(
                    "Listener %s failed in %s", type(listener).__name__, hook
                )
