"""Web interface using Streamlit."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

import httpx
import streamlit as st

from aicode.config import config

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

MODES = {
    "Chat": None,
    "Chat with references": "/ai/chat/rag",
    "Chat with tools": "/ai/chat/tools",
    "Web search": "/ai/chat/search",
    "Learning report": "/ai/chat/report",
}
REQUEST_TIMEOUT = 120.0

config.setup_logging()
logger = config.get_logger(__name__)


class ChatStreamError(RuntimeError):
    """The server ended the stream with an error event."""


def parse_sse(lines: Iterable[str]) -> Iterator[tuple[str, str]]:
    """Turn server-sent event lines into ``(event, data)`` pairs.

    Consecutive ``data:`` lines of one event are joined with line breaks.
    """
    event = "message"
    data: list[str] = []
    for line in lines:
        if not line:
            if data:
                yield event, "\n".join(data)
            event, data = "message", []
        elif line.startswith("event:"):
            event = line[len("event:") :].strip()
        elif line.startswith("data:"):
            value = line[len("data:") :]
            data.append(value.removeprefix(" "))
    if data:
        yield event, "\n".join(data)


def stream_chat(memory_id: str, message: str) -> Iterator[str]:
    """Yield answer fragments from the streaming chat route.

    Raises:
        ChatStreamError: If the server reports an error mid-stream.
    """
    with (
        httpx.Client(base_url=config.API_BASE_URL, timeout=REQUEST_TIMEOUT) as client,
        client.stream(
            "GET", "/ai/chat", params={"memoryId": memory_id, "message": message}
        ) as response,
    ):
        response.raise_for_status()
        for event, data in parse_sse(response.iter_lines()):
            if event == "error":
                raise ChatStreamError(data)
            yield data


def call_route(path: str, message: str) -> Any:  # noqa: ANN401
    """Call a one-shot chat route and return its decoded JSON."""  # noqa: DOC201
    with httpx.Client(base_url=config.API_BASE_URL, timeout=REQUEST_TIMEOUT) as client:
        response = client.get(path, params={"message": message})
        response.raise_for_status()
        return response.json()


def render_result(path: str, result: Any) -> str:  # noqa: ANN401
    """Show a one-shot result and return the text kept in the transcript."""  # noqa: DOC201
    if path == "/ai/chat/report":
        lines = [f"**{result['name']}**"]
        lines.extend(f"- {item}" for item in result["suggestionList"])
        text = "\n".join(lines)
        st.markdown(text)
        return text

    if isinstance(result, str):
        st.markdown(result)
        return result

    st.markdown(result["content"])
    if result.get("sources"):
        with st.expander("Sources", expanded=False):
            for source in result["sources"]:
                st.write(source)
    if result.get("toolCalls"):
        with st.expander("Tool calls", expanded=False):
            st.json(result["toolCalls"])
    return result["content"]


class SessionState:
    """Centralized session state management."""

    @staticmethod
    def initialize() -> None:
        defaults = {
            "memory_id": uuid.uuid4().hex[:12],
            "messages": [],
        }
        for key, default_value in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = default_value

    @staticmethod
    def new_conversation() -> None:
        """Drop the server-side memory and start a fresh conversation."""
        try:
            with httpx.Client(
                base_url=config.API_BASE_URL, timeout=REQUEST_TIMEOUT
            ) as client:
                client.delete(f"/ai/memory/{st.session_state.memory_id}")
        except httpx.HTTPError:
            logger.exception("Failed to clear server memory")
        st.session_state.memory_id = uuid.uuid4().hex[:12]
        st.session_state.messages = []


def render_sidebar() -> str:
    """Render the sidebar and return the selected mode."""  # noqa: DOC201
    with st.sidebar:
        st.header("Assistant")
        mode = st.radio("Mode", list(MODES), index=0)
        st.divider()
        st.write(f"**API:** {config.API_BASE_URL}")
        st.write(f"**Conversation:** {st.session_state.memory_id}")
        if st.button("New Conversation", use_container_width=True):
            SessionState.new_conversation()
            st.rerun()
    return mode


def render_history() -> None:
    for message in st.session_state.messages:
        with st.chat_message(message["role"]):
            st.markdown(message["content"])


def answer(mode: str, question: str) -> str:
    """Render the assistant's answer for ``question`` in the chosen mode."""  # noqa: DOC201
    path = MODES[mode]
    if path is None:
        text = st.write_stream(stream_chat(st.session_state.memory_id, question))
        return text if isinstance(text, str) else "".join(map(str, text))
    with st.spinner("Thinking..."):
        result = call_route(path, question)
    return render_result(path, result)


def main() -> None:
    """Main entry point for the Streamlit chat page."""
    st.set_page_config(page_title="AiCode Assistant", layout="wide")
    SessionState.initialize()

    st.title("AiCode Assistant")
    st.caption("Programming learning and interview preparation")

    mode = render_sidebar()
    render_history()

    question = st.chat_input("Ask about learning paths, projects or interviews...")
    if not question:
        return

    st.session_state.messages.append({"role": "user", "content": question})
    with st.chat_message("user"):
        st.markdown(question)

    with st.chat_message("assistant"):
        try:
            text = answer(mode, question)
        except (httpx.HTTPError, ChatStreamError) as e:
            logger.exception("Request failed")
            st.error(f"Request failed: {e}")
            return

    st.session_state.messages.append({"role": "assistant", "content": text})


if __name__ == "__main__":
    main()
