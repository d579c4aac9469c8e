"""Tests for the tool registry, built-in tools and keyword selection."""

import json

import httpx
import pytest

from aicode.models import ToolDefinition
from aicode.tools import (
    CodeQuestionTool,
    InterviewQuestionTool,
    KeywordToolSelector,
    ToolArgumentError,
    ToolNotFoundError,
    ToolRegistry,
    WebSearchTool,
    build_default_registry,
)
from aicode.tools.question_search import extract_link_texts
from aicode.tools.registry import build_args_model, validate_arguments
from aicode.tools.web_search import API_KEY_MISSING, NO_RESULTS, QUERY_REQUIRED

INTERVIEW_HTML = """
<html><body>
  <table>
    <tr>
      <td class="ant-table-cell"><a href="/q/1">What is a <b>hash map</b>?</a></td>
      <td class="ant-table-cell"><span><a href="/q/x">Nested link</a></span></td>
    </tr>
    <tr><td class="ant-table-cell"><a href="/q/2">Explain TCP handshake</a></td></tr>
  </table>
  <div class="footer"><a href="/about">About us</a><br></div>
</body></html>
"""


def recording_transport(handler):
    """Wrap ``handler`` in a MockTransport that records requests."""
    requests: list[httpx.Request] = []

    def _handle(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    return httpx.MockTransport(_handle), requests


@pytest.mark.anyio
async def test_registry_executes_tool(echo_tool_registry):
    result = await echo_tool_registry.execute("echo", {"text": "hi"})

    assert result == "echo: hi"


@pytest.mark.anyio
async def test_registry_unknown_tool(echo_tool_registry):
    with pytest.raises(ToolNotFoundError, match="Tool not found: missing"):
        await echo_tool_registry.execute("missing", {})


@pytest.mark.anyio
async def test_registry_reraises_handler_failure(echo_tool_registry, caplog):
    with (
        caplog.at_level("ERROR", logger="aicode.tools.registry"),
        pytest.raises(RuntimeError, match="tool exploded"),
    ):
        await echo_tool_registry.execute("broken", {"text": "x"})

    assert "Tool broken failed" in caplog.text


@pytest.mark.anyio
async def test_registry_json_encodes_results():
    registry = ToolRegistry()

    async def numbers() -> dict:
        return {"count": 3, "items": ["a", "b"]}

    registry.register(ToolDefinition("numbers", "Numbers"), numbers)

    result = await registry.execute("numbers")

    assert json.loads(result) == {"count": 3, "items": ["a", "b"]}


def test_registry_replaces_duplicate(echo_tool_registry, caplog):
    async def other(text: str) -> str:
        return text

    with caplog.at_level("WARNING", logger="aicode.tools.registry"):
        echo_tool_registry.register(ToolDefinition("echo", "Replacement"), other)

    assert echo_tool_registry.get("echo").description == "Replacement"
    assert [d.name for d in echo_tool_registry.list_definitions()] == [
        "echo",
        "broken",
    ]
    assert "Replacing registered tool: echo" in caplog.text


def test_registry_lookup(echo_tool_registry):
    assert "echo" in echo_tool_registry
    assert "missing" not in echo_tool_registry
    assert echo_tool_registry.get("missing") is None


@pytest.mark.parametrize(
    ("args", "error"),
    [
        ({}, "missing arguments: text"),
        ({"text": 5}, "argument text must be string"),
        ({"text": "ok", "extra": 1}, "unexpected argument: extra"),
    ],
)
def test_validate_arguments_rejects(echo_tool_registry, args, error):
    with pytest.raises(ToolArgumentError, match=error):
        validate_arguments(echo_tool_registry.get("echo"), args)


def test_validate_arguments_bool_is_not_integer():
    definition = ToolDefinition(
        "count",
        "Count",
        {"type": "object", "properties": {"n": {"type": "integer"}}},
    )

    validate_arguments(definition, {"n": 3})
    with pytest.raises(ToolArgumentError):
        validate_arguments(definition, {"n": True})


def test_validate_arguments_optional_and_number():
    definition = ToolDefinition(
        "scale",
        "Scale a value",
        {
            "type": "object",
            "properties": {
                "factor": {"type": "number"},
                "label": {"type": "string"},
            },
            "required": ["factor"],
        },
    )

    validate_arguments(definition, {"factor": 2})
    validate_arguments(definition, {"factor": 0.5, "label": "half"})
    with pytest.raises(ToolArgumentError, match="argument factor must be number"):
        validate_arguments(definition, {"factor": "2"})


def test_build_args_model_fields(echo_tool_registry):
    model = build_args_model(echo_tool_registry.get("echo"))

    assert model.__name__ == "echoArgs"
    assert model.model_fields["text"].is_required()
    assert model.model_validate({"text": "hi"}).text == "hi"


def test_tool_definition_to_openai():
    rendered = WebSearchTool.definition.to_openai()

    assert rendered["type"] == "function"
    assert rendered["function"]["name"] == "web_search"
    assert rendered["function"]["parameters"]["required"] == ["query"]


def test_default_registry_tools():
    registry = build_default_registry()

    assert [d.name for d in registry.list_definitions()] == [
        "web_search",
        "interviewQuestionSearch",
        "codeQuestionSearch",
    ]


@pytest.mark.anyio
@pytest.mark.parametrize("query", ["", "   "])
async def test_web_search_empty_query_makes_no_request(query):
    transport, requests = recording_transport(lambda request: httpx.Response(200))
    tool = WebSearchTool(api_key="key", transport=transport)

    assert await tool(query) == QUERY_REQUIRED
    assert await tool.search(query) == "Search query is required"
    assert requests == []


@pytest.mark.anyio
async def test_web_search_without_api_key():
    transport, requests = recording_transport(lambda request: httpx.Response(200))
    tool = WebSearchTool(api_key="", transport=transport)

    assert await tool("python news") == API_KEY_MISSING
    assert requests == []


@pytest.mark.anyio
async def test_web_search_success():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"choices": [{"message": {"content": "Python 3.14 released"}}]}
        )

    transport, requests = recording_transport(handler)
    tool = WebSearchTool(
        api_key="secret",
        url="https://search.example/v4/chat/completions",
        model="glm-test",
        transport=transport,
    )

    result = await tool("python release")

    assert result == "Python 3.14 released"
    (request,) = requests
    assert request.method == "POST"
    assert request.headers["Authorization"] == "Bearer secret"
    payload = json.loads(request.content)
    assert payload["model"] == "glm-test"
    assert payload["messages"][0]["content"] == "Search and summary: python release"
    assert payload["tools"] == [{"type": "web_search", "web_search": {"enable": True}}]


@pytest.mark.anyio
@pytest.mark.parametrize(
    "body", [{}, {"choices": []}, {"choices": [{"message": {"content": ""}}]}]
)
async def test_web_search_no_results(body):
    transport, _ = recording_transport(lambda request: httpx.Response(200, json=body))
    tool = WebSearchTool(api_key="secret", transport=transport)

    assert await tool("anything") == NO_RESULTS


@pytest.mark.anyio
async def test_web_search_http_error():
    transport, _ = recording_transport(lambda request: httpx.Response(500))
    tool = WebSearchTool(api_key="secret", transport=transport)

    assert await tool("anything") == "Web search failed: HTTP 500"


@pytest.mark.anyio
async def test_web_search_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        msg = "connection refused"
        raise httpx.ConnectError(msg, request=request)

    tool = WebSearchTool(api_key="secret", transport=httpx.MockTransport(handler))

    result = await tool("anything")

    assert result.startswith("Web search failed: ")
    assert "connection refused" in result


def test_extract_link_texts_with_parent_class():
    assert extract_link_texts(INTERVIEW_HTML, "ant-table-cell") == [
        "What is a hash map?",
        "Explain TCP handshake",
    ]


def test_extract_all_link_texts():
    assert extract_link_texts(INTERVIEW_HTML) == [
        "What is a hash map?",
        "Nested link",
        "Explain TCP handshake",
        "About us",
    ]


@pytest.mark.anyio
async def test_interview_question_search():
    transport, requests = recording_transport(
        lambda request: httpx.Response(200, text=INTERVIEW_HTML)
    )
    tool = InterviewQuestionTool(transport=transport)

    result = await tool("hash map")

    assert result == "What is a hash map?\nExplain TCP handshake"
    (request,) = requests
    assert request.url.host == "www.mianshiya.com"
    assert request.url.params["searchText"] == "hash map"
    assert request.headers["User-Agent"] == "Mozilla/5.0"


@pytest.mark.anyio
async def test_code_question_search_collects_all_links():
    html = (
        '<ul><li><a href="/p/1">Two Sum</a></li>'
        '<li><a href="/p/2">LRU Cache</a></li></ul>'
    )
    transport, requests = recording_transport(
        lambda request: httpx.Response(200, text=html)
    )
    tool = CodeQuestionTool(transport=transport)

    result = await tool("array")

    assert result == "Two Sum\nLRU Cache"
    assert requests[0].url.host == "leetcode.cn"
    assert requests[0].url.params["q"] == "array"


@pytest.mark.anyio
async def test_question_search_nothing_found():
    transport, _ = recording_transport(
        lambda request: httpx.Response(200, text="<p>No matches</p>")
    )

    assert await InterviewQuestionTool(transport=transport)("x") == "No questions found"


@pytest.mark.anyio
async def test_question_search_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        msg = "read timed out"
        raise httpx.ReadTimeout(msg, request=request)

    tool = CodeQuestionTool(timeout=5, transport=httpx.MockTransport(handler))

    assert await tool("graph") == "Search failed: timed out after 5s"


@pytest.mark.anyio
async def test_question_search_non_2xx():
    transport, _ = recording_transport(lambda request: httpx.Response(503))

    result = await InterviewQuestionTool(transport=transport)("x")

    assert result == "Search failed: HTTP 503"


def test_question_tools_default_timeout():
    assert InterviewQuestionTool().timeout == 5.0


@pytest.mark.parametrize(
    ("message", "expected"),
    [
        ("Give me some Java interview questions", ["interviewQuestionSearch"]),
        ("一些算法题", ["codeQuestionSearch"]),
        ("Any LeetCode problems on graphs?", ["codeQuestionSearch"]),
        ("What is the latest Python news?", ["web_search"]),
        (
            "search for the latest interview algorithm tips",
            ["interviewQuestionSearch", "codeQuestionSearch", "web_search"],
        ),
        ("How do I learn Python?", []),
    ],
)
def test_keyword_selector(message, expected):
    calls = KeywordToolSelector().select(message)

    assert [call.name for call in calls] == expected
    for call in calls:
        assert call.id.startswith("kw_")
        assert message in call.arguments.values()


def test_keyword_selector_argument_names():
    calls = KeywordToolSelector().select("interview news")

    assert [call.arguments for call in calls] == [
        {"keyword": "interview news"},
        {"query": "interview news"},
    ]
