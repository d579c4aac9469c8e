"""Web search tool backed by a search-enabled chat completions endpoint."""

from __future__ import annotations

from typing import Any

import httpx

from aicode.config import config
from aicode.models import ToolDefinition

logger = config.get_logger(__name__)

QUERY_REQUIRED = "Search query is required"
API_KEY_MISSING = "Web search API key is not configured (set WEB_SEARCH_API_KEY)"
NO_RESULTS = "No results found"


class WebSearchTool:
    """Searches the web and returns a summary of the results.

    Expected failures (empty query, missing credential, HTTP or transport
    errors, empty upstream answer) are reported as text, never raised.
    """

    definition = ToolDefinition(
        name="web_search",
        description=(
            "Search the web for real-time information. Use this tool when the "
            "user asks about recent events or anything not covered by the "
            "reference documents."
        ),
        parameters={
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "The search query",
                },
            },
            "required": ["query"],
        },
    )

    def __init__(  # noqa: PLR0913
        self,
        api_key: str | None = None,
        *,
        url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if api_key is None:
            api_key = config.get_web_search_api_key()
        self.api_key = api_key
        self.url = url or config.WEB_SEARCH_URL
        self.model = model or config.WEB_SEARCH_MODEL
        self.timeout = timeout if timeout is not None else config.TOOL_TIMEOUT_SECONDS
        self.transport = transport

    async def __call__(self, query: str = "") -> str:
        return await self.search(query)

    async def search(self, query: str) -> str:
        query = (query or "").strip()
        if not query:
            return QUERY_REQUIRED
        if not self.api_key:
            logger.error("Web search called without WEB_SEARCH_API_KEY")
            return API_KEY_MISSING

        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": f"Search and summary: {query}"}],
            "tools": [{"type": "web_search", "web_search": {"enable": True}}],
        }
        headers = {
            **config.get_api_headers(),
            "Authorization": f"Bearer {self.api_key}",
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post(self.url, json=payload, headers=headers)
                response.raise_for_status()
                data: dict[str, Any] = response.json()
        except httpx.HTTPStatusError as e:
            logger.error("Web search failed: HTTP %s", e.response.status_code)
            return f"Web search failed: HTTP {e.response.status_code}"
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Web search failed: %s", e)
            return f"Web search failed: {e}"

        logger.debug("Web search response: %s", data)
        choices = data.get("choices") or [{}]
        content = (choices[0].get("message") or {}).get("content")
        return content or NO_RESULTS
