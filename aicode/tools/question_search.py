"""Interview and coding question search tools scraping public search pages."""

from __future__ import annotations

from html.parser import HTMLParser
from urllib.parse import quote

import httpx

from aicode.config import config
from aicode.models import ToolDefinition

logger = config.get_logger(__name__)

NO_QUESTIONS = "No questions found"
BROWSER_USER_AGENT = "Mozilla/5.0"

_VOID_ELEMENTS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "source", "track", "wbr",
})

_KEYWORD_PARAMETERS = {
    "type": "object",
    "properties": {
        "keyword": {
            "type": "string",
            "description": "The keyword to search for questions",
        },
    },
    "required": ["keyword"],
}


class LinkTextParser(HTMLParser):
    """Collects the text of ``<a>`` elements.

    With ``parent_class`` set, only links whose direct parent element carries
    that CSS class are collected (the ``.cls > a`` selector).
    """

    def __init__(self, parent_class: str | None = None) -> None:
        super().__init__(convert_charrefs=True)
        self.parent_class = parent_class
        self.links: list[str] = []
        self._stack: list[set[str]] = []
        self._depth_in_link = 0
        self._buffer: list[str] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        classes = set()
        for name, value in attrs:
            if name == "class" and value:
                classes.update(value.split())

        if tag == "a" and not self._depth_in_link:
            parent = self._stack[-1] if self._stack else set()
            if self.parent_class is None or self.parent_class in parent:
                self._depth_in_link = len(self._stack) + 1
                self._buffer = []

        if tag not in _VOID_ELEMENTS:
            self._stack.append(classes)

    def handle_endtag(self, tag: str) -> None:
        if tag in _VOID_ELEMENTS or not self._stack:
            return
        self._stack.pop()
        closes_link = self._depth_in_link and len(self._stack) < self._depth_in_link
        if tag == "a" and closes_link:
            text = " ".join("".join(self._buffer).split())
            if text:
                self.links.append(text)
            self._depth_in_link = 0

    def handle_data(self, data: str) -> None:
        if self._depth_in_link:
            self._buffer.append(data)


def extract_link_texts(html: str, parent_class: str | None = None) -> list[str]:
    parser = LinkTextParser(parent_class)
    parser.feed(html)
    parser.close()
    return parser.links


class QuestionSearchTool:
    """Fetches a site's search results page and lists the linked questions."""

    definition: ToolDefinition
    search_url: str
    parent_class: str | None = None
    label = "Question"

    def __init__(
        self,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout if timeout is not None else config.TOOL_TIMEOUT_SECONDS
        self.transport = transport

    async def __call__(self, keyword: str = "") -> str:
        return await self.search(keyword)

    async def search(self, keyword: str) -> str:
        """Search questions for ``keyword``.

        Returns:
            One question per line, ``"No questions found"``, or a
            ``"Search failed: ..."`` message on timeout or HTTP error.
        """
        url = self.search_url.format(keyword=quote(keyword.strip()))
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self.transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(
                    url, headers={"User-Agent": BROWSER_USER_AGENT}
                )
                response.raise_for_status()
        except httpx.TimeoutException:
            logger.error("%s search timed out after %ss", self.label, self.timeout)
            return f"Search failed: timed out after {self.timeout:g}s"
        except httpx.HTTPStatusError as e:
            logger.error(
                "%s search failed: HTTP %s", self.label, e.response.status_code
            )
            return f"Search failed: HTTP {e.response.status_code}"
        except httpx.HTTPError as e:
            logger.error("%s search failed: %s", self.label, e)
            return f"Search failed: {e}"

        questions = extract_link_texts(response.text, self.parent_class)
        logger.info(
            "Found %d %s questions for: %s", len(questions), self.label.lower(), keyword
        )
        return "\n".join(questions) or NO_QUESTIONS


class InterviewQuestionTool(QuestionSearchTool):
    """Interview questions from mianshiya.com."""

    definition = ToolDefinition(
        name="interviewQuestionSearch",
        description=(
            "Retrieves relevant interview questions from mianshiya.com based on "
            "a keyword. Use this tool when the user asks for interview questions "
            "about specific technologies, programming concepts, or job-related "
            "topics. The input should be a clear search term."
        ),
        parameters=_KEYWORD_PARAMETERS,
    )
    search_url = "https://www.mianshiya.com/search/all?searchText={keyword}"
    parent_class = "ant-table-cell"
    label = "Interview"


class CodeQuestionTool(QuestionSearchTool):
    """Coding problems from leetcode.cn."""

    definition = ToolDefinition(
        name="codeQuestionSearch",
        description=(
            "Finds coding practice problems on leetcode.cn related to a keyword. "
            "Use this tool when the user asks for algorithm or coding questions. "
            "The input should be a clear search keyword."
        ),
        parameters=_KEYWORD_PARAMETERS,
    )
    search_url = "https://leetcode.cn/search/?q={keyword}"
    label = "Code"
