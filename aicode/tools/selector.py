"""Static keyword rules used when the model cannot call tools natively."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from aicode.models import ToolCallRecord


@dataclass(frozen=True)
class KeywordRule:
    """Invoke ``tool_name`` with the raw message when any keyword appears."""

    tool_name: str
    argument: str
    keywords: tuple[str, ...]


DEFAULT_RULES = (
    KeywordRule(
        tool_name="interviewQuestionSearch",
        argument="keyword",
        keywords=("interview", "面试"),
    ),
    KeywordRule(
        tool_name="codeQuestionSearch",
        argument="keyword",
        keywords=("leetcode", "algorithm", "coding problem", "code question", "算法"),
    ),
    KeywordRule(
        tool_name="web_search",
        argument="query",
        keywords=("search", "latest", "news", "today", "搜索", "最新"),
    ),
)


class KeywordToolSelector:
    """Decides which tools to run by case-insensitive substring checks."""

    def __init__(self, rules: tuple[KeywordRule, ...] = DEFAULT_RULES) -> None:
        self.rules = rules

    def select(self, message: str) -> list[ToolCallRecord]:
        lowered = message.lower()
        return [
            ToolCallRecord(
                id=f"kw_{uuid.uuid4().hex[:8]}",
                name=rule.tool_name,
                arguments={rule.argument: message},
            )
            for rule in self.rules
            if any(keyword in lowered for keyword in rule.keywords)
        ]
