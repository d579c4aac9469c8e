"""Tools the assistant can run on the model's behalf."""

from .question_search import CodeQuestionTool, InterviewQuestionTool
from .registry import ToolArgumentError, ToolNotFoundError, ToolRegistry
from .selector import KeywordRule, KeywordToolSelector
from .web_search import WebSearchTool


def build_default_registry() -> ToolRegistry:
    """Register the built-in web, interview and code question tools."""  # noqa: DOC201
    registry = ToolRegistry()
    for tool in (WebSearchTool(), InterviewQuestionTool(), CodeQuestionTool()):
        registry.register(tool.definition, tool)
    return registry


__all__ = [
    "CodeQuestionTool",
    "InterviewQuestionTool",
    "KeywordRule",
    "KeywordToolSelector",
    "ToolArgumentError",
    "ToolNotFoundError",
    "ToolRegistry",
    "WebSearchTool",
    "build_default_registry",
]
