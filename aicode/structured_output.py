"""Structured (JSON) output parsing of model answers."""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

from .config import config
from .models import ConversationTurn

if TYPE_CHECKING:
    from .chat_model import ChatModel
    from .listeners import ChatModelListenerService

logger = config.get_logger(__name__)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

REPORT_INSTRUCTIONS = """

Generate a learning report based on the user's information.
You must answer in JSON with the following fields:
- name: the user's name or the report title
- suggestionList: an array of learning suggestions, one concrete suggestion per element

Return only the JSON object and nothing else.
Example format:
{
  "name": "Learning report",
  "suggestionList": ["Suggestion 1", "Suggestion 2", "Suggestion 3"]
}"""

FALLBACK_REPORT_NAME = "Learning report"
FALLBACK_SUGGESTION = "Failed to parse the response, please try again"


class Report(BaseModel):
    """Learning report returned by the report endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    name: StrictStr
    suggestion_list: list[StrictStr] = Field(alias="suggestionList")


class ReportParseError(ValueError):
    """Raised when a model answer does not contain a valid report."""


def fallback_report() -> Report:
    return Report(name=FALLBACK_REPORT_NAME, suggestion_list=[FALLBACK_SUGGESTION])


def extract_report(text: str) -> Report:
    """Parse the first ``{`` to the last ``}`` of ``text`` as a Report.

    Prose or code fences around the object are ignored.

    Returns:
        The validated report.

    Raises:
        ReportParseError: If no JSON object is found, it does not parse, or it
            does not match the report shape.
    """
    match = _JSON_OBJECT.search(text or "")
    if match is None:
        msg = "No JSON found in response"
        raise ReportParseError(msg)

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        msg = f"Invalid JSON in response: {e}"
        raise ReportParseError(msg) from e

    try:
        return Report.model_validate(parsed)
    except ValidationError as e:
        msg = f"Response does not match the report schema: {e}"
        raise ReportParseError(msg) from e


class StructuredOutputService:
    """Asks the model for a JSON report and validates the answer."""

    def __init__(
        self,
        chat_model: ChatModel,
        listeners: ChatModelListenerService,
    ) -> None:
        self.chat_model = chat_model
        self.listeners = listeners

    async def chat_for_report(self, user_text: str, system_prompt: str) -> Report:
        """Generate a learning report for ``user_text``.

        Never raises: model failures and unparseable answers both produce the
        fallback report.

        Returns:
            The parsed report or the fallback report.
        """
        messages = [
            ConversationTurn.system(system_prompt + REPORT_INSTRUCTIONS).to_message(),
            ConversationTurn.user(user_text).to_message(),
        ]

        request_id = self.listeners.on_request(messages, self.chat_model.name)
        try:
            reply = await self.chat_model.invoke(messages)
        except Exception as e:
            self.listeners.on_error(request_id, e, self.chat_model.name, messages)
            logger.exception("Failed to generate report")
            return fallback_report()
        self.listeners.on_response(
            request_id, reply.content, self.chat_model.name, reply.token_usage
        )

        try:
            report = extract_report(reply.content)
        except ReportParseError:
            logger.exception("Failed to parse report")
            return fallback_report()

        logger.info("Generated report: %s", report.name)
        return report
