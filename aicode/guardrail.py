"""Keyword guardrail applied to user input before any other work."""

import re
from collections.abc import Iterable
from dataclasses import dataclass

from .config import config

logger = config.get_logger(__name__)

DEFAULT_SENSITIVE_WORDS = ("kill", "evil")

_TOKEN_SPLIT = re.compile(r"\W+")


@dataclass(frozen=True)
class GuardrailResult:
    """Outcome of an input check."""

    safe: bool
    reason: str | None = None


class SafeInputGuardrail:
    """Rejects input containing a banned word as a whole token."""

    def __init__(self, banned_words: Iterable[str] = DEFAULT_SENSITIVE_WORDS) -> None:
        self._words: set[str] = {word.lower() for word in banned_words}

    def validate(self, text: str) -> GuardrailResult:
        """Check user input against the banned word set.

        Matching is case-insensitive and per token, so a banned word that only
        appears inside a longer word does not trigger.

        Returns:
            GuardrailResult with ``safe`` False and a reason on the first hit.
        """
        for token in _TOKEN_SPLIT.split(text.lower()):
            if token and token in self._words:
                logger.warning("Sensitive word detected: %s", token)
                return GuardrailResult(
                    safe=False, reason=f"Sensitive word detected: {token}"
                )
        return GuardrailResult(safe=True)

    def add_word(self, word: str) -> None:
        self._words.add(word.lower())
        logger.info("Added sensitive word: %s", word)

    def remove_word(self, word: str) -> None:
        self._words.discard(word.lower())
        logger.info("Removed sensitive word: %s", word)

    def words(self) -> list[str]:
        return sorted(self._words)
