"""Bounded per-conversation message memory."""

from collections import deque

from .config import config
from .models import ConversationTurn, MemoryId

logger = config.get_logger(__name__)


class ChatMemory:
    """In-process message window keyed by memory id.

    Each conversation keeps at most ``max_messages`` turns; adding past the cap
    drops the oldest turns first. Nothing survives a process restart.
    """

    def __init__(self, max_messages: int | None = None) -> None:
        """Initialize the memory store.

        Args:
            max_messages: Per-conversation cap. If None, uses
                config.MEMORY_MAX_MESSAGES.

        Raises:
            ValueError: If the cap is smaller than one.
        """
        if max_messages is None:
            max_messages = config.MEMORY_MAX_MESSAGES
        if max_messages < 1:
            msg = f"max_messages must be at least 1, got {max_messages}"
            raise ValueError(msg)
        self.max_messages = max_messages
        self._store: dict[MemoryId, deque[ConversationTurn]] = {}

    def get_history(self, memory_id: MemoryId) -> list[ConversationTurn]:
        """Return the turns for a conversation, oldest first."""  # noqa: DOC201
        return list(self._store.get(memory_id, ()))

    def add_message(self, memory_id: MemoryId, turn: ConversationTurn) -> None:
        history = self._store.get(memory_id)
        if history is None:
            history = deque(maxlen=self.max_messages)
            self._store[memory_id] = history
        history.append(turn)
        logger.debug("Memory %s: %d messages", memory_id, len(history))

    def clear(self, memory_id: MemoryId) -> None:
        self._store.pop(memory_id, None)
        logger.info("Memory %s cleared", memory_id)

    def list_ids(self) -> set[MemoryId]:
        return set(self._store)
