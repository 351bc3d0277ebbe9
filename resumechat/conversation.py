"""Bounded conversation memory used for conversational continuity."""

import datetime

from .config import config
from .exceptions import ConfigurationError
from .models import MemoryTurn

logger = config.get_logger(__name__)


class ConversationMemory:
    """FIFO of the most recent question/answer turns.

    Holds at most ``max_turns`` turns; recording past the bound evicts the
    oldest one. Nothing else removes turns, a new session gets a new memory.
    """

    def __init__(self, max_turns: int | None = None) -> None:
        if max_turns is None:
            max_turns = config.MEMORY_MAX_TURNS
        if max_turns < 1:
            msg = f"Memory must hold at least one turn, got {max_turns}"
            raise ConfigurationError(msg)
        self.max_turns = max_turns
        self._turns: list[MemoryTurn] = []

    def record(self, question: str, answer: str) -> MemoryTurn:
        """Append a turn, evicting the oldest one when over the bound.

        Returns:
            MemoryTurn: The turn that was stored.
        """
        turn = MemoryTurn(
            question=question,
            answer=answer,
            timestamp=datetime.datetime.now(tz=datetime.UTC).isoformat(),
        )
        self._turns.append(turn)
        if len(self._turns) > self.max_turns:
            evicted = self._turns.pop(0)
            logger.debug("Evicted oldest memory turn: %s", evicted.question[:50])
        return turn

    def recent(self) -> list[MemoryTurn]:
        """Return the remembered turns, oldest first."""
        return list(self._turns)

    def __len__(self) -> int:
        return len(self._turns)
