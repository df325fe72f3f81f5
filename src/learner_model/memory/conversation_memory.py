"""Tiered, capacity- and age-bounded conversation memory for one user."""

from collections.abc import Callable

import structlog

from learner_model.clock import now_ms
from learner_model.models.memory import (
    ConversationLog,
    ConversationLogEntry,
    MemoryTiers,
    MemoryView,
)

logger = structlog.get_logger()


class ConversationMemory:
    """Single ordered log with three read-only views.

    The short, medium and long term tiers are filters over one sequence, not
    separate stores. After every append the log holds at most
    ``long_term.capacity`` entries, all younger than ``long_term.duration_ms``.

    Args:
        log: The user's log, mutated in place by ``append``.
        tiers: Duration and capacity of each view.
        clock: Returns the current time in ms since epoch.
    """

    def __init__(
        self,
        log: ConversationLog,
        tiers: MemoryTiers | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.log = log
        self.tiers = tiers or MemoryTiers()
        self._clock = clock

    @property
    def entries(self) -> list[ConversationLogEntry]:
        return self.log.entries

    def __len__(self) -> int:
        return len(self.log.entries)

    def append(self, entry: ConversationLogEntry) -> None:
        """Add an entry at the tail, then evict by age and capacity."""
        long_term = self.tiers.long_term
        now = self._clock()

        entries = self.log.entries
        entries.append(entry)

        kept = [e for e in entries if now - e.timestamp < long_term.duration_ms]
        expired = len(entries) - len(kept)
        overflow = max(0, len(kept) - long_term.capacity)
        if overflow:
            del kept[:overflow]
        self.log.entries = kept

        if expired or overflow:
            logger.debug(
                "memory_evicted",
                user_id=self.log.user_id,
                expired=expired,
                overflow=overflow,
                remaining=len(kept),
            )

    def query(self, view: MemoryView | str = MemoryView.MEDIUM_TERM) -> list[ConversationLogEntry]:
        """Return the most recent entries visible in a view.

        Args:
            view: short_term, medium_term or long_term.

        Returns:
            At most ``capacity`` entries younger than ``duration_ms``,
            oldest first. The log itself is not modified.
        """
        tier = self.tiers.for_view(view)
        now = self._clock()
        visible = [e for e in self.log.entries if now - e.timestamp < tier.duration_ms]
        return visible[-tier.capacity:]
