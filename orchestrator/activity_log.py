"""Append-only activity log for recovery operations."""

import logging
from collections import deque
from typing import Callable, Iterator

from schemas.operation_state import LogCategory, LogEntry

logger = logging.getLogger("orchestrator.activity")


class ActivityLog:
    """Arrival-ordered record of transitions, task events and command outcomes.

    ``append`` is the only mutator. Entries are frozen and numbered in arrival
    order, so readers always see a growing prefix of the same sequence. With
    ``max_entries`` set, only the newest entries are retained; sequence
    numbers keep counting.
    """

    def __init__(self, max_entries: int | None = None) -> None:
        self._entries: deque[LogEntry] = deque(maxlen=max_entries)
        self._next_sequence = 0
        self._listeners: list[Callable[[LogEntry], None]] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(tuple(self._entries))

    @property
    def total_appended(self) -> int:
        """Number of entries ever written, including evicted ones."""
        return self._next_sequence

    def append(self, category: LogCategory, message: str) -> LogEntry:
        entry = LogEntry(sequence=self._next_sequence, category=category, message=message)
        self._next_sequence += 1
        self._entries.append(entry)

        logger.info("[%s] %s", category.value, message)

        for listener in self._listeners:
            try:
                listener(entry)
            except Exception:
                logger.exception("Activity log listener failed")
        return entry

    def subscribe(self, listener: Callable[[LogEntry], None]) -> Callable[[], None]:
        """Register a listener for new entries.

        Returns:
            Function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def entries(self, category: LogCategory | None = None) -> list[LogEntry]:
        """Return retained entries, optionally filtered by category."""
        if category is None:
            return list(self._entries)
        return [e for e in self._entries if e.category == category]

    def since(self, sequence: int) -> list[LogEntry]:
        """Return retained entries with a sequence number >= ``sequence``."""
        return [e for e in self._entries if e.sequence >= sequence]

    def tail(self, count: int) -> list[LogEntry]:
        if count <= 0:
            return []
        return list(self._entries)[-count:]
