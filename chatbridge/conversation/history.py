"""Bounded, ordered chat history per contact."""

from collections import deque
from typing import Any

from chatbridge.model.message import ChatHistoryEntry


class ChatHistoryStore:
    """Per-contact FIFO log of conversation turns.

    Each contact keeps at most ``max_entries`` turns in arrival order; the
    oldest turn is evicted when the cap is exceeded.
    """

    def __init__(self, max_entries: int = 10):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: dict[str, deque[ChatHistoryEntry]] = {}

    def append(self, contact_id: str, entry: ChatHistoryEntry) -> None:
        """Record a turn for the contact, evicting the oldest past the cap."""
        log = self._entries.get(contact_id)
        if log is None:
            log = deque(maxlen=self.max_entries)
            self._entries[contact_id] = log
        log.append(entry)

    def recent_context(self, contact_id: str, k: int = 6) -> list[ChatHistoryEntry]:
        """Return up to ``k`` most recent turns in chronological order.

        Unknown contacts yield an empty list. Never mutates the store.
        """
        log = self._entries.get(contact_id)
        if not log or k <= 0:
            return []
        return list(log)[-k:]

    def entries(self, contact_id: str) -> list[ChatHistoryEntry]:
        """All stored turns for the contact, oldest first."""
        return list(self._entries.get(contact_id, ()))

    def contacts(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return sum(len(log) for log in self._entries.values())

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        """Serialize as a mapping of contact id to ordered turns."""
        return {
            contact_id: [entry.to_dict() for entry in log]
            for contact_id, log in self._entries.items()
        }

    @classmethod
    def from_dict(cls, data: dict[str, list[dict[str, Any]]], max_entries: int = 10) -> "ChatHistoryStore":
        """Rebuild a store from to_dict() output, keeping only the newest turns."""
        store = cls(max_entries=max_entries)
        for contact_id, items in data.items():
            for item in items:
                store.append(contact_id, ChatHistoryEntry.from_dict(contact_id, item))
        return store
