"""Sliding-window admission control per contact."""

import logging
import time
from collections import deque

logger = logging.getLogger(__name__)


class RateLimiter:
    """Admit at most ``max_messages`` per contact within a trailing window.

    Each contact has an ordered list of admission timestamps. Rejected calls
    are not recorded, so a flooding contact cannot extend its own lockout.

    The window for a contact is only mutated by that contact's serialized
    pipeline, so no locking is needed here.
    """

    def __init__(self, max_messages: int = 2, window_seconds: float = 60.0):
        """Initialize the limiter.

        Args:
            max_messages: Admissions allowed within one window.
            window_seconds: Length of the trailing window.
        """
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_messages = max_messages
        self.window_seconds = window_seconds
        self._windows: dict[str, deque[float]] = {}

    def admit(self, contact_id: str, now: float | None = None) -> bool:
        """Decide whether a message from the contact may be processed.

        Args:
            contact_id: Contact the message came from.
            now: Current time in seconds (monotonic clock by default).

        Returns:
            True if admitted (and recorded), False if the window is full.
        """
        now = time.monotonic() if now is None else now
        window = self._windows.setdefault(contact_id, deque())
        self._drop_expired(window, now)

        if len(window) >= self.max_messages:
            return False

        window.append(now)
        return True

    def prune(self, now: float | None = None) -> int:
        """Remove contacts whose window holds no admissions.

        Returns:
            Number of contacts dropped.
        """
        now = time.monotonic() if now is None else now
        empty = []
        for contact_id, window in list(self._windows.items()):
            self._drop_expired(window, now)
            if not window:
                empty.append(contact_id)

        for contact_id in empty:
            self._windows.pop(contact_id, None)

        if empty:
            logger.debug(f"Pruned {len(empty)} idle rate-limit windows")
        return len(empty)

    def admissions(self, contact_id: str) -> list[float]:
        """Timestamps currently recorded for a contact (oldest first)."""
        return list(self._windows.get(contact_id, ()))

    @property
    def tracked_contacts(self) -> int:
        return len(self._windows)

    def clear(self) -> None:
        self._windows.clear()

    def _drop_expired(self, window: deque[float], now: float) -> None:
        cutoff = now - self.window_seconds
        while window and window[0] < cutoff:
            window.popleft()
