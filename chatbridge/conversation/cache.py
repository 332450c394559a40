"""TTL-bounded memoization of generated replies."""

import time
from collections import OrderedDict
from collections.abc import Callable

_HASH_MASK = (1 << 64) - 1


def normalize_text(text: str) -> str:
    """Lowercase and collapse whitespace so trivially different inputs share a key."""
    return " ".join(text.lower().split())


def content_hash(text: str) -> int:
    """64-bit polynomial rolling hash (h * 31 + code point), order-sensitive."""
    h = 0
    for ch in text:
        h = (h * 31 + ord(ch)) & _HASH_MASK
    return h


def cache_key(text: str) -> str:
    """Deterministic cache key for an inbound message."""
    return f"response_{content_hash(normalize_text(text)):016x}"


class ResponseCache:
    """In-memory reply cache with per-entry expiry.

    Expired entries are treated as absent on read and dropped lazily; when
    the cache is full the oldest entry is evicted.
    """

    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, str]] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> str | None:
        item = self._entries.get(key)
        if item is None:
            self.misses += 1
            return None

        expires_at, value = item
        if self._clock() >= expires_at:
            del self._entries[key]
            self.misses += 1
            return None

        self.hits += 1
        return value

    def set(self, key: str, value: str) -> None:
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.max_entries:
            self._entries.popitem(last=False)
        self._entries[key] = (self._clock() + self.ttl_seconds, value)

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        now = self._clock()
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> dict[str, int]:
        return {"entries": len(self._entries), "hits": self.hits, "misses": self.misses}
