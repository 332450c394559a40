"""Session identifier generation and validation.

Identifiers look like ``sess_1760871234567_9f86d081884c7d65``: a millisecond
timestamp that never decreases within the process, followed by 8 bytes from
the OS secure random source.
"""

import re
import secrets
import time
from threading import Lock

SESSION_ID_PREFIX = "sess"
SESSION_ID_PATTERN = re.compile(rf"^{SESSION_ID_PREFIX}_\d+_[0-9a-f]{{16}}$")

_clock_lock = Lock()
_last_timestamp_ms = 0


def _monotonic_timestamp_ms() -> int:
    """Wall-clock milliseconds, clamped so successive calls never go backwards."""
    global _last_timestamp_ms
    with _clock_lock:
        now_ms = time.time_ns() // 1_000_000
        if now_ms < _last_timestamp_ms:
            now_ms = _last_timestamp_ms
        _last_timestamp_ms = now_ms
        return now_ms


def generate_session_id() -> str:
    """Create a new session identifier.

    Returns:
        Identifier in format "sess_<timestamp_ms>_<16 hex chars>".
    """
    return f"{SESSION_ID_PREFIX}_{_monotonic_timestamp_ms()}_{secrets.token_hex(8)}"


def is_valid_session_id(session_id: str) -> bool:
    """Check the identifier format without consulting any registry."""
    return bool(SESSION_ID_PATTERN.fullmatch(session_id))
