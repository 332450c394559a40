"""chatbridge domain models - pure business entities.

Dataclasses and enums for sessions and chat turns. They depend only on the
error types in chatbridge.core.errors.
"""

from chatbridge.model.message import (
    BROADCAST_CONTACT_ID,
    ChatHistoryEntry,
    InboundMessage,
    MessageDirection,
)
from chatbridge.model.session import (
    SESSION_RECORD_VERSION,
    MessageStats,
    SessionRecord,
    SessionStatus,
)

__all__ = [
    # Message
    "BROADCAST_CONTACT_ID",
    "ChatHistoryEntry",
    "InboundMessage",
    "MessageDirection",
    # Session
    "SESSION_RECORD_VERSION",
    "MessageStats",
    "SessionRecord",
    "SessionStatus",
]
