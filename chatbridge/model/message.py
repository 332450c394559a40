"""Domain models for messaging."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

# Messages from this address are status updates, never conversation turns.
BROADCAST_CONTACT_ID = "status@broadcast"


class MessageDirection(Enum):
    """Direction of a chat turn relative to the bridge."""

    INBOUND = "in"
    OUTBOUND = "out"


@dataclass
class InboundMessage:
    """A message delivered by the transport for one session.

    Attributes:
        contact_id: Transport address of the remote party.
        text: Message body.
        sender_name: Display name reported by the transport, if any.
        from_self: True when the transport echoes a message the session sent.
        message_id: Transport-assigned identifier, if any.
        timestamp: When the transport received the message.
        metadata: Transport-specific extras (never interpreted by the core).
    """

    contact_id: str
    text: str
    sender_name: str | None = None
    from_self: bool = False
    message_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_ignorable(self) -> bool:
        """Broadcast traffic and self echoes are not conversation events."""
        return self.from_self or self.contact_id == BROADCAST_CONTACT_ID

    @property
    def display_name(self) -> str:
        """Name used to address the contact in prompts."""
        return self.sender_name or self.contact_id


@dataclass(frozen=True)
class ChatHistoryEntry:
    """One stored turn of a conversation with a contact."""

    contact_id: str
    direction: MessageDirection
    text: str
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        """Serialize without the contact id (stored under the contact key)."""
        return {
            "direction": self.direction.value,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, contact_id: str, data: dict[str, Any]) -> "ChatHistoryEntry":
        """Rebuild an entry persisted by to_dict()."""
        return cls(
            contact_id=contact_id,
            direction=MessageDirection(data["direction"]),
            text=data["text"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )
