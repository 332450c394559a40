"""Domain models for session management."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from chatbridge.core.errors import SessionRecordError

SESSION_RECORD_VERSION = 1


class SessionStatus(Enum):
    """Connection states a session moves through."""

    CREATED = "created"
    INITIALIZING = "initializing"
    QR_PENDING = "qr_pending"
    AUTHENTICATED = "authenticated"
    READY = "ready"
    DISCONNECTED = "disconnected"
    ERROR = "error"
    DESTROYED = "destroyed"

    @property
    def is_terminal(self) -> bool:
        return self is SessionStatus.DESTROYED

    @property
    def is_connecting(self) -> bool:
        return self in (
            SessionStatus.INITIALIZING,
            SessionStatus.QR_PENDING,
            SessionStatus.AUTHENTICATED,
        )


@dataclass
class MessageStats:
    """Per-session message counters. Only ever incremented."""

    received: int = 0
    sent: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"received": self.received, "sent": self.sent, "errors": self.errors}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MessageStats":
        unknown = set(data) - {"received", "sent", "errors"}
        if unknown:
            raise SessionRecordError(f"Unknown messageStats field(s): {sorted(unknown)}")
        return cls(
            received=int(data.get("received", 0)),
            sent=int(data.get("sent", 0)),
            errors=int(data.get("errors", 0)),
        )


@dataclass
class SessionRecord:
    """Closed, versioned record of one session's lifecycle.

    This is the shape persisted to the registry's shadow file. Unknown fields
    are rejected on load instead of being merged in.

    Attributes:
        id: Session identifier (see chatbridge.core.session_id).
        state: Current connection state.
        created_at: When the session was created.
        last_activity_at: Last state change or message; never moves backwards.
        message_stats: Received/sent/error counters.
        is_active: False once the session was torn down or cleaned up.
    """

    id: str
    state: SessionStatus = SessionStatus.CREATED
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_activity_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    message_stats: MessageStats = field(default_factory=MessageStats)
    is_active: bool = True

    FIELDS = frozenset(
        {"version", "id", "state", "createdAt", "lastActivityAt", "messageStats", "isActive"}
    )

    def touch(self, now: datetime | None = None) -> None:
        """Advance last_activity_at, ignoring timestamps older than the current one."""
        now = now or datetime.now(UTC)
        if now > self.last_activity_at:
            self.last_activity_at = now

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dictionary with ISO 8601 timestamps."""
        return {
            "version": SESSION_RECORD_VERSION,
            "id": self.id,
            "state": self.state.value,
            "createdAt": self.created_at.isoformat(),
            "lastActivityAt": self.last_activity_at.isoformat(),
            "messageStats": self.message_stats.to_dict(),
            "isActive": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionRecord":
        """Create a record from persisted data.

        Raises:
            SessionRecordError: On unknown fields, an unsupported version or
                malformed values.
        """
        if not isinstance(data, dict):
            raise SessionRecordError(f"Session record must be a mapping, got {type(data).__name__}")

        unknown = set(data) - cls.FIELDS
        if unknown:
            raise SessionRecordError(f"Unknown session record field(s): {sorted(unknown)}")

        version = data.get("version", SESSION_RECORD_VERSION)
        if version != SESSION_RECORD_VERSION:
            raise SessionRecordError(f"Unsupported session record version: {version}")

        try:
            return cls(
                id=data["id"],
                state=SessionStatus(data["state"]),
                created_at=datetime.fromisoformat(data["createdAt"]),
                last_activity_at=datetime.fromisoformat(data["lastActivityAt"]),
                message_stats=MessageStats.from_dict(data.get("messageStats", {})),
                is_active=bool(data.get("isActive", True)),
            )
        except (KeyError, ValueError, TypeError) as e:
            raise SessionRecordError(f"Malformed session record: {e}") from e
