"""Base transport adapter interface."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from chatbridge.model.message import InboundMessage


class Presence(Enum):
    """Presence indicator shown to a contact."""

    TYPING = "typing"
    IDLE = "idle"


class TransportEventType(Enum):
    """Events a transport publishes for a session."""

    PAIRED = "paired"
    AUTHENTICATED = "authenticated"
    AUTH_FAILURE = "auth_failure"
    READY = "ready"
    MESSAGE = "message"
    DISCONNECTED = "disconnected"
    ERROR = "error"


@dataclass(frozen=True)
class TransportEvent:
    """One inbound event from the transport.

    Only the field matching ``type`` is populated: ``challenge`` for PAIRED,
    ``inbound`` for MESSAGE, ``reason`` for DISCONNECTED, ``detail`` for
    AUTH_FAILURE and ERROR.
    """

    type: TransportEventType
    challenge: str | None = None
    inbound: InboundMessage | None = None
    reason: str | None = None
    detail: str | None = None

    @classmethod
    def paired(cls, challenge: str) -> "TransportEvent":
        return cls(TransportEventType.PAIRED, challenge=challenge)

    @classmethod
    def authenticated(cls) -> "TransportEvent":
        return cls(TransportEventType.AUTHENTICATED)

    @classmethod
    def auth_failure(cls, detail: str) -> "TransportEvent":
        return cls(TransportEventType.AUTH_FAILURE, detail=detail)

    @classmethod
    def ready(cls) -> "TransportEvent":
        return cls(TransportEventType.READY)

    @classmethod
    def message(cls, inbound: InboundMessage) -> "TransportEvent":
        return cls(TransportEventType.MESSAGE, inbound=inbound)

    @classmethod
    def disconnected(cls, reason: str) -> "TransportEvent":
        return cls(TransportEventType.DISCONNECTED, reason=reason)

    @classmethod
    def error(cls, detail: str) -> "TransportEvent":
        return cls(TransportEventType.ERROR, detail=detail)


@dataclass(frozen=True)
class DeliveryAck:
    """Result of an outbound send."""

    ok: bool
    message_id: str | None = None
    error: str | None = None

    @classmethod
    def success(cls, message_id: str | None = None) -> "DeliveryAck":
        return cls(ok=True, message_id=message_id)

    @classmethod
    def failure(cls, error: str) -> "DeliveryAck":
        return cls(ok=False, error=error)


# Publishing blocks while the session's inbound channel is full
Publish = Callable[[TransportEvent], Awaitable[None]]


class TransportAdapter(ABC):
    """Abstract base class for messaging transports.

    A transport keeps one connection per session. It reports connection
    progress and inbound messages by awaiting the ``publish`` callback it was
    given in ``connect``; it never calls into session state directly.
    """

    name: str = "base"

    @abstractmethod
    async def connect(self, session_id: str, publish: Publish) -> None:
        """Open the connection for a session and start publishing events."""
        ...

    @abstractmethod
    async def disconnect(self, session_id: str) -> None:
        """Close the session's connection. Unknown sessions are ignored."""
        ...

    @abstractmethod
    async def send_text(self, session_id: str, contact_id: str, text: str) -> DeliveryAck:
        """Deliver a text message to a contact.

        Returns:
            DeliveryAck describing success or the rejection reason.
        """
        ...

    @abstractmethod
    async def set_presence(self, session_id: str, contact_id: str, presence: Presence) -> None:
        """Show or clear a presence indicator for a contact."""
        ...

    async def close(self) -> None:
        """Release transport-wide resources. Default implementation is a no-op."""
        pass
