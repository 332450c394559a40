"""Messaging transport adapters."""

from chatbridge.channels.base import (
    DeliveryAck,
    Presence,
    Publish,
    TransportAdapter,
    TransportEvent,
    TransportEventType,
)
from chatbridge.channels.factory import create_transport

__all__ = [
    "DeliveryAck",
    "Presence",
    "Publish",
    "TransportAdapter",
    "TransportEvent",
    "TransportEventType",
    "create_transport",
]
