"""Session subsystem for chatbridge.

Provides the connection state machine, per-session workers, the registry
and its on-disk shadow.
"""

from chatbridge.runtime.session.registry import SessionRegistry
from chatbridge.runtime.session.state import ConnectionStateMachine, SessionEvent
from chatbridge.runtime.session.store import SessionStore
from chatbridge.runtime.session.worker import PipelineOutcome, PipelineResult, SessionHandle

__all__ = [
    "ConnectionStateMachine",
    "PipelineOutcome",
    "PipelineResult",
    "SessionEvent",
    "SessionHandle",
    "SessionRegistry",
    "SessionStore",
]
