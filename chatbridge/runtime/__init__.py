"""Runtime services for chatbridge.

This package provides session management, scheduling and composition.
"""

# Note: ChatBridge not imported here to keep the API layer import-light
# Import it directly: from chatbridge.runtime.bridge import ChatBridge

from chatbridge.runtime.scheduling.maintenance import MaintenanceScheduler
from chatbridge.runtime.session.registry import SessionRegistry
from chatbridge.runtime.session.store import SessionStore
from chatbridge.runtime.session.worker import PipelineOutcome, PipelineResult, SessionHandle

__all__ = [
    "MaintenanceScheduler",
    "PipelineOutcome",
    "PipelineResult",
    "SessionHandle",
    "SessionRegistry",
    "SessionStore",
]
