"""Core functionality for chatbridge: configuration, errors, logging and ids."""

from chatbridge.core.config import Config, load_config
from chatbridge.core.errors import (
    ChatBridgeError,
    CompletionConfigError,
    CompletionError,
    InvalidTransitionError,
    PersistenceError,
    SessionNotFoundError,
    SessionNotReadyError,
    SessionRecordError,
)
from chatbridge.core.session_id import generate_session_id, is_valid_session_id

__all__ = [
    "Config",
    "load_config",
    # Errors
    "ChatBridgeError",
    "CompletionConfigError",
    "CompletionError",
    "InvalidTransitionError",
    "PersistenceError",
    "SessionNotFoundError",
    "SessionNotReadyError",
    "SessionRecordError",
    # Session ids
    "generate_session_id",
    "is_valid_session_id",
]
