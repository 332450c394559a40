"""Exception hierarchy for chatbridge."""


class ChatBridgeError(Exception):
    """Base class for all chatbridge errors."""


class SessionNotFoundError(ChatBridgeError):
    """No session with the given id is registered."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class SessionNotReadyError(ChatBridgeError):
    """An operation that needs a READY session was attempted in another state."""

    def __init__(self, session_id: str, state: str):
        self.session_id = session_id
        self.state = state
        super().__init__(f"Session {session_id} is not ready (state: {state})")


class InvalidTransitionError(ChatBridgeError):
    """A state machine event is not allowed from the current state."""

    def __init__(self, state: str, event: str):
        self.state = state
        self.event = event
        super().__init__(f"Event '{event}' is not allowed in state '{state}'")


class CompletionError(ChatBridgeError):
    """The AI service failed or returned nothing usable."""


class CompletionConfigError(ChatBridgeError):
    """The AI service client cannot be used (missing credential, bad provider)."""


class PersistenceError(ChatBridgeError):
    """Writing or reading the shadow state failed."""


class SessionRecordError(ChatBridgeError):
    """A persisted session record does not match the expected schema."""
