"""Connection state machine for a session."""

import logging
from enum import Enum

from chatbridge.core.errors import InvalidTransitionError
from chatbridge.model.session import SessionStatus

logger = logging.getLogger(__name__)


class SessionEvent(Enum):
    """Inputs that drive a session between connection states."""

    INITIALIZE = "initialize"
    PAIRING_CHALLENGE = "pairing_challenge"
    CREDENTIALS_REUSED = "credentials_reused"
    CREDENTIALS_CONFIRMED = "credentials_confirmed"
    HANDSHAKE_COMPLETE = "handshake_complete"
    AUTH_FAILURE = "auth_failure"
    TRANSPORT_LOST = "transport_lost"
    DESTROY = "destroy"


_S = SessionStatus
_E = SessionEvent

TRANSITIONS: dict[tuple[SessionStatus, SessionEvent], SessionStatus] = {
    (_S.CREATED, _E.INITIALIZE): _S.INITIALIZING,
    (_S.INITIALIZING, _E.PAIRING_CHALLENGE): _S.QR_PENDING,
    # A refreshed challenge keeps the session waiting for the scan
    (_S.QR_PENDING, _E.PAIRING_CHALLENGE): _S.QR_PENDING,
    (_S.INITIALIZING, _E.CREDENTIALS_REUSED): _S.AUTHENTICATED,
    (_S.QR_PENDING, _E.CREDENTIALS_CONFIRMED): _S.AUTHENTICATED,
    (_S.AUTHENTICATED, _E.HANDSHAKE_COMPLETE): _S.READY,
    (_S.INITIALIZING, _E.AUTH_FAILURE): _S.ERROR,
    (_S.QR_PENDING, _E.AUTH_FAILURE): _S.ERROR,
    (_S.AUTHENTICATED, _E.AUTH_FAILURE): _S.ERROR,
    (_S.READY, _E.AUTH_FAILURE): _S.ERROR,
    (_S.READY, _E.TRANSPORT_LOST): _S.DISCONNECTED,
    # Teardown is allowed from every live state
    (_S.CREATED, _E.DESTROY): _S.DESTROYED,
    (_S.INITIALIZING, _E.DESTROY): _S.DESTROYED,
    (_S.QR_PENDING, _E.DESTROY): _S.DESTROYED,
    (_S.AUTHENTICATED, _E.DESTROY): _S.DESTROYED,
    (_S.READY, _E.DESTROY): _S.DESTROYED,
    (_S.ERROR, _E.DESTROY): _S.DESTROYED,
    (_S.DISCONNECTED, _E.DESTROY): _S.DESTROYED,
}


class ConnectionStateMachine:
    """Track and validate a session's connection state.

    DESTROYED is absorbing: every event fired there is a silent no-op. Other
    events that have no edge from the current state are logged and ignored,
    or raise InvalidTransitionError when ``strict`` is set.
    """

    def __init__(self, state: SessionStatus = SessionStatus.CREATED, strict: bool = False):
        self._state = state
        self.strict = strict

    @property
    def state(self) -> SessionStatus:
        return self._state

    def can_fire(self, event: SessionEvent) -> bool:
        return (self._state, event) in TRANSITIONS

    def fire(self, event: SessionEvent) -> bool:
        """Apply an event.

        Returns:
            True if the state changed or was re-entered along a valid edge.

        Raises:
            InvalidTransitionError: In strict mode, for an event with no edge
                from a non-terminal state.
        """
        if self._state.is_terminal:
            return False

        target = TRANSITIONS.get((self._state, event))
        if target is None:
            if self.strict:
                raise InvalidTransitionError(self._state.value, event.value)
            logger.warning(f"Ignoring event '{event.value}' in state '{self._state.value}'")
            return False

        self._state = target
        return True
