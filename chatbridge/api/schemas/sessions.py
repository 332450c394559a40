"""Pydantic schemas for Sessions API endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class MessageStatsResponse(BaseModel):
    """Per-session message counters."""

    received: int
    sent: int
    errors: int

    model_config = ConfigDict(extra="forbid")


class CacheStatsResponse(BaseModel):
    """Response cache statistics for one session."""

    entries: int
    hits: int
    misses: int

    model_config = ConfigDict(extra="forbid")


class SessionResponse(BaseModel):
    """Status of a single session.

    Attributes:
        id: Session identifier
        state: Connection state (e.g., "ready", "qr_pending")
        created_at: When the session was created
        last_activity_at: Last state change or message
        message_stats: Received/sent/error counters
        is_active: False once the session was destroyed
        pairing_challenge: Pending pairing challenge, while waiting for a scan
        last_error: Most recent transport or initialization error
        contacts: Number of contacts with stored history
        busy: Whether messages are queued or being processed
        cache: Response cache statistics (None when caching is disabled)
    """

    id: str
    state: str
    created_at: datetime
    last_activity_at: datetime
    message_stats: MessageStatsResponse
    is_active: bool
    pairing_challenge: str | None = None
    last_error: str | None = None
    contacts: int = 0
    busy: bool = False
    cache: CacheStatsResponse | None = None

    model_config = ConfigDict(extra="forbid")


class SessionStatsResponse(BaseModel):
    """Aggregate counts across all registered sessions."""

    total: int
    active: int
    ready: int
    connecting: int
    error: int
    destroyed: int
    total_messages: int

    model_config = ConfigDict(extra="forbid")


class SessionListResponse(BaseModel):
    """Response model for GET /sessions."""

    sessions: list[SessionResponse]
    stats: SessionStatsResponse

    model_config = ConfigDict(extra="forbid")


class SendMessageRequest(BaseModel):
    """Request body for an explicit outbound message."""

    contact_id: str = Field(min_length=1, description="Transport address of the recipient")
    text: str = Field(min_length=1, description="Message body")

    model_config = ConfigDict(extra="forbid")


class SendMessageResponse(BaseModel):
    """Result of an explicit outbound message."""

    outcome: str
    contact_id: str
    message_id: str | None = None

    model_config = ConfigDict(extra="forbid")


class HistoryEntryResponse(BaseModel):
    """One stored conversation turn."""

    direction: str
    text: str
    timestamp: datetime

    model_config = ConfigDict(extra="forbid")


class HistoryResponse(BaseModel):
    """Stored conversation with one contact, oldest first."""

    session_id: str
    contact_id: str
    entries: list[HistoryEntryResponse]

    model_config = ConfigDict(extra="forbid")


class HealthResponse(BaseModel):
    """Response model for GET /health."""

    status: str
    timestamp: datetime
    active_sessions: int

    model_config = ConfigDict(extra="forbid")
