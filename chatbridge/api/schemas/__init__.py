"""Pydantic schemas for API request/response models."""

from chatbridge.api.schemas.sessions import (
    CacheStatsResponse,
    HealthResponse,
    HistoryEntryResponse,
    HistoryResponse,
    MessageStatsResponse,
    SendMessageRequest,
    SendMessageResponse,
    SessionListResponse,
    SessionResponse,
    SessionStatsResponse,
)

__all__ = [
    "CacheStatsResponse",
    "HealthResponse",
    "HistoryEntryResponse",
    "HistoryResponse",
    "MessageStatsResponse",
    "SendMessageRequest",
    "SendMessageResponse",
    "SessionListResponse",
    "SessionResponse",
    "SessionStatsResponse",
]
