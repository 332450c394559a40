"""Sessions API routes for creating, inspecting and driving sessions."""

from fastapi import APIRouter, HTTPException, status

from chatbridge.api.dependencies import Registry, Session
from chatbridge.api.schemas.sessions import (
    CacheStatsResponse,
    HistoryEntryResponse,
    HistoryResponse,
    MessageStatsResponse,
    SendMessageRequest,
    SendMessageResponse,
    SessionListResponse,
    SessionResponse,
    SessionStatsResponse,
)
from chatbridge.core.errors import CompletionConfigError, SessionNotReadyError
from chatbridge.runtime.session.worker import PipelineOutcome, SessionHandle

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _to_response(handle: SessionHandle) -> SessionResponse:
    record = handle.record
    cache = handle.responder.cache
    return SessionResponse(
        id=record.id,
        state=handle.state.value,
        created_at=record.created_at,
        last_activity_at=record.last_activity_at,
        message_stats=MessageStatsResponse(**record.message_stats.to_dict()),
        is_active=record.is_active,
        pairing_challenge=handle.pairing_challenge,
        last_error=handle.last_error,
        contacts=len(handle.history.contacts()),
        busy=handle.is_busy,
        cache=CacheStatsResponse(**cache.stats()) if cache is not None else None,
    )


# =============================================================================
# Session Collection
# =============================================================================


@router.get("", response_model=SessionListResponse)
async def list_sessions(registry: Registry) -> SessionListResponse:
    """List all registered sessions with aggregate statistics."""
    return SessionListResponse(
        sessions=[_to_response(handle) for handle in registry.handles()],
        stats=SessionStatsResponse(**registry.stats()),
    )


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(registry: Registry) -> SessionResponse:
    """Create a session and start connecting it to the transport.

    The session is returned in whatever state it reached so far; poll
    GET /sessions/{id} for the pairing challenge and READY.

    Raises:
        HTTPException: 503 if the completion service is misconfigured
    """
    try:
        handle = await registry.create()
    except CompletionConfigError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Session initialization failed: {e}",
        ) from e
    return _to_response(handle)


# =============================================================================
# Single Session
# =============================================================================


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(handle: Session) -> SessionResponse:
    """Get the status of one session.

    Raises:
        HTTPException: 400 for a malformed id, 404 if unknown
    """
    return _to_response(handle)


@router.delete("/{session_id}", response_model=SessionResponse)
async def destroy_session(handle: Session, registry: Registry) -> SessionResponse:
    """Destroy a session. Destroying an already destroyed session succeeds.

    Raises:
        HTTPException: 400 for a malformed id, 404 if unknown
    """
    await registry.destroy(handle.id)
    return _to_response(handle)


@router.post("/{session_id}/messages", response_model=SendMessageResponse)
async def send_message(handle: Session, data: SendMessageRequest) -> SendMessageResponse:
    """Send an explicit message through a READY session.

    Failed deliveries are not retried; resubmit to try again.

    Raises:
        HTTPException: 409 if the session is not READY, 502 if the transport
            rejected the message
    """
    try:
        result = await handle.send_text(data.contact_id, data.text)
    except SessionNotReadyError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    if result.outcome is PipelineOutcome.DELIVERY_FAILED:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Delivery failed: {result.error}",
        )
    return SendMessageResponse(
        outcome=result.outcome.value,
        contact_id=result.contact_id,
        message_id=result.message_id,
    )


@router.get("/{session_id}/history/{contact_id}", response_model=HistoryResponse)
async def get_history(handle: Session, contact_id: str) -> HistoryResponse:
    """Get the stored conversation with one contact, oldest first."""
    return HistoryResponse(
        session_id=handle.id,
        contact_id=contact_id,
        entries=[
            HistoryEntryResponse(
                direction=entry.direction.value,
                text=entry.text,
                timestamp=entry.timestamp,
            )
            for entry in handle.history.entries(contact_id)
        ],
    )
