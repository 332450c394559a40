"""FastAPI dependency injection providers."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from chatbridge.core.session_id import is_valid_session_id
from chatbridge.runtime.session.registry import SessionRegistry
from chatbridge.runtime.session.worker import SessionHandle


def get_registry(request: Request) -> SessionRegistry:
    """
    Get the session registry from app state.

    Args:
        request: FastAPI request object

    Returns:
        SessionRegistry instance

    Raises:
        HTTPException: 503 if no registry is attached yet
    """
    registry: SessionRegistry | None = getattr(request.app.state, "registry", None)
    if registry is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Session registry is not available",
        )
    return registry


def get_session_handle(
    session_id: str,
    registry: Annotated[SessionRegistry, Depends(get_registry)],
) -> SessionHandle:
    """
    Resolve a session id path parameter to its handle.

    Args:
        session_id: Session identifier from the path
        registry: Session registry

    Returns:
        SessionHandle for the id

    Raises:
        HTTPException: 400 if the id is malformed, 404 if it is unknown
    """
    if not is_valid_session_id(session_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid session id: '{session_id}'",
        )
    handle = registry.find(session_id)
    if handle is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session '{session_id}' not found",
        )
    return handle


# Type aliases for annotating dependencies
Registry = Annotated[SessionRegistry, Depends(get_registry)]
Session = Annotated[SessionHandle, Depends(get_session_handle)]
