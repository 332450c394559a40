"""FastAPI application factory for the chatbridge management API."""

from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatbridge.api.routes.monitoring import router as monitoring_router
from chatbridge.api.routes.sessions import router as sessions_router
from chatbridge.runtime.session.registry import SessionRegistry


def create_app(config: dict[str, Any] | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    The app does not own the registry's lifecycle; whoever created the
    registry opens and closes it.

    Args:
        config: Application configuration dictionary. Expected keys:
            - registry: Optional SessionRegistry instance
            - cors_origins: List of allowed CORS origins (default: ["*"])

    Returns:
        Configured FastAPI application instance
    """
    default_config: dict[str, Any] = {
        "registry": None,
        "cors_origins": ["*"],
    }
    app_config = {**default_config, **(config or {})}

    app = FastAPI(
        title="chatbridge API",
        description="REST API for managing chat bridge sessions",
        version="0.1.0",
    )

    app.state.config = app_config
    app.state.registry = app_config["registry"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_config["cors_origins"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Mount routes at /api/v1
    api_v1 = FastAPI()
    api_v1.include_router(monitoring_router)
    api_v1.include_router(sessions_router)

    # Share state with sub-app so dependencies can reach the registry
    api_v1.state = app.state

    app.mount("/api/v1", api_v1)

    return app


def attach_registry(app: FastAPI, registry: SessionRegistry) -> None:
    """
    Attach a registry to a FastAPI application created without one.

    Args:
        app: FastAPI application instance
        registry: Open SessionRegistry
    """
    app.state.registry = registry
