"""HTTP management API for chatbridge."""

from chatbridge.api.app import attach_registry, create_app

__all__ = ["attach_registry", "create_app"]
