"""Configuration package for chatbridge.

This package provides Pydantic configuration models and loading utilities.
"""

from chatbridge.core.config.loader import (
    check_unexpanded_vars,
    expand_env_vars,
    expand_env_vars_recursive,
    load_config,
)
from chatbridge.core.config.models import (
    ApiConfig,
    CacheConfig,
    CompletionConfig,
    Config,
    HistoryConfig,
    LoggingConfig,
    PersonaConfig,
    RateLimitConfig,
    SessionsConfig,
    TransportConfig,
    TypingConfig,
)

__all__ = [
    # Models
    "ApiConfig",
    "CacheConfig",
    "CompletionConfig",
    "Config",
    "HistoryConfig",
    "LoggingConfig",
    "PersonaConfig",
    "RateLimitConfig",
    "SessionsConfig",
    "TransportConfig",
    "TypingConfig",
    # Loaders
    "check_unexpanded_vars",
    "expand_env_vars",
    "expand_env_vars_recursive",
    "load_config",
]
