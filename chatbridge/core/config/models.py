"""Pydantic configuration models for chatbridge.

This module defines all configuration models used throughout chatbridge.
For loading logic, see loader.py.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class LoggingConfig(BaseModel):
    """Configuration for logging system."""

    level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")
    directory: str = Field(default="logs", description="Directory for log files")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB before rotation")
    backup_count: int = Field(default=5, description="Number of backup log files to keep")
    per_session: bool = Field(default=True, description="Create separate log files per session")


class SessionsConfig(BaseModel):
    """Session lifecycle and worker settings."""

    inbox_capacity: int = Field(
        default=100,
        gt=0,
        description="Bounded inbound channel size per session; a full channel blocks the publisher",
    )
    max_concurrent_messages: int = Field(
        default=8,
        gt=0,
        description="Max messages processed concurrently across contacts in one session",
    )
    strict_transitions: bool = Field(
        default=False,
        description="Raise on invalid state machine events instead of logging and ignoring them",
    )
    cleanup_interval_hours: float = Field(
        default=6, ge=0, description="Hours between stale-session sweeps (0 disables)"
    )
    max_age_hours: float = Field(
        default=24, gt=0, description="Inactive sessions idle longer than this are purged"
    )
    persist_interval_seconds: int = Field(
        default=300, ge=0, description="Seconds between history/session snapshots (0 disables)"
    )


class RateLimitConfig(BaseModel):
    """Sliding-window admission control per contact."""

    max_messages: int = Field(default=2, gt=0, description="Admissions allowed per window")
    window_seconds: float = Field(default=60, gt=0, description="Length of the trailing admission window")
    prune_interval_seconds: int = Field(
        default=3600, ge=0, description="Seconds between sweeps of empty windows (0 disables)"
    )


class HistoryConfig(BaseModel):
    """Per-contact chat history settings."""

    max_entries: int = Field(default=10, gt=0, description="Entries kept per contact (FIFO eviction)")
    context_size: int = Field(default=6, ge=0, description="Entries handed to the prompt builder")
    persist: bool = Field(default=True, description="Snapshot history to the data directory")


class CacheConfig(BaseModel):
    """Response cache settings."""

    enabled: bool = Field(default=True, description="Memoize generated replies by message text")
    ttl_seconds: float = Field(default=3600, gt=0, description="Seconds before a cached reply expires")
    max_entries: int = Field(default=1000, gt=0, description="Entries kept before the oldest is evicted")


class TypingConfig(BaseModel):
    """Simulated typing latency."""

    enabled: bool = Field(default=True, description="Show a typing indicator and wait before replying")
    min_base_ms: int = Field(default=1000, ge=0, description="Lower bound of the random base delay")
    max_base_ms: int = Field(default=3000, ge=0, description="Upper bound of the random base delay")
    per_char_ms: int = Field(default=50, ge=0, description="Extra delay per reply character")
    max_delay_ms: int = Field(default=5000, ge=0, description="Hard ceiling on the total delay")

    @model_validator(mode="after")
    def check_bounds(self) -> "TypingConfig":
        if self.min_base_ms > self.max_base_ms:
            raise ValueError("typing.min_base_ms must not exceed typing.max_base_ms")
        return self


class CompletionConfig(BaseModel):
    """AI completion service settings."""

    model: str = Field(default="openai:gpt-4o-mini", description="Model identifier as provider:model")
    api_key: str | None = Field(default=None, description="API key for the model provider")
    base_url: str | None = Field(
        default=None, description="Base URL for OpenAI-compatible endpoints (openai provider only)"
    )
    temperature: float = Field(default=0.8, description="Sampling temperature")
    top_p: float = Field(default=0.95, description="Nucleus sampling cutoff")
    max_tokens: int = Field(default=200, gt=0, description="Max tokens in a generated reply")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Wall-clock timeout per completion call")
    humanize_probability: float = Field(
        default=0.2, ge=0, le=1, description="Chance of swapping words for casual variants"
    )

    @field_validator("model")
    @classmethod
    def check_model_format(cls, value: str) -> str:
        if ":" not in value:
            raise ValueError(f"Model must be in 'provider:model' format, got '{value}'")
        return value


class PersonaConfig(BaseModel):
    """Persona used when composing completion requests."""

    default_contact_name: str = Field(default="Friend", description="Name used when the sender has none")
    max_words: int = Field(default=50, gt=0, description="Reply length ceiling given to the model")


class TransportConfig(BaseModel):
    """Messaging transport binding."""

    type: Literal["telegram"] = Field(default="telegram", description="Transport implementation")
    token: str | None = Field(default=None, description="Bot token for the transport")
    tokens: list[str] = Field(
        default_factory=list,
        description="Extra bot tokens; every live session binds one token from the pool",
    )
    allowed_users: list[int] = Field(default_factory=list, description="Allowed user IDs (empty = allow all)")

    model_config = {"extra": "allow"}


class ApiConfig(BaseModel):
    """HTTP management API."""

    host: str = Field(default="127.0.0.1", description="Bind address")
    port: int = Field(default=8000, description="Bind port")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")


class Config(BaseModel):
    """Root configuration for chatbridge."""

    data_dir: Path = Field(default=Path("data"), description="Directory for session and history snapshots")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging configuration")
    sessions: SessionsConfig = Field(default_factory=SessionsConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    typing: TypingConfig = Field(default_factory=TypingConfig)
    completion: CompletionConfig = Field(default_factory=CompletionConfig)
    persona: PersonaConfig = Field(default_factory=PersonaConfig)
    transport: TransportConfig = Field(default_factory=TransportConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    model_config = {"extra": "allow"}
