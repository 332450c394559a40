"""Shared fakes and fixtures for chatbridge tests."""

import asyncio
import random
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from chatbridge.channels.base import DeliveryAck, Presence, Publish, TransportAdapter, TransportEvent
from chatbridge.conversation.prompts import PromptPayload
from chatbridge.core.config import Config
from chatbridge.core.errors import CompletionConfigError, CompletionError
from chatbridge.runtime.session.registry import SessionRegistry
from chatbridge.runtime.session.store import SessionStore


class FakeTransport(TransportAdapter):
    """In-memory transport that records every outbound call."""

    name = "fake"

    def __init__(self, auto_ready: bool = True):
        self.auto_ready = auto_ready
        self.publishers: dict[str, Publish] = {}
        self.sent: list[tuple[str, str, str]] = []
        self.presence: list[tuple[str, str, Presence]] = []
        self.disconnected: list[str] = []
        self.fail_sends = False
        self.closed = False

    async def connect(self, session_id: str, publish: Publish) -> None:
        self.publishers[session_id] = publish
        if self.auto_ready:
            await publish(TransportEvent.authenticated())
            await publish(TransportEvent.ready())

    async def disconnect(self, session_id: str) -> None:
        self.publishers.pop(session_id, None)
        self.disconnected.append(session_id)

    async def send_text(self, session_id: str, contact_id: str, text: str) -> DeliveryAck:
        if self.fail_sends:
            return DeliveryAck.failure("recipient unreachable")
        self.sent.append((session_id, contact_id, text))
        return DeliveryAck.success(f"msg-{len(self.sent)}")

    async def set_presence(self, session_id: str, contact_id: str, presence: Presence) -> None:
        self.presence.append((session_id, contact_id, presence))

    async def close(self) -> None:
        self.closed = True

    async def wait_for_sends(self, count: int, timeout: float = 2.0) -> None:
        async def _poll() -> None:
            while len(self.sent) < count:
                await asyncio.sleep(0.01)

        await asyncio.wait_for(_poll(), timeout)


class FakeCompletion:
    """Completion client returning canned replies, optionally blocking or failing."""

    def __init__(
        self,
        reply: str = "All good here!",
        error: Exception | None = None,
        config_error: bool = False,
    ):
        self.reply = reply
        self.error = error
        self.config_error = config_error
        self.payloads: list[PromptPayload] = []
        self.gates: dict[str, asyncio.Event] = {}

    def ensure_configured(self) -> None:
        if self.config_error:
            raise CompletionConfigError("No API key for provider 'openai'")

    async def complete(self, payload: PromptPayload) -> str:
        self.payloads.append(payload)
        gate = self.gates.get(payload.message)
        if gate is not None:
            await gate.wait()
        if self.error is not None:
            raise self.error
        return f"{self.reply} ({payload.message})"

    @property
    def calls(self) -> int:
        return len(self.payloads)


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeMonotonic:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


async def no_sleep(_: float) -> None:
    return None


def make_config(tmp_path: Path, **overrides: dict) -> Config:
    data = {
        "data_dir": str(tmp_path / "data"),
        "logging": {"directory": str(tmp_path / "logs"), "per_session": False},
    }
    data.update(overrides)
    return Config(**data)


def make_registry(
    tmp_path: Path,
    transport: FakeTransport,
    completion: FakeCompletion | None = None,
    completion_factory=None,
    clock: FakeClock | None = None,
    monotonic: FakeMonotonic | None = None,
    persist: bool = True,
    **config_overrides: dict,
) -> SessionRegistry:
    config = make_config(tmp_path, **config_overrides)
    completion = completion or FakeCompletion()
    return SessionRegistry(
        config,
        transport,
        completion_factory or (lambda: completion),
        store=SessionStore(config.data_dir) if persist else None,
        rng=random.Random(7),
        sleep=no_sleep,
        clock=clock or FakeClock(),
        monotonic=monotonic or FakeMonotonic(),
    )


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def completion() -> FakeCompletion:
    return FakeCompletion()


@pytest.fixture
def failing_completion() -> FakeCompletion:
    return FakeCompletion(error=CompletionError("quota exceeded"))
