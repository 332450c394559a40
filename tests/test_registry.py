"""Tests for SessionRegistry lifecycle, persistence and cleanup."""

import asyncio
import json
import time

import pytest

from chatbridge.core.errors import CompletionConfigError, SessionNotFoundError
from chatbridge.core.session_id import is_valid_session_id
from chatbridge.model.message import InboundMessage, MessageDirection
from chatbridge.model.session import SessionStatus
from chatbridge.runtime.session.worker import SessionHandle
from conftest import FakeClock, FakeCompletion, FakeTransport, make_registry


async def _ready(registry):
    handle = await registry.create()
    await handle.wait_idle()
    return handle


class TestCreate:
    """Session creation and initialization."""

    async def test_create_reaches_ready(self, tmp_path, transport):
        """A transport that authenticates and signals ready leaves the session READY."""
        registry = make_registry(tmp_path, transport)
        await registry.open()
        try:
            handle = await _ready(registry)

            assert is_valid_session_id(handle.id)
            assert handle.state is SessionStatus.READY
            assert handle.record.is_active
            assert registry.get(handle.id) is handle
            assert handle.id in registry
            assert (tmp_path / "data" / "sessions" / handle.id).is_dir()
        finally:
            await registry.close()

    async def test_ids_are_unique(self, tmp_path, transport):
        registry = make_registry(tmp_path, transport)
        await registry.open()
        try:
            handles = [await registry.create() for _ in range(20)]

            assert len({h.id for h in handles}) == 20
            assert len(registry) == 20
        finally:
            await registry.close()

    async def test_misconfigured_completion_fails_only_that_session(self, tmp_path, transport):
        """A missing credential puts the new session in ERROR without touching others."""
        completions = [FakeCompletion(), FakeCompletion(config_error=True), FakeCompletion()]
        registry = make_registry(tmp_path, transport, completion_factory=lambda: completions.pop(0))
        await registry.open()
        try:
            healthy = await _ready(registry)

            with pytest.raises(CompletionConfigError):
                await registry.create()

            failed = next(h for h in registry.handles() if h is not healthy)
            assert failed.state is SessionStatus.ERROR
            assert "API key" in failed.last_error
            assert failed.id not in transport.publishers

            another = await _ready(registry)
            assert healthy.state is SessionStatus.READY
            assert another.state is SessionStatus.READY
        finally:
            await registry.close()

    async def test_handle_is_built_outside_the_lock(self, tmp_path, transport, monkeypatch):
        """Per-session log files are opened without holding the registry lock."""
        registry = make_registry(tmp_path, transport, logging={"directory": str(tmp_path / "logs")})
        await registry.open()
        build_handle = registry._build_handle
        lock_held = []

        def checking_build(record):
            lock_held.append(registry._lock.locked())
            return build_handle(record)

        monkeypatch.setattr(registry, "_build_handle", checking_build)
        try:
            handle = await _ready(registry)

            assert lock_held == [False]
            assert (tmp_path / "logs" / "sessions" / f"{handle.id}.log").exists()
        finally:
            await registry.close()

    async def test_connect_failure_moves_to_error(self, tmp_path):
        class BrokenTransport(FakeTransport):
            async def connect(self, session_id, publish):
                raise ConnectionError("handshake refused")

        registry = make_registry(tmp_path, BrokenTransport())
        await registry.open()
        try:
            handle = await registry.create()

            assert handle.state is SessionStatus.ERROR
            assert handle.last_error == "handshake refused"
        finally:
            await registry.close()


class TestDestroy:
    """Session teardown."""

    async def test_destroy_is_idempotent(self, tmp_path, transport):
        registry = make_registry(tmp_path, transport)
        await registry.open()
        try:
            handle = await _ready(registry)

            await registry.destroy(handle.id)
            await registry.destroy(handle.id)

            assert handle.state is SessionStatus.DESTROYED
            assert not handle.record.is_active
            assert transport.disconnected == [handle.id]
            assert handle.id in registry
        finally:
            await registry.close()

    async def test_destroy_unknown_session(self, tmp_path, transport):
        registry = make_registry(tmp_path, transport)
        await registry.open()
        try:
            with pytest.raises(SessionNotFoundError):
                await registry.destroy("sess_1_0123456789abcdef")
        finally:
            await registry.close()


class TestPersistence:
    """Shadow state written to and restored from the data directory."""

    async def test_close_writes_records(self, tmp_path, transport):
        registry = make_registry(tmp_path, transport)
        await registry.open()
        handle = await _ready(registry)
        await registry.close()

        data = json.loads((tmp_path / "data" / "active-sessions.json").read_text())

        assert [item["id"] for item in data] == [handle.id]
        assert data[0]["state"] == "ready"
        assert set(data[0]) == {"version", "id", "state", "createdAt", "lastActivityAt", "messageStats", "isActive"}
        assert transport.closed

    async def test_reload_marks_ready_sessions_disconnected(self, tmp_path, transport):
        """Restored READY sessions come back DISCONNECTED with their history."""
        registry = make_registry(tmp_path, transport)
        await registry.open()
        handle = await _ready(registry)
        await registry.process(handle.id, InboundMessage(contact_id="C1", text="hello"))
        await registry.close()

        reloaded = make_registry(tmp_path, FakeTransport())
        await reloaded.open()
        try:
            restored = reloaded.get(handle.id)

            assert restored.state is SessionStatus.DISCONNECTED
            assert restored.record.message_stats.received == 1
            assert restored.record.message_stats.sent == 1
            assert [e.direction for e in restored.history.entries("C1")] == [
                MessageDirection.INBOUND,
                MessageDirection.OUTBOUND,
            ]
            assert not restored.is_running
        finally:
            await reloaded.close()

    async def test_corrupted_shadow_file_starts_empty(self, tmp_path, transport):
        data_dir = tmp_path / "data"
        data_dir.mkdir()
        (data_dir / "active-sessions.json").write_text("[{broken")

        registry = make_registry(tmp_path, transport)
        await registry.open()
        try:
            assert len(registry) == 0
        finally:
            await registry.close()

    async def test_background_writes_end_with_latest_state(self, tmp_path, transport, monkeypatch):
        """A slow early write cannot overwrite a newer snapshot."""
        registry = make_registry(tmp_path, transport)
        await registry.open()
        save_records = registry.store.save_records
        saved_states = []

        def slow_first_save(records):
            if not saved_states:
                time.sleep(0.2)
            saved_states.append(records[0].state)
            save_records(records)

        monkeypatch.setattr(registry.store, "save_records", slow_first_save)
        try:
            await _ready(registry)
            await asyncio.gather(*list(registry._pending_writes))

            data = json.loads((tmp_path / "data" / "active-sessions.json").read_text())

            assert saved_states[0] is SessionStatus.INITIALIZING
            assert saved_states[-1] is SessionStatus.READY
            assert data[0]["state"] == "ready"
        finally:
            await registry.close()

    async def test_in_memory_registry_writes_nothing(self, tmp_path, transport):
        registry = make_registry(tmp_path, transport, persist=False)
        await registry.open()
        await _ready(registry)
        await registry.close()

        assert not (tmp_path / "data").exists()


class TestSweep:
    """Stale session cleanup."""

    async def test_sweep_removes_old_inactive_sessions(self, tmp_path, transport):
        clock = FakeClock()
        registry = make_registry(tmp_path, transport, clock=clock)
        await registry.open()
        try:
            stale = await _ready(registry)
            live = await _ready(registry)
            await registry.destroy(stale.id)

            clock.advance(hours=25)
            removed = await registry.sweep()

            assert removed == 1
            assert stale.id not in registry
            assert live.id in registry
            assert not (tmp_path / "data" / "sessions" / stale.id).exists()
            with pytest.raises(SessionNotFoundError):
                registry.get(stale.id)
        finally:
            await registry.close()

    async def test_recently_destroyed_sessions_are_kept(self, tmp_path, transport):
        clock = FakeClock()
        registry = make_registry(tmp_path, transport, clock=clock)
        await registry.open()
        try:
            handle = await _ready(registry)
            await registry.destroy(handle.id)

            clock.advance(hours=23)

            assert await registry.sweep() == 0
            assert handle.id in registry
        finally:
            await registry.close()


    async def test_sweep_keeps_busy_sessions(self, tmp_path, transport, monkeypatch):
        """An old inactive session with work in progress survives the sweep."""
        clock = FakeClock()
        registry = make_registry(tmp_path, transport, clock=clock)
        await registry.open()
        try:
            busy = await _ready(registry)
            idle = await _ready(registry)
            await registry.destroy(busy.id)
            await registry.destroy(idle.id)
            monkeypatch.setattr(SessionHandle, "is_busy", property(lambda handle: handle.id == busy.id))

            clock.advance(hours=25)
            removed = await registry.sweep()

            assert removed == 1
            assert busy.id in registry
            assert idle.id not in registry
        finally:
            await registry.close()


class TestReporting:
    """Aggregate statistics and exports."""

    async def test_stats(self, tmp_path, transport):
        registry = make_registry(tmp_path, transport)
        await registry.open()
        try:
            first = await _ready(registry)
            second = await _ready(registry)
            await registry.process(first.id, InboundMessage(contact_id="C1", text="hi"))
            await registry.destroy(second.id)

            stats = registry.stats()

            assert stats == {
                "total": 2,
                "active": 1,
                "ready": 1,
                "connecting": 0,
                "error": 0,
                "destroyed": 1,
                "total_messages": 2,
            }
        finally:
            await registry.close()

    async def test_export(self, tmp_path, transport):
        clock = FakeClock()
        registry = make_registry(tmp_path, transport, clock=clock)
        await registry.open()
        try:
            handle = await _ready(registry)

            exported = registry.export()

            assert exported["export_date"] == clock.now.isoformat()
            assert exported["total_sessions"] == 1
            assert exported["sessions"][0]["id"] == handle.id
            assert exported["sessions"][0]["state"] == "ready"
        finally:
            await registry.close()

    async def test_prune_rate_limits(self, tmp_path, transport):
        registry = make_registry(tmp_path, transport)
        await registry.open()
        try:
            handle = await _ready(registry)
            await registry.process(handle.id, InboundMessage(contact_id="C1", text="hi"))

            assert registry.prune_rate_limits(now=10_000.0) == 1
            assert handle.rate_limiter.tracked_contacts == 0
        finally:
            await registry.close()
