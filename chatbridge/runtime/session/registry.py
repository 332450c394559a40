"""Session registry: owns every session handle and its lifecycle.

The registry is an explicit, injectable object with ``open``/``close``
rather than a module-level singleton. Handle lookup is a plain dict read;
inserting and removing handles happens under an asyncio lock, and all file
I/O runs outside that lock via ``asyncio.to_thread``.
"""

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from chatbridge.channels.base import TransportAdapter
from chatbridge.conversation.cache import ResponseCache
from chatbridge.conversation.classifier import LanguageClassifier
from chatbridge.conversation.completion import CompletionClient
from chatbridge.conversation.fallback import FallbackPolicy
from chatbridge.conversation.history import ChatHistoryStore
from chatbridge.conversation.humanizer import Humanizer
from chatbridge.conversation.prompts import PromptBuilder
from chatbridge.conversation.rate_limiter import RateLimiter
from chatbridge.conversation.responder import Responder
from chatbridge.conversation.typing_simulator import TypingSimulator
from chatbridge.core.config.models import Config
from chatbridge.core.errors import (
    ChatBridgeError,
    CompletionConfigError,
    SessionNotFoundError,
)
from chatbridge.core.logging import close_session_logger, get_session_logger, setup_session_logger
from chatbridge.core.session_id import generate_session_id
from chatbridge.model.message import InboundMessage
from chatbridge.model.session import SessionRecord, SessionStatus
from chatbridge.runtime.session.state import SessionEvent
from chatbridge.runtime.session.store import SessionStore
from chatbridge.runtime.session.worker import PipelineResult, SessionHandle

logger = logging.getLogger(__name__)

CompletionFactory = Callable[[], CompletionClient]


class SessionRegistry:
    """Create, look up, destroy and sweep sessions.

    Args:
        config: Root configuration.
        transport: Transport shared by all sessions.
        completion_factory: Builds one completion client per session.
        store: Shadow-state persistence; None keeps everything in memory.
        rng: Random source for fallback, humanizer and typing jitter.
        sleep: Awaitable sleep used by the typing simulator.
        clock: Wall clock for record timestamps.
        monotonic: Clock for rate-limit windows.
        cache_clock: Clock for response cache expiry.
    """

    def __init__(
        self,
        config: Config,
        transport: TransportAdapter,
        completion_factory: CompletionFactory,
        store: SessionStore | None = None,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
        monotonic: Callable[[], float] = time.monotonic,
        cache_clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.transport = transport
        self.store = store
        self._completion_factory = completion_factory
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._clock = clock
        self._monotonic = monotonic
        self._cache_clock = cache_clock

        self._sessions: dict[str, SessionHandle] = {}
        self._retired_ids: set[str] = set()
        self._reserved_ids: set[str] = set()
        self._lock = asyncio.Lock()
        # Orders snapshot-and-write so the newest snapshot always lands last
        self._write_lock = asyncio.Lock()
        self._pending_writes: set[asyncio.Task[None]] = set()
        self._open = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._open

    async def open(self) -> None:
        """Restore sessions from the shadow file.

        Sessions that were READY come back DISCONNECTED, since their
        transport connection is gone; other states are kept as-is.
        """
        if self._open:
            return

        records = await asyncio.to_thread(self.store.load_records) if self.store else []
        restored: dict[str, SessionHandle] = {}
        for record in records:
            if record.id in restored or record.id in self._sessions:
                logger.warning(f"Duplicate session record ignored: {record.id}")
                continue
            if record.state is SessionStatus.READY:
                record.state = SessionStatus.DISCONNECTED
            restored[record.id] = self._build_handle(record)

        async with self._lock:
            for session_id, handle in restored.items():
                self._sessions.setdefault(session_id, handle)

        for handle in list(self._sessions.values()):
            await self._restore_history(handle)

        self._open = True
        logger.info(f"Session registry opened with {len(records)} restored session(s)")

    async def close(self) -> None:
        """Stop every worker, disconnect live sessions and persist state."""
        if not self._open:
            return

        for handle in list(self._sessions.values()):
            await handle.stop()
            if not handle.state.is_terminal:
                await self._disconnect(handle.id)

        try:
            await self.transport.close()
        except Exception as e:
            logger.warning(f"Error closing transport: {e}")

        if self._pending_writes:
            await asyncio.gather(*self._pending_writes, return_exceptions=True)
        await self.persist()

        for session_id in list(self._sessions):
            close_session_logger(session_id)
        self._open = False
        logger.info("Session registry closed")

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find(self, session_id: str) -> SessionHandle | None:
        return self._sessions.get(session_id)

    def get(self, session_id: str) -> SessionHandle:
        """Return the handle for a session.

        Raises:
            SessionNotFoundError: If no such session is registered.
        """
        handle = self._sessions.get(session_id)
        if handle is None:
            raise SessionNotFoundError(session_id)
        return handle

    def handles(self) -> list[SessionHandle]:
        return list(self._sessions.values())

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    # ------------------------------------------------------------------
    # Create / destroy
    # ------------------------------------------------------------------

    async def create(self) -> SessionHandle:
        """Create a session and start connecting it.

        Returns:
            The new handle, usually still connecting.

        Raises:
            CompletionConfigError: If the completion client is misconfigured.
                The session is left in ERROR; other sessions are unaffected.
        """
        async with self._lock:
            session_id = self._new_session_id()
            self._reserved_ids.add(session_id)

        # Building a handle opens its log file, so it happens outside the lock
        try:
            now = self._clock()
            record = SessionRecord(id=session_id, created_at=now, last_activity_at=now)
            handle = self._build_handle(record)
        except Exception:
            self._reserved_ids.discard(session_id)
            raise

        async with self._lock:
            self._reserved_ids.discard(session_id)
            self._sessions[session_id] = handle

        logger.info(f"Created session {session_id}")
        if self.store:
            try:
                await asyncio.to_thread(self.store.ensure_session_dir, session_id)
            except ChatBridgeError as e:
                logger.error(f"Could not create directory for session {session_id}: {e}")

        await self.initialize(handle)
        return handle

    async def initialize(self, handle: SessionHandle) -> None:
        """Move a CREATED session to INITIALIZING and connect its transport.

        Raises:
            CompletionConfigError: If the completion client cannot be used.
        """
        handle.fire(SessionEvent.INITIALIZE)

        try:
            handle.responder.completion.ensure_configured()
        except CompletionConfigError as e:
            handle.last_error = str(e)
            handle.fire(SessionEvent.AUTH_FAILURE)
            logger.error(f"Session {handle.id} aborted: {e}")
            raise

        handle.start()
        try:
            await self.transport.connect(handle.id, handle.publish)
        except Exception as e:
            logger.error(f"Transport connect failed for session {handle.id}: {e}", exc_info=True)
            handle.last_error = str(e)
            handle.fire(SessionEvent.AUTH_FAILURE)

    async def destroy(self, session_id: str) -> SessionHandle:
        """Tear a session down. Repeated calls are no-ops.

        In-flight pipelines are cancelled, not awaited.

        Raises:
            SessionNotFoundError: If the session was never registered or was
                already swept.
        """
        handle = self.get(session_id)
        if handle.state.is_terminal:
            return handle

        handle.fire(SessionEvent.DESTROY)
        await handle.stop()
        await self._disconnect(session_id)
        close_session_logger(session_id)
        logger.info(f"Destroyed session {session_id}")
        return handle

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def process(self, session_id: str, message: InboundMessage) -> PipelineResult:
        """Run the inbound pipeline for a message and wait for the outcome.

        The message joins its contact's queue, so it is handled after any
        earlier messages from that contact and is cancelled if the session is
        destroyed first.

        Raises:
            SessionNotFoundError: Unknown session.
            SessionNotReadyError: Session is not READY, or was torn down
                before the message was handled.
        """
        return await self.get(session_id).submit(message)

    async def send_text(self, session_id: str, contact_id: str, text: str) -> PipelineResult:
        """Send an explicit outbound message on a session.

        Raises:
            SessionNotFoundError: Unknown session.
            SessionNotReadyError: Session is not READY.
        """
        return await self.get(session_id).send_text(contact_id, text)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def prune_rate_limits(self, now: float | None = None) -> int:
        """Drop empty rate-limit windows in every session."""
        now = self._monotonic() if now is None else now
        return sum(handle.rate_limiter.prune(now) for handle in list(self._sessions.values()))

    async def persist(self) -> None:
        """Write session records and history snapshots.

        Failures are logged; in-memory state is never affected.
        """
        if not self.store:
            return

        handles = list(self._sessions.values())
        await self._persist_records()

        if not self.config.history.persist:
            return
        for handle in handles:
            if handle.state.is_terminal:
                continue
            history = handle.history.to_dict()
            try:
                await asyncio.to_thread(self.store.save_history, handle.id, history)
            except ChatBridgeError as e:
                logger.error(f"Persisting history for session {handle.id} failed: {e}")

    async def sweep(self, now: datetime | None = None) -> int:
        """Remove inactive sessions idle longer than the configured max age.

        Sessions with work queued or in progress are skipped.

        Returns:
            Number of sessions removed.
        """
        now = now or self._clock()
        cutoff = now - timedelta(hours=self.config.sessions.max_age_hours)

        async with self._lock:
            stale = [
                handle
                for handle in self._sessions.values()
                if not handle.record.is_active
                and handle.record.last_activity_at < cutoff
                and not handle.is_busy
            ]
            for handle in stale:
                del self._sessions[handle.id]
                self._retired_ids.add(handle.id)

        for handle in stale:
            await handle.stop()
            close_session_logger(handle.id)
            if self.store:
                try:
                    await asyncio.to_thread(self.store.remove_session_data, handle.id)
                except ChatBridgeError as e:
                    logger.error(f"Could not remove data for session {handle.id}: {e}")

        if stale:
            logger.info(f"Session cleanup removed {len(stale)} stale session(s)")
            await self.persist()
        return len(stale)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def stats(self) -> dict[str, int]:
        handles = list(self._sessions.values())
        return {
            "total": len(handles),
            "active": sum(1 for h in handles if h.record.is_active),
            "ready": sum(1 for h in handles if h.state is SessionStatus.READY),
            "connecting": sum(1 for h in handles if h.state.is_connecting),
            "error": sum(1 for h in handles if h.state is SessionStatus.ERROR),
            "destroyed": sum(1 for h in handles if h.state is SessionStatus.DESTROYED),
            "total_messages": sum(
                h.record.message_stats.received + h.record.message_stats.sent for h in handles
            ),
        }

    def export(self) -> dict[str, Any]:
        handles = list(self._sessions.values())
        return {
            "export_date": self._clock().isoformat(),
            "total_sessions": len(handles),
            "sessions": [handle.describe() for handle in handles],
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _new_session_id(self) -> str:
        while True:
            session_id = generate_session_id()
            if (
                session_id not in self._sessions
                and session_id not in self._retired_ids
                and session_id not in self._reserved_ids
            ):
                return session_id

    def _build_handle(self, record: SessionRecord) -> SessionHandle:
        """Create the per-session stores and wire them into a handle."""
        cfg = self.config
        cache = (
            ResponseCache(cfg.cache.ttl_seconds, cfg.cache.max_entries, clock=self._cache_clock)
            if cfg.cache.enabled
            else None
        )
        responder = Responder(
            completion=self._completion_factory(),
            cache=cache,
            classifier=LanguageClassifier(),
            prompt_builder=PromptBuilder(max_words=cfg.persona.max_words),
            fallback=FallbackPolicy(rng=self._rng),
            humanizer=Humanizer(probability=cfg.completion.humanize_probability, rng=self._rng),
            default_contact_name=cfg.persona.default_contact_name,
        )
        typing = TypingSimulator(
            min_base_ms=cfg.typing.min_base_ms,
            max_base_ms=cfg.typing.max_base_ms,
            per_char_ms=cfg.typing.per_char_ms,
            max_delay_ms=cfg.typing.max_delay_ms,
            enabled=cfg.typing.enabled,
            rng=self._rng,
            sleep=self._sleep,
        )
        if cfg.logging.per_session:
            session_logger = setup_session_logger(
                record.id,
                directory=cfg.logging.directory,
                max_size_mb=cfg.logging.max_size_mb,
                backup_count=cfg.logging.backup_count,
            )
        else:
            session_logger = get_session_logger(record.id)

        return SessionHandle(
            record=record,
            transport=self.transport,
            responder=responder,
            rate_limiter=RateLimiter(cfg.rate_limit.max_messages, cfg.rate_limit.window_seconds),
            history=ChatHistoryStore(max_entries=cfg.history.max_entries),
            typing=typing,
            context_size=cfg.history.context_size,
            inbox_capacity=cfg.sessions.inbox_capacity,
            max_concurrent_messages=cfg.sessions.max_concurrent_messages,
            strict_transitions=cfg.sessions.strict_transitions,
            clock=self._clock,
            monotonic=self._monotonic,
            on_state_change=self._on_state_change,
            session_logger=session_logger,
        )

    async def _restore_history(self, handle: SessionHandle) -> None:
        if not self.store or not self.config.history.persist or handle.state.is_terminal:
            return
        data = await asyncio.to_thread(self.store.load_history, handle.id)
        if not data:
            return
        try:
            handle.history = ChatHistoryStore.from_dict(data, max_entries=self.config.history.max_entries)
        except (KeyError, ValueError, TypeError) as e:
            logger.error(f"Discarding unreadable history for session {handle.id}: {e}")

    def _on_state_change(self, handle: SessionHandle) -> None:
        """Persist records in the background after a state change."""
        if not self.store:
            return
        task = asyncio.get_running_loop().create_task(self._persist_records())
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _persist_records(self) -> None:
        async with self._write_lock:
            snapshot = [SessionRecord.from_dict(h.record.to_dict()) for h in list(self._sessions.values())]
            try:
                await asyncio.to_thread(self.store.save_records, snapshot)  # type: ignore[union-attr]
            except ChatBridgeError as e:
                logger.error(f"Persisting session records failed: {e}")

    async def _disconnect(self, session_id: str) -> None:
        try:
            await self.transport.disconnect(session_id)
        except Exception as e:
            logger.warning(f"Transport disconnect failed for session {session_id}: {e}")
