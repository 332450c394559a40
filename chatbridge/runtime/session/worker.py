"""Per-session worker: event consumption and the inbound message pipeline.

Each session owns a bounded inbox. The transport publishes events into it
(blocking while it is full), and a single worker task consumes them in
order. Lifecycle events drive the state machine inline. Messages are fanned
out into per-contact queues, each drained by its own task, so one contact's
messages are handled strictly in arrival order while different contacts
proceed concurrently.
"""

import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from chatbridge.channels.base import DeliveryAck, TransportAdapter, TransportEvent, TransportEventType
from chatbridge.conversation.history import ChatHistoryStore
from chatbridge.conversation.rate_limiter import RateLimiter
from chatbridge.conversation.responder import Reply, Responder
from chatbridge.conversation.typing_simulator import TypingSimulator
from chatbridge.core.errors import SessionNotReadyError
from chatbridge.model.message import ChatHistoryEntry, InboundMessage, MessageDirection
from chatbridge.model.session import SessionRecord, SessionStatus
from chatbridge.runtime.session.state import ConnectionStateMachine, SessionEvent

logger = logging.getLogger(__name__)


class PipelineOutcome(Enum):
    DELIVERED = "delivered"
    RATE_LIMITED = "rate_limited"
    DELIVERY_FAILED = "delivery_failed"
    IGNORED = "ignored"


@dataclass(frozen=True)
class PipelineResult:
    """What happened to one inbound message or explicit send."""

    outcome: PipelineOutcome
    contact_id: str
    reply: Reply | None = None
    text: str | None = None
    message_id: str | None = None
    error: str | None = None

    @property
    def delivered(self) -> bool:
        return self.outcome is PipelineOutcome.DELIVERED


class SessionHandle:
    """Live state and worker for one session.

    Owns the session record, its state machine and its conversation stores.
    Created by the SessionRegistry; nothing else should construct one outside
    of tests.
    """

    def __init__(
        self,
        record: SessionRecord,
        transport: TransportAdapter,
        responder: Responder,
        rate_limiter: RateLimiter,
        history: ChatHistoryStore,
        typing: TypingSimulator,
        context_size: int = 6,
        inbox_capacity: int = 100,
        max_concurrent_messages: int = 8,
        strict_transitions: bool = False,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
        monotonic: Callable[[], float] = time.monotonic,
        on_state_change: Callable[["SessionHandle"], None] | None = None,
        session_logger: logging.Logger | None = None,
    ):
        self.record = record
        self.transport = transport
        self.responder = responder
        self.rate_limiter = rate_limiter
        self.history = history
        self.typing = typing
        self.context_size = context_size
        self.state_machine = ConnectionStateMachine(record.state, strict=strict_transitions)
        self.pairing_challenge: str | None = None
        self.last_error: str | None = None

        self._clock = clock
        self._monotonic = monotonic
        self._on_state_change = on_state_change
        self._log = session_logger or logger

        self._inbox: asyncio.Queue[TransportEvent] = asyncio.Queue(maxsize=inbox_capacity)
        self._semaphore = asyncio.Semaphore(max_concurrent_messages)
        # Each queued message carries an optional future for a caller awaiting its result
        self._contact_queues: dict[str, deque[tuple[InboundMessage, asyncio.Future[PipelineResult] | None]]] = {}
        self._drainers: dict[str, asyncio.Task[None]] = {}
        self._worker: asyncio.Task[None] | None = None
        self._in_flight = 0

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def state(self) -> SessionStatus:
        return self.state_machine.state

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def is_busy(self) -> bool:
        """True while any message is queued or mid-pipeline."""
        return (
            self._in_flight > 0
            or not self._inbox.empty()
            or bool(self._drainers)
        )

    def fire(self, event: SessionEvent) -> bool:
        """Apply a state machine event and mirror the result into the record."""
        previous = self.state
        if not self.state_machine.fire(event):
            return False

        self.record.state = self.state
        self.record.touch(self._clock())
        if self.state is SessionStatus.DESTROYED:
            self.record.is_active = False
        if previous is not self.state:
            self._log.info(f"Session {self.id}: {previous.value} -> {self.state.value} ({event.value})")
        if self._on_state_change:
            self._on_state_change(self)
        return True

    # ------------------------------------------------------------------
    # Worker lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start consuming the inbox. No-op if already running or destroyed."""
        if self.is_running or self.state.is_terminal:
            return
        self._worker = asyncio.create_task(self._run(), name=f"session-worker-{self.id}")

    async def stop(self) -> None:
        """Cancel the worker and every in-flight pipeline; queued events are dropped."""
        tasks = list(self._drainers.values())
        if self._worker is not None:
            tasks.append(self._worker)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._worker = None
        self._drainers.clear()
        for queue in self._contact_queues.values():
            for _, waiter in queue:
                self._reject(waiter)
        self._contact_queues.clear()
        while not self._inbox.empty():
            self._inbox.get_nowait()
            self._inbox.task_done()

    async def publish(self, event: TransportEvent) -> None:
        """Hand a transport event to the worker.

        Waits while the inbox is full. Events for a destroyed session are
        dropped.
        """
        if self.state.is_terminal:
            self._log.debug(f"Dropping {event.type.value} event for destroyed session {self.id}")
            return
        await self._inbox.put(event)

    async def wait_idle(self) -> None:
        """Wait until every published event has been fully processed."""
        while True:
            await self._inbox.join()
            drainers = list(self._drainers.values())
            if not drainers:
                if self._inbox.empty():
                    return
                continue
            await asyncio.gather(*drainers, return_exceptions=True)

    async def _run(self) -> None:
        while True:
            event = await self._inbox.get()
            try:
                self._dispatch(event)
            except Exception as e:
                self._log.error(f"Error handling {event.type.value} event in session {self.id}: {e}", exc_info=True)
            finally:
                self._inbox.task_done()

    def _dispatch(self, event: TransportEvent) -> None:
        if event.type is TransportEventType.MESSAGE:
            if event.inbound is not None:
                self._enqueue(event.inbound)
        elif event.type is TransportEventType.PAIRED:
            if self.fire(SessionEvent.PAIRING_CHALLENGE):
                self.pairing_challenge = event.challenge
        elif event.type is TransportEventType.AUTHENTICATED:
            # Confirming a pending challenge and reusing stored credentials are different edges
            if self.state is SessionStatus.QR_PENDING:
                self.fire(SessionEvent.CREDENTIALS_CONFIRMED)
            else:
                self.fire(SessionEvent.CREDENTIALS_REUSED)
            self.pairing_challenge = None
        elif event.type is TransportEventType.READY:
            self.fire(SessionEvent.HANDSHAKE_COMPLETE)
        elif event.type is TransportEventType.AUTH_FAILURE:
            self.last_error = event.detail
            self.fire(SessionEvent.AUTH_FAILURE)
        elif event.type is TransportEventType.DISCONNECTED:
            self.last_error = event.reason
            self.fire(SessionEvent.TRANSPORT_LOST)
        elif event.type is TransportEventType.ERROR:
            self.record.message_stats.errors += 1
            self.last_error = event.detail
            self._log.warning(f"Transport error in session {self.id}: {event.detail}")

    async def submit(self, message: InboundMessage) -> PipelineResult:
        """Queue a message behind the contact's earlier messages and wait for its result.

        Uses the same per-contact queue as transport events, so ordering and
        cancellation on stop apply to direct callers too.

        Raises:
            SessionNotReadyError: If the session is not READY, or is stopped
                before the message finishes processing.
        """
        self._require_ready()
        if message.is_ignorable:
            return PipelineResult(PipelineOutcome.IGNORED, message.contact_id)

        waiter: asyncio.Future[PipelineResult] = asyncio.get_running_loop().create_future()
        self._enqueue(message, waiter)
        return await waiter

    def _enqueue(self, message: InboundMessage, waiter: asyncio.Future[PipelineResult] | None = None) -> None:
        if message.is_ignorable:
            return

        queue = self._contact_queues.setdefault(message.contact_id, deque())
        queue.append((message, waiter))
        if message.contact_id not in self._drainers:
            self._drainers[message.contact_id] = asyncio.create_task(
                self._drain(message.contact_id),
                name=f"session-{self.id}-contact-{message.contact_id}",
            )

    async def _drain(self, contact_id: str) -> None:
        """Process one contact's queued messages in arrival order."""
        queue = self._contact_queues[contact_id]
        try:
            while queue:
                message, waiter = queue.popleft()
                if waiter is not None and waiter.done():
                    # Caller gave up before its turn
                    continue
                try:
                    async with self._semaphore:
                        result = await self.process(message)
                except asyncio.CancelledError:
                    self._reject(waiter)
                    raise
                except Exception as e:
                    if waiter is not None:
                        if not waiter.done():
                            waiter.set_exception(e)
                    elif isinstance(e, SessionNotReadyError):
                        self._log.warning(f"Dropping message from {contact_id}: {e}")
                    else:
                        self._log.error(f"Pipeline failed for {contact_id} in session {self.id}: {e}", exc_info=True)
                else:
                    if waiter is not None and not waiter.done():
                        waiter.set_result(result)
        finally:
            self._drainers.pop(contact_id, None)
            if not queue:
                self._contact_queues.pop(contact_id, None)

    def _reject(self, waiter: asyncio.Future[PipelineResult] | None) -> None:
        if waiter is not None and not waiter.done():
            waiter.set_exception(SessionNotReadyError(self.id, self.state.value))

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def process(self, message: InboundMessage) -> PipelineResult:
        """Run the inbound pipeline for one message.

        Steps: admission, history context, reply generation, typing delay,
        delivery, outbound history.

        Raises:
            SessionNotReadyError: If the session is not READY. Nothing is
                recorded in that case.
        """
        self._require_ready()
        contact_id = message.contact_id

        self._in_flight += 1
        try:
            self.record.message_stats.received += 1
            self.record.touch(self._clock())

            if not self.rate_limiter.admit(contact_id, self._monotonic()):
                self._log.info(f"Rate limit exceeded for {contact_id} in session {self.id}, message dropped")
                return PipelineResult(PipelineOutcome.RATE_LIMITED, contact_id)

            context = self.history.recent_context(contact_id, self.context_size)
            self.history.append(contact_id, self._entry(contact_id, MessageDirection.INBOUND, message.text))

            reply = await self.responder.respond(message.text, context, message.sender_name)
            self._log.debug(f"Reply for {contact_id} from {reply.source.value}: {reply.text[:50]}")

            await self.typing.simulate(self.transport, self.id, contact_id, reply.text)
            return await self._deliver(contact_id, reply.text, reply)
        finally:
            self._in_flight -= 1

    async def send_text(self, contact_id: str, text: str) -> PipelineResult:
        """Send an explicit outbound message, bypassing reply generation.

        Raises:
            SessionNotReadyError: If the session is not READY.
        """
        self._require_ready()
        self._in_flight += 1
        try:
            return await self._deliver(contact_id, text)
        finally:
            self._in_flight -= 1

    async def _deliver(self, contact_id: str, text: str, reply: Reply | None = None) -> PipelineResult:
        try:
            ack = await self.transport.send_text(self.id, contact_id, text)
        except Exception as e:
            ack = DeliveryAck.failure(str(e))

        if not ack.ok:
            self.record.message_stats.errors += 1
            self._log.warning(f"Delivery to {contact_id} failed in session {self.id}: {ack.error}")
            return PipelineResult(
                PipelineOutcome.DELIVERY_FAILED, contact_id, reply=reply, text=text, error=ack.error
            )

        self.record.message_stats.sent += 1
        self.history.append(contact_id, self._entry(contact_id, MessageDirection.OUTBOUND, text))
        self.record.touch(self._clock())
        return PipelineResult(
            PipelineOutcome.DELIVERED, contact_id, reply=reply, text=text, message_id=ack.message_id
        )

    def _require_ready(self) -> None:
        if self.state is not SessionStatus.READY:
            raise SessionNotReadyError(self.id, self.state.value)

    def _entry(self, contact_id: str, direction: MessageDirection, text: str) -> ChatHistoryEntry:
        return ChatHistoryEntry(contact_id=contact_id, direction=direction, text=text, timestamp=self._clock())

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def describe(self) -> dict[str, Any]:
        """Status snapshot for the API and exports."""
        cache = self.responder.cache
        return {
            **self.record.to_dict(),
            "pairingChallenge": self.pairing_challenge,
            "lastError": self.last_error,
            "contacts": len(self.history.contacts()),
            "busy": self.is_busy,
            "cache": cache.stats() if cache is not None else None,
        }
