"""Human-plausible reply latency with presence signaling."""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from chatbridge.channels.base import Presence

if TYPE_CHECKING:
    from chatbridge.channels.base import TransportAdapter

logger = logging.getLogger(__name__)


class TypingSimulator:
    """Compute and play out a typing delay before a reply is sent.

    The delay is a uniform random base plus a per-character cost, capped at
    ``max_delay_ms``.
    """

    def __init__(
        self,
        min_base_ms: int = 1000,
        max_base_ms: int = 3000,
        per_char_ms: int = 50,
        max_delay_ms: int = 5000,
        enabled: bool = True,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.min_base_ms = min_base_ms
        self.max_base_ms = max_base_ms
        self.per_char_ms = per_char_ms
        self.max_delay_ms = max_delay_ms
        self.enabled = enabled
        self._rng = rng or random.Random()
        self._sleep = sleep

    def delay_ms(self, reply: str) -> int:
        """Delay in milliseconds for a reply of this length."""
        base = self._rng.uniform(self.min_base_ms, self.max_base_ms)
        return int(min(base + len(reply) * self.per_char_ms, self.max_delay_ms))

    async def simulate(
        self,
        transport: "TransportAdapter",
        session_id: str,
        contact_id: str,
        reply: str,
    ) -> float:
        """Show the typing indicator, wait, then clear it.

        Presence failures are logged and never abort the reply. The wait is a
        suspension point, so cancelling the caller interrupts it.

        Returns:
            Seconds waited.
        """
        if not self.enabled:
            return 0.0

        delay = self.delay_ms(reply) / 1000
        await self._set_presence(transport, session_id, contact_id, Presence.TYPING)
        await self._sleep(delay)
        await self._set_presence(transport, session_id, contact_id, Presence.IDLE)
        return delay

    async def _set_presence(
        self,
        transport: "TransportAdapter",
        session_id: str,
        contact_id: str,
        presence: Presence,
    ) -> None:
        try:
            await transport.set_presence(session_id, contact_id, presence)
        except Exception as e:
            logger.warning(f"Failed to set presence {presence.value} for {contact_id}: {e}")
