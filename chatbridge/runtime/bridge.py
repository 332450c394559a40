"""Top-level composition of transport, sessions and maintenance."""

import asyncio
import logging

from chatbridge.channels.base import TransportAdapter
from chatbridge.channels.factory import create_transport
from chatbridge.conversation.completion import ChatModelCompletionClient
from chatbridge.core.config import Config
from chatbridge.core.errors import CompletionConfigError
from chatbridge.runtime.scheduling.maintenance import MaintenanceScheduler
from chatbridge.runtime.session.registry import CompletionFactory, SessionRegistry
from chatbridge.runtime.session.store import SessionStore

logger = logging.getLogger(__name__)


class ChatBridge:
    """Owns the registry and its maintenance schedule for one process."""

    def __init__(
        self,
        config: Config,
        transport: TransportAdapter | None = None,
        completion_factory: CompletionFactory | None = None,
        store: SessionStore | None = None,
    ):
        """Wire the bridge together.

        Args:
            config: Global application configuration.
            transport: Transport to use; built from config.transport if omitted.
            completion_factory: Builds a completion client per session; defaults
                to a LangChain chat model from config.completion.
            store: Shadow-state store; defaults to one under config.data_dir.
        """
        self.config = config
        self.transport = transport or create_transport(config.transport)
        self.registry = SessionRegistry(
            config,
            self.transport,
            completion_factory or (lambda: ChatModelCompletionClient(config.completion)),
            store=store or SessionStore(config.data_dir),
        )
        self.maintenance = MaintenanceScheduler(self.registry, config)

    async def start(self, sessions: int = 0) -> None:
        """Open the registry, start maintenance and create new sessions.

        Sessions whose initialization is rejected for misconfiguration are
        logged and left in ERROR; the bridge keeps running.

        Args:
            sessions: Number of new sessions to create at startup.
        """
        await self.registry.open()
        await self.maintenance.start()

        if sessions <= 0:
            return

        results = await asyncio.gather(
            *[self.registry.create() for _ in range(sessions)],
            return_exceptions=True,
        )
        failures = [result for result in results if isinstance(result, Exception)]
        for failure in failures:
            if isinstance(failure, CompletionConfigError):
                logger.error(f"Session initialization aborted: {failure}")
            else:
                logger.error(f"Session creation failed: {failure}", exc_info=failure)
        logger.info(f"Started {sessions - len(failures)} of {sessions} session(s)")

    async def stop(self) -> None:
        """Stop maintenance and close the registry.

        Logs errors but does not raise - shutdown should complete.
        """
        logger.info("Stopping chat bridge...")
        try:
            await self.maintenance.stop()
        except Exception as e:
            logger.error(f"Error stopping maintenance scheduler: {e}")
        await self.registry.close()
        logger.info("Chat bridge stopped")
