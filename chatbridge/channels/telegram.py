"""Telegram transport adapter using python-telegram-bot."""

import asyncio
import logging
import os
from datetime import UTC, datetime
from typing import Any

from telegram import Update
from telegram.constants import ChatAction
from telegram.error import Conflict, InvalidToken, TelegramError
from telegram.ext import Application, ContextTypes, MessageHandler, filters

from chatbridge.channels.base import DeliveryAck, Presence, Publish, TransportAdapter, TransportEvent
from chatbridge.model.message import InboundMessage

logger = logging.getLogger(__name__)


class TelegramTransport(TransportAdapter):
    """Telegram transport adapter.

    Each session binds one bot token from the configured pool and runs its
    own polling Application. Bot tokens are long-lived credentials, so a
    session goes straight from connecting to authenticated without a pairing
    challenge.
    """

    name = "telegram"

    # Telegram maximum message length
    MAX_MESSAGE_LENGTH = 4096

    def __init__(
        self,
        tokens: list[str] | None = None,
        allowed_users: list[int] | None = None,
    ):
        """Initialize the Telegram transport.

        Args:
            tokens: Bot tokens, one per concurrently connected session
                (falls back to the TELEGRAM_BOT_TOKEN env var).
            allowed_users: User IDs allowed to talk to the bots. Empty allows everyone.
        """
        pool = [token for token in (tokens or []) if token]
        if not pool and os.environ.get("TELEGRAM_BOT_TOKEN"):
            pool.append(os.environ["TELEGRAM_BOT_TOKEN"])
        if not pool:
            raise ValueError("Telegram bot token required (set transport.token or TELEGRAM_BOT_TOKEN)")

        self.tokens: list[str] = list(dict.fromkeys(pool))
        self.allowed_users = set(allowed_users or [])
        self._apps: dict[str, Application] = {}  # type: ignore[type-arg]
        self._bound_tokens: dict[str, str] = {}
        self._ready: set[str] = set()
        self._error_tasks: set[asyncio.Task[None]] = set()

    async def connect(self, session_id: str, publish: Publish) -> None:
        """Start a polling bot for the session.

        Failures to claim or validate a token are published as auth failures
        rather than raised, so only this session is affected.
        """
        if session_id in self._apps:
            return

        token = self._claim_token(session_id)
        if token is None:
            await publish(TransportEvent.auth_failure("No free Telegram bot token for this session"))
            return

        app = Application.builder().token(token).build()

        async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
            inbound = self._to_inbound(update, bot_id=app.bot.id)
            if inbound is not None:
                await publish(TransportEvent.message(inbound))

        # Reports run as separate tasks: stopping the bot from inside its own
        # update processing would wait on itself, and polling callbacks must
        # be synchronous
        async def handle_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
            self._schedule_report(session_id, publish, context.error)

        def handle_polling_error(error: TelegramError) -> None:
            self._schedule_report(session_id, publish, error)

        app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message))
        app.add_error_handler(handle_error)

        try:
            await app.initialize()
        except (InvalidToken, TelegramError) as e:
            self._bound_tokens.pop(session_id, None)
            logger.error(f"Telegram login failed for session {session_id}: {e}")
            await publish(TransportEvent.auth_failure(str(e)))
            return

        self._apps[session_id] = app
        await publish(TransportEvent.authenticated())

        await app.start()
        await app.updater.start_polling(error_callback=handle_polling_error)  # type: ignore[union-attr]
        logger.info(f"Telegram bot @{app.bot.username} connected for session {session_id}")
        self._ready.add(session_id)
        await publish(TransportEvent.ready())

    def _schedule_report(self, session_id: str, publish: Publish, error: BaseException | None) -> None:
        task = asyncio.get_running_loop().create_task(self._report_error(session_id, publish, error))
        self._error_tasks.add(task)
        task.add_done_callback(self._error_tasks.discard)

    async def _report_error(self, session_id: str, publish: Publish, error: BaseException | None) -> None:
        """Publish a transport failure for a session.

        A conflicting poller or a revoked token ends the connection: the bot
        is stopped and the session is told it lost its transport (or failed
        to authenticate, if it never became ready). Anything else is reported
        as an error while polling keeps retrying.
        """
        detail = str(error) if error is not None else "Unknown Telegram error"
        if session_id not in self._apps:
            return

        if isinstance(error, (Conflict, InvalidToken)):
            logger.error(f"Telegram connection lost for session {session_id}: {detail}")
            was_ready = session_id in self._ready
            await self.disconnect(session_id)
            if was_ready:
                await publish(TransportEvent.disconnected(detail))
            else:
                await publish(TransportEvent.auth_failure(detail))
            return

        logger.warning(f"Telegram error in session {session_id}: {detail}")
        await publish(TransportEvent.error(detail))

    async def disconnect(self, session_id: str) -> None:
        app = self._apps.pop(session_id, None)
        self._bound_tokens.pop(session_id, None)
        self._ready.discard(session_id)
        if app is None:
            return
        try:
            if app.updater and app.updater.running:
                await app.updater.stop()
            if app.running:
                await app.stop()
            await app.shutdown()
        except TelegramError as e:
            logger.warning(f"Error while stopping Telegram bot for session {session_id}: {e}")
        logger.info(f"Telegram bot disconnected for session {session_id}")

    async def send_text(self, session_id: str, contact_id: str, text: str) -> DeliveryAck:
        app = self._apps.get(session_id)
        if app is None:
            return DeliveryAck.failure(f"Session {session_id} has no Telegram connection")

        try:
            chat_id = int(contact_id)
        except ValueError:
            return DeliveryAck.failure(f"Invalid Telegram chat id: {contact_id}")

        try:
            sent = None
            for chunk in self._split_message(text):
                sent = await app.bot.send_message(chat_id=chat_id, text=chunk)
        except TelegramError as e:
            logger.warning(f"Telegram rejected message to {contact_id}: {e}")
            return DeliveryAck.failure(str(e))

        return DeliveryAck.success(str(sent.message_id) if sent else None)

    async def set_presence(self, session_id: str, contact_id: str, presence: Presence) -> None:
        # Telegram clears chat actions on its own; there is no idle action
        if presence is not Presence.TYPING:
            return
        app = self._apps.get(session_id)
        if app is None:
            return
        await app.bot.send_chat_action(chat_id=int(contact_id), action=ChatAction.TYPING)

    async def close(self) -> None:
        for task in list(self._error_tasks):
            task.cancel()
        for session_id in list(self._apps):
            await self.disconnect(session_id)

    def _claim_token(self, session_id: str) -> str | None:
        in_use = set(self._bound_tokens.values())
        for token in self.tokens:
            if token not in in_use:
                self._bound_tokens[session_id] = token
                return token
        return None

    def _is_allowed(self, update: Update) -> bool:
        if not update.effective_user:
            return False
        if not self.allowed_users:
            return True
        return update.effective_user.id in self.allowed_users

    def _to_inbound(self, update: Update, bot_id: int) -> InboundMessage | None:
        """Convert a Telegram update to an InboundMessage.

        Returns None for updates without text and for senders outside the
        allowlist. Messages authored by the bot itself are flagged as self
        echoes.
        """
        message = update.effective_message
        if not message or not message.text or not update.effective_chat:
            return None
        if not self._is_allowed(update):
            user_id = update.effective_user.id if update.effective_user else None
            logger.warning(f"Ignoring message from non-allowlisted user {user_id}")
            return None

        user = update.effective_user
        metadata: dict[str, Any] = {"chat_type": update.effective_chat.type}
        if user:
            metadata["username"] = user.username

        return InboundMessage(
            contact_id=str(update.effective_chat.id),
            text=message.text,
            sender_name=user.first_name if user else None,
            from_self=bool(user and user.id == bot_id),
            message_id=str(message.message_id),
            timestamp=message.date or datetime.now(UTC),
            metadata=metadata,
        )

    def _split_message(self, text: str) -> list[str]:
        """Split text into chunks that fit Telegram's message limit.

        Breaks at the last newline before the limit when there is one.
        """
        chunks: list[str] = []
        remaining = text
        while len(remaining) > self.MAX_MESSAGE_LENGTH:
            split_at = remaining.rfind("\n", 0, self.MAX_MESSAGE_LENGTH)
            if split_at <= 0:
                split_at = self.MAX_MESSAGE_LENGTH
            chunks.append(remaining[:split_at])
            remaining = remaining[split_at:].lstrip("\n")
        chunks.append(remaining)
        return chunks
