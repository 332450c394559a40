"""Transport factory for creating transport adapters from configuration."""

import logging

from chatbridge.channels.base import TransportAdapter
from chatbridge.core.config.models import TransportConfig

logger = logging.getLogger(__name__)


def create_transport(config: TransportConfig) -> TransportAdapter:
    """Create a transport adapter from configuration.

    Args:
        config: Transport section of the root config.

    Returns:
        Configured TransportAdapter instance.

    Raises:
        ValueError: If the transport type is unsupported or credentials are missing.
    """
    if config.type == "telegram":
        from chatbridge.channels.telegram import TelegramTransport

        tokens = ([config.token] if config.token else []) + list(config.tokens)
        logger.info(f"Creating Telegram transport with {len(tokens)} configured token(s)")
        return TelegramTransport(tokens=tokens, allowed_users=config.allowed_users)
    raise ValueError(f"Unsupported transport type: {config.type}")
