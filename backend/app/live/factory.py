"""Factory for creating live data transports and channels."""

from __future__ import annotations

import logging

from .channel import LiveDataChannel
from .config import ChannelConfig
from .interface import Transport
from .scheduling import Scheduler

logger = logging.getLogger(__name__)


def create_transport(config: ChannelConfig, scheduler: Scheduler | None = None) -> Transport:
    """Create the transport selected by ``config.simulate``.

    - simulate=True  → SimulatedTransport (synthetic messages, no network)
    - simulate=False → WebSocketTransport connecting to config.url
    """
    if config.simulate:
        from .simulator import SimulatedTransport

        logger.info("Live feed transport: simulator")
        return SimulatedTransport(
            scheduler=scheduler,
            connect_delay_range=config.connect_delay_range_s,
            message_interval_range=config.message_interval_range_s,
        )
    else:
        from .websocket_client import WebSocketTransport

        logger.info("Live feed transport: WebSocket %s", config.url)
        return WebSocketTransport(url=config.url)


def create_channel(config: ChannelConfig | None = None, **callbacks) -> LiveDataChannel:
    """Create an unconnected channel. Caller must call channel.connect().

    Without a config, settings come from LIVE_FEED_* environment variables.
    Keyword arguments are passed through as channel callbacks
    (on_connect, on_disconnect, on_message, on_error).
    """
    config = config or ChannelConfig.from_env()
    return LiveDataChannel(create_transport(config), config=config, **callbacks)
