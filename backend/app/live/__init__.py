"""Live data channel subsystem for the finance dashboard.

Public API:
    ChannelMessage       - Immutable tagged message (kind + payload + timestamp)
    ConnectionState      - Read-only snapshot of the connection lifecycle
    LiveDataChannel      - Reconnecting pub/sub channel over a Transport
    FinancialDataFeed    - Per-domain accumulators (quotes, portfolio, news, alerts)
    Transport            - Abstract interface for simulated / real transports
    ChannelConfig        - Channel settings, optionally read from the environment
    create_channel       - Factory that selects the simulator or a WebSocket
    create_stream_router - FastAPI router factory for SSE / status / send endpoints
"""

from .channel import LiveDataChannel
from .config import ChannelConfig
from .factory import create_channel, create_transport
from .feed import FinancialDataFeed
from .interface import Transport
from .models import ChannelMessage, ConnectionState, ConnectionStatus, MessageKind
from .stream import create_stream_router

__all__ = [
    "ChannelMessage",
    "ConnectionState",
    "ConnectionStatus",
    "MessageKind",
    "LiveDataChannel",
    "FinancialDataFeed",
    "Transport",
    "ChannelConfig",
    "create_channel",
    "create_transport",
    "create_stream_router",
]
