"""Abstract interface for live data transports."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Protocol

from .models import ChannelMessage


class TransportListener(Protocol):
    """Receiver of transport events. Implemented by the channel."""

    def on_open(self) -> None: ...

    def on_message(self, message: ChannelMessage) -> None: ...

    def on_close(self) -> None: ...

    def on_error(self, description: str) -> None: ...


class Transport(ABC):
    """Contract for the thing underneath a LiveDataChannel.

    Transports are event-driven: open() returns immediately and the outcome
    arrives later through the listener. A failed open is reported as
    on_error() followed by on_close(); an established session ends with a
    single on_close(). Errors never close the transport by themselves.

    Lifecycle:
        transport = create_transport(config)
        transport.open(listener)
        # ... listener.on_open(), listener.on_message(...) ...
        transport.send({"action": "subscribe", "symbol": "AAPL"})
        transport.close()
    """

    @abstractmethod
    def open(self, listener: TransportListener) -> None:
        """Start opening a session that reports to ``listener``.

        Must not block. Any session still open is closed first.
        """

    @abstractmethod
    def send(self, payload: Any) -> bool:
        """Transmit a JSON-serializable payload. Returns False if the session is not open."""

    @abstractmethod
    def close(self) -> None:
        """Tear down the session synchronously.

        Safe to call multiple times. After close() returns the listener
        receives no further events from the closed session.
        """

    async def aclose(self) -> None:
        """Close, then wait for any background work the session left running."""
        self.close()

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """True while a session is established."""
