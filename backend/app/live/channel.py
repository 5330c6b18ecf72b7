"""Reconnecting publish/subscribe channel over a pluggable transport."""

from __future__ import annotations

import logging
from typing import Any, Callable

from .config import ChannelConfig
from .interface import Transport
from .models import ChannelMessage, ConnectionState, ConnectionStatus
from .scheduling import LoopScheduler, Scheduler, TimerHandle

logger = logging.getLogger(__name__)

MAX_RECONNECT_ERROR = "Max reconnection attempts reached"
RECONNECT_SCHEDULE_ERROR = "Failed to schedule reconnect"

MessageCallback = Callable[[ChannelMessage], None]


class _SessionListener:
    """Forwards transport events for one open() to the channel.

    Events from a session the channel has since abandoned (through
    disconnect() or a newer connect()) are discarded.
    """

    def __init__(self, channel: LiveDataChannel, generation: int) -> None:
        self._channel = channel
        self._generation = generation

    def _current(self) -> bool:
        return self._channel._generation == self._generation

    def on_open(self) -> None:
        if self._current():
            self._channel._handle_open()

    def on_message(self, message: ChannelMessage) -> None:
        if self._current():
            self._channel._handle_message(message)

    def on_close(self) -> None:
        if self._current():
            self._channel._handle_close()

    def on_error(self, description: str) -> None:
        if self._current():
            self._channel._handle_error(description)


class LiveDataChannel:
    """Live data connection with automatic reconnection and fan-out delivery.

    The channel owns its ConnectionState and its subscriber list. Consumers
    read ``state`` and register callbacks; nothing on the public surface
    raises. Failures show up as ``state.error`` and the on_error callback.

    Usage:
        channel = LiveDataChannel(SimulatedTransport())
        unsubscribe = channel.subscribe(print)
        channel.connect()
        # ... later ...
        channel.disconnect()

    All methods must be called from the event loop thread that drives the
    transport and scheduler.
    """

    def __init__(
        self,
        transport: Transport,
        config: ChannelConfig | None = None,
        scheduler: Scheduler | None = None,
        on_connect: Callable[[], None] | None = None,
        on_disconnect: Callable[[], None] | None = None,
        on_message: MessageCallback | None = None,
        on_error: Callable[[str], None] | None = None,
    ) -> None:
        self._transport = transport
        self._config = config or ChannelConfig()
        self._scheduler = scheduler or LoopScheduler()
        self._on_connect = on_connect
        self._on_disconnect = on_disconnect
        self._on_message = on_message
        self._on_error = on_error

        self._status = ConnectionStatus.DISCONNECTED
        self._error: str | None = None
        self._attempts = 0
        self._last_message: ChannelMessage | None = None

        self._subscribers: list[MessageCallback] = []
        self._reconnect_timer: TimerHandle | None = None
        self._generation = 0  # Bumped whenever the current transport session is abandoned

    # --- State ---

    @property
    def state(self) -> ConnectionState:
        """Snapshot of the connection lifecycle."""
        return ConnectionState(
            status=self._status,
            error=self._error,
            connection_attempts=self._attempts,
            last_message=self._last_message,
        )

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def is_connected(self) -> bool:
        return self._status is ConnectionStatus.CONNECTED

    @property
    def is_connecting(self) -> bool:
        return self._status is ConnectionStatus.CONNECTING

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def connection_attempts(self) -> int:
        return self._attempts

    @property
    def last_message(self) -> ChannelMessage | None:
        return self._last_message

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_timer is not None

    # --- Lifecycle ---

    def connect(self) -> None:
        """Start connecting. No-op while already connecting or connected.

        A manual connect clears any pending reconnect and resets the
        attempt counter, so it also recovers from an exhausted budget.
        """
        if self._status is not ConnectionStatus.DISCONNECTED:
            return
        self._cancel_reconnect()
        self._attempts = 0
        self._open_transport()

    def reconnect(self) -> None:
        """Alias of connect()."""
        self.connect()

    def disconnect(self) -> None:
        """Tear down everything. Safe to call in any state.

        Cancels the pending reconnect and closes the transport before
        returning; no callback from the old session can fire afterwards.
        """
        self._generation += 1
        self._cancel_reconnect()
        try:
            self._transport.close()
        except Exception:
            logger.exception("Transport close failed")
        if self._status is not ConnectionStatus.DISCONNECTED:
            logger.info("Channel disconnected")
        self._status = ConnectionStatus.DISCONNECTED
        self._attempts = 0

    async def aclose(self) -> None:
        """disconnect(), then wait for the transport's background tasks to finish."""
        self.disconnect()
        await self._transport.aclose()

    def __enter__(self) -> LiveDataChannel:
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.disconnect()

    # --- Messaging ---

    def send_message(self, payload: Any) -> bool:
        """Send a payload over the transport. Returns False instead of raising."""
        if self._status is not ConnectionStatus.CONNECTED:
            logger.warning("Cannot send, channel is %s", self._status.value)
            return False
        try:
            return self._transport.send(payload)
        except Exception:
            logger.exception("Failed to send message")
            self._error = "Failed to send message"
            return False

    def subscribe(self, callback: MessageCallback) -> Callable[[], None]:
        """Register a callback for every delivered message. Returns an unsubscribe function."""
        self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: MessageCallback) -> None:
        """Remove a callback. No-op if it is not registered."""
        try:
            self._subscribers.remove(callback)
        except ValueError:
            pass

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    # --- Internal ---

    def _open_transport(self) -> None:
        self._generation += 1
        self._status = ConnectionStatus.CONNECTING
        self._error = None
        logger.info("Channel connecting (attempt %d)", self._attempts)
        try:
            self._transport.open(_SessionListener(self, self._generation))
        except Exception:
            logger.exception("Failed to create connection")
            self._generation += 1
            generation = self._generation
            self._status = ConnectionStatus.DISCONNECTED
            self._error = "Failed to create connection"
            self._notify_error(self._error)
            if self._generation == generation:
                self._schedule_reconnect()

    def _handle_open(self) -> None:
        self._status = ConnectionStatus.CONNECTED
        self._attempts = 0
        self._error = None
        logger.info("Channel connected")
        if self._on_connect:
            self._invoke(self._on_connect)

    def _handle_message(self, message: ChannelMessage) -> None:
        if self._status is not ConnectionStatus.CONNECTED:
            logger.debug("Dropping %s message, channel is %s", message.kind.value, self._status.value)
            return
        self._last_message = message
        generation = self._generation
        # Registrations made during delivery apply from the next message on
        for callback in list(self._subscribers):
            if self._generation != generation:
                return  # A callback disconnected the channel
            self._invoke(callback, message)
        if self._on_message and self._generation == generation:
            self._invoke(self._on_message, message)

    def _handle_error(self, description: str) -> None:
        logger.warning("Transport error: %s", description)
        self._error = "Connection failed"
        self._notify_error(description)

    def _handle_close(self) -> None:
        was_connected = self._status is ConnectionStatus.CONNECTED
        self._generation += 1
        generation = self._generation
        self._status = ConnectionStatus.DISCONNECTED
        logger.info("Transport closed (was %s)", "connected" if was_connected else "connecting")
        if self._on_disconnect:
            self._invoke(self._on_disconnect)
        # on_disconnect may have called connect() or disconnect()
        if self._generation == generation:
            self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self._attempts >= self._config.max_reconnect_attempts:
            logger.warning(
                "Giving up after %d reconnection attempts", self._config.max_reconnect_attempts
            )
            self._error = MAX_RECONNECT_ERROR
            self._notify_error(MAX_RECONNECT_ERROR)
            return

        self._attempts += 1
        delay = self._config.reconnect_interval_ms / 1000.0
        logger.info(
            "Reconnecting in %.1fs (attempt %d/%d)",
            delay,
            self._attempts,
            self._config.max_reconnect_attempts,
        )
        try:
            self._reconnect_timer = self._scheduler.call_later(delay, self._fire_reconnect)
        except Exception:
            # No event loop to run the timer on; stay disconnected
            logger.exception("Failed to schedule reconnect")
            self._attempts -= 1
            self._error = RECONNECT_SCHEDULE_ERROR
            self._notify_error(RECONNECT_SCHEDULE_ERROR)

    def _fire_reconnect(self) -> None:
        self._reconnect_timer = None
        if self._status is ConnectionStatus.DISCONNECTED:
            self._open_transport()

    def _cancel_reconnect(self) -> None:
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None

    def _notify_error(self, description: str) -> None:
        if self._on_error:
            self._invoke(self._on_error, description)

    @staticmethod
    def _invoke(callback: Callable[..., None], *args: Any) -> None:
        try:
            callback(*args)
        except Exception:
            logger.exception("Channel callback %r failed", callback)
