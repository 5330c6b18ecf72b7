"""Fixtures for live channel tests.

VirtualScheduler stands in for the event loop so timer-driven behavior can
be stepped deterministically; ScriptedTransport lets a test fire transport
events by hand.
"""

from __future__ import annotations

import heapq
import itertools
from typing import Any, Callable

import pytest

from app.live.interface import Transport, TransportListener
from app.live.models import ChannelMessage, MessageKind, PriceQuote


class VirtualTimer:
    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class VirtualScheduler:
    """call_later() against a virtual clock advanced with advance()."""

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: list[tuple[float, int, VirtualTimer]] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> VirtualTimer:
        timer = VirtualTimer(self.now + delay, callback)
        heapq.heappush(self._queue, (timer.when, next(self._seq), timer))
        return timer

    def advance(self, seconds: float) -> None:
        """Run every timer due within the next ``seconds``, in order."""
        deadline = self.now + seconds
        while self._queue and self._queue[0][0] <= deadline:
            when, _, timer = heapq.heappop(self._queue)
            self.now = when
            if not timer.cancelled:
                timer.callback()
        self.now = deadline

    @property
    def pending(self) -> int:
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)


class ScriptedTransport(Transport):
    """Transport whose events are triggered explicitly by the test."""

    def __init__(self) -> None:
        self.listener: TransportListener | None = None
        self.open_calls = 0
        self.close_calls = 0
        self.sent: list[Any] = []
        self.send_result = True
        self.send_error: Exception | None = None
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self, listener: TransportListener) -> None:
        self.open_calls += 1
        self.listener = listener

    def send(self, payload: Any) -> bool:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(payload)
        return self.send_result

    def close(self) -> None:
        self.close_calls += 1
        self._open = False

    # --- Test controls ---

    def succeed(self) -> None:
        self._open = True
        self.listener.on_open()

    def fail(self, description: str = "refused") -> None:
        self.listener.on_error(description)
        self.listener.on_close()

    def drop(self) -> None:
        self._open = False
        self.listener.on_close()

    def deliver(self, message: ChannelMessage) -> None:
        self.listener.on_message(message)


@pytest.fixture
def scheduler() -> VirtualScheduler:
    return VirtualScheduler()


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def make_price() -> Callable[..., ChannelMessage]:
    """Factory for price_update messages."""

    def _make(symbol: str = "AAPL", price: float = 100.0) -> ChannelMessage:
        return ChannelMessage(
            kind=MessageKind.PRICE_UPDATE,
            payload=PriceQuote(symbol=symbol, price=price),
        )

    return _make
