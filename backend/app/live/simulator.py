"""Synthetic live feed: random-walk quotes and a timer-driven transport."""

from __future__ import annotations

import logging
import math
import random
from datetime import datetime, timedelta, timezone
from typing import Any

import numpy as np

from .interface import Transport, TransportListener
from .models import (
    AlertTrigger,
    ChannelMessage,
    MarketStatus,
    MessageKind,
    NewsItem,
    PortfolioSnapshot,
    Position,
    PriceQuote,
)
from .scheduling import LoopScheduler, Scheduler, TimerHandle
from .seed_prices import (
    ALERT_THRESHOLDS,
    DEFAULT_VOLATILITY,
    MARKET_FACTOR_WEIGHT,
    NEWS_IMPACTS,
    NEWS_SENTIMENTS,
    PORTFOLIO_BASE_VALUE,
    PORTFOLIO_MAX_DAY_CHANGE,
    PORTFOLIO_POSITIONS,
    PORTFOLIO_VALUE_SPREAD,
    SEED_PRICES,
    SESSION_HOURS,
    SYMBOL_VOLATILITY,
    VOLUME_RANGE,
)

logger = logging.getLogger(__name__)


class MessageSynthesizer:
    """Fabricates ChannelMessages that look like a market data feed.

    Quotes follow a one-factor log-normal random walk:

        S(t+1) = S(t) * exp(sigma * (w * M + sqrt(1 - w^2) * E))

    Where:
        sigma = per-tick volatility of the symbol
        w     = weight of the shared market factor
        M, E  = independent standard normal draws (market, idiosyncratic)

    so symbols drift together on market-wide moves. Change fields are
    reported against the session open (the seed price).
    """

    def __init__(self, symbols: list[str] | None = None, seed: int | None = None) -> None:
        self._rng = np.random.default_rng(seed)
        self._symbols: list[str] = list(symbols) if symbols else list(SEED_PRICES)
        self._open: dict[str, float] = {}
        self._prices: dict[str, float] = {}
        for symbol in self._symbols:
            seed_price = SEED_PRICES.get(symbol) or float(self._rng.uniform(50.0, 300.0))
            self._open[symbol] = seed_price
            self._prices[symbol] = seed_price

    @property
    def symbols(self) -> list[str]:
        return list(self._symbols)

    def get_price(self, symbol: str) -> float | None:
        """Current walk price for a symbol, or None if not quoted."""
        return self._prices.get(symbol)

    def next_message(self, kind: MessageKind | None = None) -> ChannelMessage:
        """Synthesize one message. A random kind is picked unless one is given."""
        if kind is None:
            kinds = list(MessageKind)
            kind = kinds[int(self._rng.integers(len(kinds)))]

        now = datetime.now(timezone.utc)
        if kind is MessageKind.PRICE_UPDATE:
            payload = self._price_quote()
        elif kind is MessageKind.PORTFOLIO_UPDATE:
            payload = self._portfolio_snapshot()
        elif kind is MessageKind.NEWS_UPDATE:
            payload = self._news_item(now)
        elif kind is MessageKind.ALERT_TRIGGER:
            payload = self._alert()
        else:
            payload = self._market_status(now)
        return ChannelMessage(kind=kind, payload=payload, timestamp=now)

    def step(self) -> dict[str, float]:
        """Advance every symbol by one tick. Returns {symbol: new_price}."""
        n = len(self._symbols)
        if n == 0:
            return {}

        market = self._rng.standard_normal()
        idiosyncratic = self._rng.standard_normal(n)
        w = MARKET_FACTOR_WEIGHT
        z = w * market + math.sqrt(1 - w**2) * idiosyncratic

        for i, symbol in enumerate(self._symbols):
            sigma = SYMBOL_VOLATILITY.get(symbol, DEFAULT_VOLATILITY)
            self._prices[symbol] *= math.exp(sigma * z[i])
        return {symbol: round(price, 2) for symbol, price in self._prices.items()}

    # --- Payload builders ---

    def _price_quote(self) -> PriceQuote:
        prices = self.step()
        symbol = self._symbols[int(self._rng.integers(len(self._symbols)))]
        price = prices[symbol]
        open_price = self._open[symbol]
        change = price - open_price
        return PriceQuote(
            symbol=symbol,
            price=price,
            change=round(change, 2),
            change_percent=round(change / open_price * 100, 4) if open_price else 0.0,
            volume=int(self._rng.integers(*VOLUME_RANGE)),
        )

    def _portfolio_snapshot(self) -> PortfolioSnapshot:
        positions = tuple(
            Position(
                symbol=symbol,
                value=round(base * (1 + self._rng.normal(0.0, 0.02)), 2),
                change=round(float(self._rng.uniform(-0.02, 0.02)) * base, 2),
            )
            for symbol, base in PORTFOLIO_POSITIONS.items()
        )
        return PortfolioSnapshot(
            total_value=round(PORTFOLIO_BASE_VALUE + float(self._rng.uniform(0, PORTFOLIO_VALUE_SPREAD)), 2),
            day_change=round(float(self._rng.uniform(-PORTFOLIO_MAX_DAY_CHANGE, PORTFOLIO_MAX_DAY_CHANGE)), 2),
            positions=positions,
        )

    def _news_item(self, now: datetime) -> NewsItem:
        picked = self._rng.choice(len(self._symbols), size=min(2, len(self._symbols)), replace=False)
        return NewsItem(
            headline=f"Market Update: {now:%H:%M:%S}",
            sentiment=NEWS_SENTIMENTS[int(self._rng.integers(len(NEWS_SENTIMENTS)))],
            impact=NEWS_IMPACTS[int(self._rng.integers(len(NEWS_IMPACTS)))],
            symbols=tuple(self._symbols[int(i)] for i in picked),
        )

    def _alert(self) -> AlertTrigger:
        targets = list(ALERT_THRESHOLDS.items())
        symbol, threshold = targets[int(self._rng.integers(len(targets)))]
        return AlertTrigger(
            alert_type="price_target",
            symbol=symbol,
            message="Price target reached",
            threshold=threshold,
        )

    def _market_status(self, now: datetime) -> MarketStatus:
        return MarketStatus(
            status="open",
            next_close=now + timedelta(hours=SESSION_HOURS),
            trading_volume=int(self._rng.integers(0, 1_000_000_000)),
        )


class SimulatedTransport(Transport):
    """Transport that never touches the network.

    open() "connects" after a random delay, then emits one synthesized
    message per random interval until close(). Outbound payloads are kept
    in ``sent_messages`` instead of being transmitted.
    """

    def __init__(
        self,
        synthesizer: MessageSynthesizer | None = None,
        scheduler: Scheduler | None = None,
        connect_delay_range: tuple[float, float] = (0.5, 2.0),
        message_interval_range: tuple[float, float] = (1.0, 5.0),
        rng: random.Random | None = None,
    ) -> None:
        self._synth = synthesizer or MessageSynthesizer()
        self._scheduler = scheduler or LoopScheduler()
        self._connect_delay = connect_delay_range
        self._message_interval = message_interval_range
        self._rng = rng or random.Random()
        self._listener: TransportListener | None = None
        self._timer: TimerHandle | None = None
        self._open = False
        self.sent_messages: list[Any] = []

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self, listener: TransportListener) -> None:
        self.close()
        self._listener = listener
        delay = self._rng.uniform(*self._connect_delay)
        self._timer = self._scheduler.call_later(delay, self._handle_connected)
        logger.debug("Simulated transport connecting in %.2fs", delay)

    def send(self, payload: Any) -> bool:
        if not self._open:
            return False
        self.sent_messages.append(payload)
        logger.info("Simulated send: %s", payload)
        return True

    def close(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._listener = None
        self._open = False

    # --- Internal ---

    def _handle_connected(self) -> None:
        self._timer = None
        listener = self._listener
        if listener is None:
            return
        self._open = True
        listener.on_open()
        # on_open may have closed us
        if self._listener is listener:
            self._schedule_next()

    def _schedule_next(self) -> None:
        interval = self._rng.uniform(*self._message_interval)
        self._timer = self._scheduler.call_later(interval, self._emit)

    def _emit(self) -> None:
        self._timer = None
        listener = self._listener
        if listener is None:
            return
        try:
            message = self._synth.next_message()
        except Exception:
            logger.exception("Message synthesis failed")
        else:
            logger.debug("Simulated %s message", message.kind.value)
            listener.on_message(message)
        if self._listener is listener:
            self._schedule_next()
