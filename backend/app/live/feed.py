"""Per-domain accumulators over the channel's message stream."""

from __future__ import annotations

import logging
from collections import deque

from .channel import LiveDataChannel
from .models import (
    AlertTrigger,
    ChannelMessage,
    MarketStatus,
    MessageKind,
    NewsItem,
    PortfolioSnapshot,
    PriceQuote,
)

logger = logging.getLogger(__name__)

NEWS_CAPACITY = 10
ALERTS_CAPACITY = 5


class FinancialDataFeed:
    """Dashboard-facing view of the live channel.

    Buckets:
        quotes      - latest PriceQuote per symbol (last write wins)
        portfolio   - latest PortfolioSnapshot (overwrite)
        news        - last 10 NewsItems, newest first
        alerts      - last 5 AlertTriggers, newest first
        market      - latest MarketStatus (overwrite)

    Quotes are overwritten in arrival order with no timestamp check, so an
    out-of-order quote replaces a newer one.
    """

    def __init__(self, channel: LiveDataChannel | None = None) -> None:
        self._quotes: dict[str, PriceQuote] = {}
        self._portfolio: PortfolioSnapshot | None = None
        self._news: deque[NewsItem] = deque(maxlen=NEWS_CAPACITY)
        self._alerts: deque[AlertTrigger] = deque(maxlen=ALERTS_CAPACITY)
        self._market: MarketStatus | None = None
        self._version: int = 0  # Monotonically increasing; bumped on every change
        self._channel: LiveDataChannel | None = None
        if channel is not None:
            self.attach(channel)

    def attach(self, channel: LiveDataChannel) -> None:
        """Start accumulating from ``channel``. Detaches from any previous one."""
        self.detach()
        channel.subscribe(self.apply)
        self._channel = channel

    def detach(self) -> None:
        """Stop receiving messages. The accumulated data is kept."""
        if self._channel is not None:
            self._channel.unsubscribe(self.apply)
            self._channel = None

    @property
    def channel(self) -> LiveDataChannel | None:
        return self._channel

    def apply(self, message: ChannelMessage) -> None:
        """Fold one message into the matching bucket."""
        kind = message.kind
        if kind is MessageKind.PRICE_UPDATE:
            self._quotes[message.payload.symbol] = message.payload
        elif kind is MessageKind.PORTFOLIO_UPDATE:
            self._portfolio = message.payload
        elif kind is MessageKind.NEWS_UPDATE:
            self._news.appendleft(message.payload)
        elif kind is MessageKind.ALERT_TRIGGER:
            self._alerts.appendleft(message.payload)
        elif kind is MessageKind.MARKET_STATUS:
            self._market = message.payload
        else:
            logger.debug("Ignoring message of kind %s", kind)
            return
        self._version += 1

    # --- Readers ---

    @property
    def quotes(self) -> dict[str, PriceQuote]:
        """Snapshot of the latest quote per symbol, in first-seen order."""
        return dict(self._quotes)

    @property
    def prices(self) -> dict[str, float]:
        """Convenience: {symbol: price}."""
        return {symbol: quote.price for symbol, quote in self._quotes.items()}

    def get_quote(self, symbol: str) -> PriceQuote | None:
        return self._quotes.get(symbol)

    @property
    def portfolio(self) -> PortfolioSnapshot | None:
        return self._portfolio

    @property
    def news(self) -> list[NewsItem]:
        return list(self._news)

    @property
    def alerts(self) -> list[AlertTrigger]:
        return list(self._alerts)

    @property
    def market_status(self) -> MarketStatus | None:
        return self._market

    @property
    def version(self) -> int:
        """Current version counter. Useful for SSE change detection."""
        return self._version

    def clear_alerts(self) -> None:
        self._alerts.clear()
        self._version += 1

    def clear_news(self) -> None:
        self._news.clear()
        self._version += 1

    def to_dict(self) -> dict:
        """Serialize all buckets for JSON / SSE transmission."""
        return {
            "marketData": [quote.to_dict() for quote in self._quotes.values()],
            "portfolio": self._portfolio.to_dict() if self._portfolio else None,
            "news": [item.to_dict() for item in self._news],
            "alerts": [alert.to_dict() for alert in self._alerts],
            "marketStatus": self._market.to_dict() if self._market else None,
        }
