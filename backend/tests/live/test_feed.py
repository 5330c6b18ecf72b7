"""Tests for FinancialDataFeed."""

from unittest.mock import MagicMock

from app.live.channel import LiveDataChannel
from app.live.feed import ALERTS_CAPACITY, NEWS_CAPACITY, FinancialDataFeed
from app.live.models import (
    AlertTrigger,
    ChannelMessage,
    MarketStatus,
    MessageKind,
    NewsItem,
    PortfolioSnapshot,
    Position,
)


def _news(n: int) -> ChannelMessage:
    return ChannelMessage(kind=MessageKind.NEWS_UPDATE, payload=NewsItem(headline=f"headline {n}"))


def _alert(n: int) -> ChannelMessage:
    return ChannelMessage(
        kind=MessageKind.ALERT_TRIGGER,
        payload=AlertTrigger(alert_type="price_target", symbol="AAPL", message=f"alert {n}"),
    )


class TestFinancialDataFeed:
    """Unit tests for the domain accumulators."""

    def test_empty_feed(self):
        """A fresh feed has nothing accumulated."""
        feed = FinancialDataFeed()
        assert feed.quotes == {}
        assert feed.portfolio is None
        assert feed.news == []
        assert feed.alerts == []
        assert feed.market_status is None
        assert feed.version == 0

    def test_quotes_last_write_wins(self, make_price):
        """Later quotes for a symbol replace earlier ones."""
        feed = FinancialDataFeed()
        for symbol, price in zip(["AAPL", "AAPL", "MSFT"], [100, 102, 50]):
            feed.apply(make_price(symbol, price))
        assert feed.prices == {"AAPL": 102, "MSFT": 50}
        assert list(feed.quotes) == ["AAPL", "MSFT"]

    def test_get_quote(self, make_price):
        """Quotes can be read per symbol."""
        feed = FinancialDataFeed()
        feed.apply(make_price("TSLA", 250.0))
        assert feed.get_quote("TSLA").price == 250.0
        assert feed.get_quote("NOPE") is None

    def test_out_of_order_quote_overwrites(self, make_price):
        """Quotes are applied in arrival order regardless of timestamp."""
        feed = FinancialDataFeed()
        newer = make_price("AAPL", 110.0)
        older = ChannelMessage(
            kind=MessageKind.PRICE_UPDATE,
            payload=make_price("AAPL", 90.0).payload,
            timestamp=newer.timestamp.replace(year=newer.timestamp.year - 1),
        )
        feed.apply(newer)
        feed.apply(older)
        assert feed.prices["AAPL"] == 90.0

    def test_portfolio_overwrite(self):
        """Each portfolio snapshot replaces the previous one."""
        feed = FinancialDataFeed()
        first = PortfolioSnapshot(total_value=1000.0)
        second = PortfolioSnapshot(total_value=2000.0, positions=(Position("VTI", 2000.0),))
        feed.apply(ChannelMessage(kind=MessageKind.PORTFOLIO_UPDATE, payload=first))
        feed.apply(ChannelMessage(kind=MessageKind.PORTFOLIO_UPDATE, payload=second))
        assert feed.portfolio == second

    def test_news_keeps_last_ten_newest_first(self):
        """Twelve news items leave the ten most recent, newest first."""
        feed = FinancialDataFeed()
        for n in range(12):
            feed.apply(_news(n))
        headlines = [item.headline for item in feed.news]
        assert len(headlines) == NEWS_CAPACITY == 10
        assert headlines == [f"headline {n}" for n in range(11, 1, -1)]

    def test_alerts_keep_last_five_newest_first(self):
        """Alerts are bounded to the five most recent."""
        feed = FinancialDataFeed()
        for n in range(7):
            feed.apply(_alert(n))
        messages = [alert.message for alert in feed.alerts]
        assert len(messages) == ALERTS_CAPACITY == 5
        assert messages == [f"alert {n}" for n in range(6, 1, -1)]

    def test_market_status_overwrite(self):
        """The latest market status is kept."""
        feed = FinancialDataFeed()
        feed.apply(ChannelMessage(kind=MessageKind.MARKET_STATUS, payload=MarketStatus(status="open")))
        feed.apply(ChannelMessage(kind=MessageKind.MARKET_STATUS, payload=MarketStatus(status="closed")))
        assert feed.market_status.status == "closed"

    def test_clear_alerts_and_news(self):
        """clear_alerts() and clear_news() empty their buckets only."""
        feed = FinancialDataFeed()
        feed.apply(_news(1))
        feed.apply(_alert(1))
        feed.clear_alerts()
        assert feed.alerts == []
        assert len(feed.news) == 1
        feed.clear_news()
        assert feed.news == []

    def test_version_increments(self, make_price):
        """Every applied message bumps the version."""
        feed = FinancialDataFeed()
        v0 = feed.version
        feed.apply(make_price())
        assert feed.version == v0 + 1
        feed.apply(_news(1))
        assert feed.version == v0 + 2

    def test_readers_return_copies(self, make_price):
        """Mutating a returned collection does not touch the feed."""
        feed = FinancialDataFeed()
        feed.apply(make_price())
        feed.apply(_news(1))
        feed.quotes.clear()
        feed.news.clear()
        assert "AAPL" in feed.quotes
        assert len(feed.news) == 1

    def test_to_dict(self, make_price):
        """Serialization uses the dashboard's field names."""
        feed = FinancialDataFeed()
        feed.apply(make_price("AAPL", 190.5))
        feed.apply(_alert(1))
        result = feed.to_dict()
        assert result["marketData"][0]["symbol"] == "AAPL"
        assert result["marketData"][0]["price"] == 190.5
        assert result["portfolio"] is None
        assert result["alerts"][0]["message"] == "alert 1"
        assert result["marketStatus"] is None


class TestFeedAttachment:
    """Feed wired to a channel."""

    def test_feed_accumulates_channel_messages(self, transport, scheduler, make_price):
        """Messages delivered by the channel reach the feed."""
        channel = LiveDataChannel(transport, scheduler=scheduler)
        feed = FinancialDataFeed(channel)
        channel.connect()
        transport.succeed()
        transport.deliver(make_price("MSFT", 420.0))
        assert feed.prices == {"MSFT": 420.0}
        assert feed.channel is channel

    def test_feed_is_one_of_many_subscribers(self, transport, scheduler, make_price):
        """The feed does not compete with other subscribers."""
        channel = LiveDataChannel(transport, scheduler=scheduler)
        other = MagicMock()
        channel.subscribe(other)
        feed = FinancialDataFeed(channel)
        channel.connect()
        transport.succeed()
        transport.deliver(make_price())
        other.assert_called_once()
        assert "AAPL" in feed.prices

    def test_detach_stops_updates(self, transport, scheduler, make_price):
        """A detached feed keeps its data but receives nothing new."""
        channel = LiveDataChannel(transport, scheduler=scheduler)
        feed = FinancialDataFeed(channel)
        channel.connect()
        transport.succeed()
        transport.deliver(make_price("AAPL", 1.0))
        feed.detach()
        transport.deliver(make_price("AAPL", 2.0))
        assert feed.prices == {"AAPL": 1.0}
        assert channel.subscriber_count == 0
        assert feed.channel is None
