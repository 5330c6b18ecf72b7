"""Data models for the live data channel."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union


class MessageParseError(ValueError):
    """Raised when an inbound frame is not a valid ChannelMessage."""


class MessageKind(str, Enum):
    PRICE_UPDATE = "price_update"
    PORTFOLIO_UPDATE = "portfolio_update"
    NEWS_UPDATE = "news_update"
    ALERT_TRIGGER = "alert_trigger"
    MARKET_STATUS = "market_status"


class ConnectionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise MessageParseError(f"Expected ISO-8601 timestamp, got {type(value).__name__}")
    try:
        # fromisoformat() only accepts a trailing 'Z' on 3.11+
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise MessageParseError(f"Invalid timestamp {value!r}") from e


@dataclass(frozen=True, slots=True)
class PriceQuote:
    """Latest trade for a single symbol."""

    symbol: str
    price: float
    change: float = 0.0
    change_percent: float = 0.0
    volume: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> PriceQuote:
        return cls(
            symbol=str(data["symbol"]),
            price=float(data["price"]),
            change=float(data.get("change", 0.0)),
            change_percent=float(data.get("changePercent", 0.0)),
            volume=int(data.get("volume", 0)),
        )

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "price": self.price,
            "change": self.change,
            "changePercent": self.change_percent,
            "volume": self.volume,
        }


@dataclass(frozen=True, slots=True)
class Position:
    symbol: str
    value: float
    change: float = 0.0

    @classmethod
    def from_dict(cls, data: dict) -> Position:
        return cls(
            symbol=str(data["symbol"]),
            value=float(data["value"]),
            change=float(data.get("change", 0.0)),
        )

    def to_dict(self) -> dict:
        return {"symbol": self.symbol, "value": self.value, "change": self.change}


@dataclass(frozen=True, slots=True)
class PortfolioSnapshot:
    """Whole-portfolio valuation. Each snapshot replaces the previous one."""

    total_value: float
    day_change: float = 0.0
    positions: tuple[Position, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> PortfolioSnapshot:
        return cls(
            total_value=float(data["totalValue"]),
            day_change=float(data.get("dayChange", 0.0)),
            positions=tuple(Position.from_dict(p) for p in data.get("positions", [])),
        )

    def to_dict(self) -> dict:
        return {
            "totalValue": self.total_value,
            "dayChange": self.day_change,
            "positions": [p.to_dict() for p in self.positions],
        }


@dataclass(frozen=True, slots=True)
class NewsItem:
    headline: str
    sentiment: str = "neutral"
    impact: str = "low"
    symbols: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> NewsItem:
        return cls(
            headline=str(data["headline"]),
            sentiment=str(data.get("sentiment", "neutral")),
            impact=str(data.get("impact", "low")),
            symbols=tuple(str(s) for s in data.get("symbols", [])),
        )

    def to_dict(self) -> dict:
        return {
            "headline": self.headline,
            "sentiment": self.sentiment,
            "impact": self.impact,
            "symbols": list(self.symbols),
        }


@dataclass(frozen=True, slots=True)
class AlertTrigger:
    alert_type: str
    symbol: str
    message: str
    threshold: float | None = None

    @classmethod
    def from_dict(cls, data: dict) -> AlertTrigger:
        threshold = data.get("threshold")
        return cls(
            alert_type=str(data["type"]),
            symbol=str(data["symbol"]),
            message=str(data["message"]),
            threshold=float(threshold) if threshold is not None else None,
        )

    def to_dict(self) -> dict:
        return {
            "type": self.alert_type,
            "symbol": self.symbol,
            "message": self.message,
            "threshold": self.threshold,
        }


@dataclass(frozen=True, slots=True)
class MarketStatus:
    status: str
    next_close: datetime | None = None
    trading_volume: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> MarketStatus:
        next_close = data.get("nextClose")
        return cls(
            status=str(data["status"]),
            next_close=_parse_datetime(next_close) if next_close is not None else None,
            trading_volume=int(data.get("tradingVolume", 0)),
        )

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "nextClose": self.next_close.isoformat() if self.next_close else None,
            "tradingVolume": self.trading_volume,
        }


Payload = Union[PriceQuote, PortfolioSnapshot, NewsItem, AlertTrigger, MarketStatus]

PAYLOAD_TYPES: dict[MessageKind, type] = {
    MessageKind.PRICE_UPDATE: PriceQuote,
    MessageKind.PORTFOLIO_UPDATE: PortfolioSnapshot,
    MessageKind.NEWS_UPDATE: NewsItem,
    MessageKind.ALERT_TRIGGER: AlertTrigger,
    MessageKind.MARKET_STATUS: MarketStatus,
}


@dataclass(frozen=True, slots=True)
class ChannelMessage:
    """One message on the channel: a kind tag, its payload and when it was produced."""

    kind: MessageKind
    payload: Payload
    timestamp: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        expected = PAYLOAD_TYPES[self.kind]
        if not isinstance(self.payload, expected):
            raise TypeError(
                f"{self.kind.value} expects {expected.__name__}, got {type(self.payload).__name__}"
            )

    @classmethod
    def from_dict(cls, data: Any) -> ChannelMessage:
        """Build a message from its wire shape ``{type, payload, timestamp}``."""
        if not isinstance(data, dict):
            raise MessageParseError(f"Expected a JSON object, got {type(data).__name__}")
        try:
            kind = MessageKind(data.get("type"))
        except ValueError as e:
            raise MessageParseError(f"Unknown message type {data.get('type')!r}") from e

        raw_payload = data.get("payload")
        if not isinstance(raw_payload, dict):
            raise MessageParseError(f"{kind.value} payload must be an object")
        try:
            payload = PAYLOAD_TYPES[kind].from_dict(raw_payload)
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            raise MessageParseError(f"Invalid {kind.value} payload: {e}") from e

        timestamp = data.get("timestamp")
        return cls(
            kind=kind,
            payload=payload,
            timestamp=_parse_datetime(timestamp) if timestamp is not None else _utcnow(),
        )

    def to_dict(self) -> dict:
        """Serialize to the wire shape."""
        return {
            "type": self.kind.value,
            "payload": self.payload.to_dict(),
            "timestamp": self.timestamp.isoformat(),
        }


def _reject_constant(name: str) -> Any:
    raise MessageParseError(f"Non-finite number {name} is not allowed")


def parse_message(text: str | bytes) -> ChannelMessage:
    """Decode a single JSON text frame into a ChannelMessage.

    NaN and Infinity literals are rejected; numbers that overflow to
    infinity fail when converted to an integer field.
    """
    try:
        data = json.loads(text, parse_constant=_reject_constant)
    except MessageParseError:
        raise
    except (TypeError, ValueError, RecursionError) as e:
        raise MessageParseError(f"Frame is not valid JSON: {e}") from e
    return ChannelMessage.from_dict(data)


@dataclass(frozen=True, slots=True)
class ConnectionState:
    """Read-only snapshot of a channel's connection lifecycle."""

    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    error: str | None = None
    connection_attempts: int = 0
    last_message: ChannelMessage | None = None

    @property
    def is_connected(self) -> bool:
        return self.status is ConnectionStatus.CONNECTED

    @property
    def is_connecting(self) -> bool:
        return self.status is ConnectionStatus.CONNECTING

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "isConnected": self.is_connected,
            "isConnecting": self.is_connecting,
            "error": self.error,
            "connectionAttempts": self.connection_attempts,
            "lastMessage": self.last_message.to_dict() if self.last_message else None,
        }
