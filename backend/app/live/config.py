"""Configuration for the live data channel."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_URL = "wss://api.example.com/financial-data"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True, slots=True)
class ChannelConfig:
    """Tunables for a LiveDataChannel and its transport.

    simulate=True (the default) means no network I/O happens at all.
    """

    url: str = DEFAULT_URL
    reconnect_interval_ms: int = 3000
    max_reconnect_attempts: int = 5
    simulate: bool = True
    connect_delay_range_s: tuple[float, float] = (0.5, 2.0)
    message_interval_range_s: tuple[float, float] = (1.0, 5.0)

    def __post_init__(self) -> None:
        if self.reconnect_interval_ms < 0:
            raise ValueError("reconnect_interval_ms must be >= 0")
        if self.max_reconnect_attempts < 0:
            raise ValueError("max_reconnect_attempts must be >= 0")
        for name in ("connect_delay_range_s", "message_interval_range_s"):
            low, high = getattr(self, name)
            if low < 0 or high < low:
                raise ValueError(f"{name} must be a non-negative (low, high) range")

    @classmethod
    def from_env(cls) -> ChannelConfig:
        """Build a config from LIVE_FEED_* environment variables.

        - LIVE_FEED_URL                    transport endpoint
        - LIVE_FEED_RECONNECT_INTERVAL_MS  delay before each reconnect
        - LIVE_FEED_MAX_RECONNECT_ATTEMPTS consecutive reconnect budget
        - LIVE_FEED_SIMULATE               1/true/yes/on or 0/false/no/off

        Unset or empty variables fall back to the defaults.
        """
        defaults = cls()
        url = os.environ.get("LIVE_FEED_URL", "").strip() or defaults.url
        return cls(
            url=url,
            reconnect_interval_ms=_env_int("LIVE_FEED_RECONNECT_INTERVAL_MS", defaults.reconnect_interval_ms),
            max_reconnect_attempts=_env_int("LIVE_FEED_MAX_RECONNECT_ATTEMPTS", defaults.max_reconnect_attempts),
            simulate=_env_bool("LIVE_FEED_SIMULATE", defaults.simulate),
        )


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean flag, got {raw!r}")
