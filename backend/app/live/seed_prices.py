"""Seed values and vocabularies for the message synthesizer."""

# Starting prices for the symbols the simulated feed quotes
SEED_PRICES: dict[str, float] = {
    "AAPL": 190.00,
    "MSFT": 420.00,
    "GOOGL": 175.00,
    "TSLA": 250.00,
    "SPY": 510.00,
}

# Per-tick volatility of the random walk (fraction of price, one standard deviation)
SYMBOL_VOLATILITY: dict[str, float] = {
    "AAPL": 0.004,
    "MSFT": 0.0035,
    "GOOGL": 0.0045,
    "TSLA": 0.009,  # High volatility
    "SPY": 0.002,  # Index, low volatility
}

DEFAULT_VOLATILITY = 0.005

# Weight of the shared market factor in every symbol's move
MARKET_FACTOR_WEIGHT = 0.5

# Daily volume range used for quote volume
VOLUME_RANGE: tuple[int, int] = (10_000, 1_000_000)

# Portfolio snapshot parameters
PORTFOLIO_BASE_VALUE = 50_000.0
PORTFOLIO_VALUE_SPREAD = 100_000.0
PORTFOLIO_MAX_DAY_CHANGE = 2_500.0
PORTFOLIO_POSITIONS: dict[str, float] = {
    "VTI": 25_000.0,
    "BND": 12_000.0,
}

NEWS_SENTIMENTS = ("positive", "negative", "neutral")
NEWS_IMPACTS = ("high", "medium", "low")

# Price targets that trigger alerts in the simulated feed
ALERT_THRESHOLDS: dict[str, float] = {
    "AAPL": 180.0,
    "TSLA": 240.0,
}

# Regular session length used for the market_status next-close hint
SESSION_HOURS = 6
