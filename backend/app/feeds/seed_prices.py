"""Seed prices and per-symbol parameters for the simulated trade feed."""

# Rough starting prices for commonly watched perps
SEED_PRICES: dict[str, float] = {
    "BTC": 60000.00,
    "ETH": 3000.00,
    "SOL": 150.00,
    "HYPE": 25.00,
    "DOGE": 0.15,
    "XRP": 0.55,
    "AVAX": 30.00,
    "LINK": 15.00,
}

# Per-symbol GBM parameters
# sigma: annualized volatility
# mu: annualized drift
SYMBOL_PARAMS: dict[str, dict[str, float]] = {
    "BTC": {"sigma": 0.55, "mu": 0.05},
    "ETH": {"sigma": 0.70, "mu": 0.05},
    "SOL": {"sigma": 0.90, "mu": 0.05},
    "HYPE": {"sigma": 1.20, "mu": 0.05},  # Thin book, very volatile
    "DOGE": {"sigma": 1.00, "mu": 0.02},
}

# Default parameters for symbols not in the list above
DEFAULT_PARAMS: dict[str, float] = {"sigma": 0.80, "mu": 0.03}

# Trade notional (USD) is lognormal: median and log-space sigma.
# With these values a few percent of trades clear a $50k threshold.
NOTIONAL_MEDIAN_USD = 2_000.0
NOTIONAL_LOG_SIGMA = 1.8

# Crypto trades around the clock
TRADING_SECONDS_PER_YEAR = 365 * 24 * 3600
