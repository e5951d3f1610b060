"""Market data models — price points, live quotes, pair metadata."""

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True)
class PricePoint:
    """A single closing price in an ascending historical series."""

    timestamp: date
    close: float


@dataclass(frozen=True)
class RateQuote:
    """A live bid/ask quote derived from the exchange-rate feed."""

    pair: str
    bid: float
    ask: float
    mid: float
    timestamp: datetime


# ── Pair metadata ────────────────────────────────────────────────────────

MAJOR_PAIRS: list[str] = [
    "EUR/USD", "GBP/USD", "USD/JPY", "USD/CHF", "AUD/USD", "USD/CAD",
    "NZD/USD", "EUR/GBP", "EUR/JPY", "GBP/JPY", "CHF/JPY", "CAD/JPY",
    "AUD/JPY", "EUR/CHF", "GBP/CHF", "AUD/CAD", "EUR/CAD", "GBP/CAD",
    "EUR/AUD", "GBP/AUD",
]

# Spread as a fraction of the rate, per liquidity tier
_SPREAD_MAJOR = 0.00002
_SPREAD_MINOR = 0.00005
_SPREAD_OTHER = 0.0001

_MAJOR_SPREAD_PAIRS = {"EUR/USD", "GBP/USD", "USD/JPY", "USD/CHF", "AUD/USD", "USD/CAD"}
_MINOR_SPREAD_PAIRS = {"EUR/GBP", "EUR/JPY", "GBP/JPY"}


def normalize_pair(pair: str) -> str:
    """Normalise a currency pair to ``"BASE/QUOTE"`` upper-case.

    Accepts ``"EUR/USD"``, ``"eur_usd"``, ``"EUR-USD"`` and ``"EURUSD"``.

    Raises ``ValueError`` when the pair cannot be parsed or both legs are
    the same currency.
    """
    cleaned = pair.strip().upper().replace("_", "/").replace("-", "/")
    if "/" in cleaned:
        parts = [p.strip() for p in cleaned.split("/")]
    elif len(cleaned) == 6:
        parts = [cleaned[:3], cleaned[3:]]
    else:
        parts = []

    if len(parts) != 2 or not all(len(p) == 3 and p.isalpha() for p in parts):
        raise ValueError(f"Invalid currency pair: {pair!r}")
    base, quote = parts
    if base == quote:
        raise ValueError(f"Invalid currency pair: {pair!r} (same currency)")
    return f"{base}/{quote}"


def spread_for(pair: str, rate: float) -> float:
    """Deterministic bid/ask spread for *pair* at *rate*."""
    if pair in _MAJOR_SPREAD_PAIRS:
        return rate * _SPREAD_MAJOR
    if pair in _MINOR_SPREAD_PAIRS:
        return rate * _SPREAD_MINOR
    return rate * _SPREAD_OTHER
